import logging
import time
from logging.config import dictConfig

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from .config import LOG_LEVEL

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "[%(asctime)s] %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "loggers": {
        "uvicorn.access": {"level": "WARNING"},
        "sqlalchemy.engine": {"level": "WARNING"},
        "apscheduler": {"level": "WARNING"},
        "taskflow": {
            "level": LOG_LEVEL.upper(),
            "handlers": ["console"],
            "propagate": False,
        },
    },
    "root": {
        "level": "WARNING",
        "handlers": ["console"],
    },
}


def init_logging() -> None:
    dictConfig(LOGGING_CONFIG)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and latency for every request."""

    async def dispatch(self, request: Request, call_next):
        logger = logging.getLogger("taskflow.request")
        start_time = time.time()

        response = await call_next(request)

        duration = (time.time() - start_time) * 1000
        logger.info(
            "%s %s -> %s (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            duration,
        )
        return response
