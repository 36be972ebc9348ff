import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import CORS_ORIGINS, REMINDER_SCHEDULER_ENABLED
from .database import create_tables
from .logging_setup import RequestLoggingMiddleware, init_logging
from .routers import auth, notifications, tasks
from .services.scheduler import start_reminder_scheduler, stop_reminder_scheduler

init_logging()
logger = logging.getLogger("taskflow")

# Create FastAPI app
app = FastAPI(
    title="TaskFlow API",
    description="Personal task manager with due-date email reminders",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(auth.router, tags=["auth"])
app.include_router(tasks.router, tags=["tasks"])
app.include_router(notifications.router, tags=["notifications"])


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Create tables and start the reminder job on startup
@app.on_event("startup")
def on_startup():
    create_tables()
    if REMINDER_SCHEDULER_ENABLED:
        start_reminder_scheduler()


@app.on_event("shutdown")
def on_shutdown():
    stop_reminder_scheduler()


@app.get("/")
def read_root():
    return {"message": "TaskFlow API"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}
