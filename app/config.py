from pathlib import Path
import os

from dotenv import load_dotenv

# Load environment variables from the project root .env (if present).
REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(REPO_ROOT / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./taskflow.db")
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
CORS_ORIGINS = [origin.strip() for origin in _cors_origins.split(",") if origin.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Outgoing mail
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", "true")
_smtp_timeout = os.getenv("SMTP_TIMEOUT", "")
SMTP_TIMEOUT = float(_smtp_timeout) if _smtp_timeout else None
MAIL_FROM = os.getenv("MAIL_FROM", SMTP_USER)

# Reminder job
REMINDER_SCHEDULER_ENABLED = _env_bool("REMINDER_SCHEDULER_ENABLED", "true")
REMINDER_CHECK_INTERVAL_MINUTES = int(os.getenv("REMINDER_CHECK_INTERVAL_MINUTES", "30"))
REMINDER_INITIAL_DELAY_SECONDS = int(os.getenv("REMINDER_INITIAL_DELAY_SECONDS", "5"))
