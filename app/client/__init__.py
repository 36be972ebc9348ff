from .api import ApiError, TaskflowClient, TaskList
from .session import AuthSession, FileStorage, MemoryStorage, SessionContext
from .theme import Theme, ThemePreference

__all__ = [
    "ApiError",
    "AuthSession",
    "FileStorage",
    "MemoryStorage",
    "SessionContext",
    "TaskflowClient",
    "TaskList",
    "Theme",
    "ThemePreference",
]
