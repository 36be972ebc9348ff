from .task import Priority, Task, PRIORITY_RANK
from .user import User

# Export all models for easy importing
__all__ = ["Priority", "PRIORITY_RANK", "Task", "User"]
