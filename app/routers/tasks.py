import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import PRIORITY_RANK, Task as TaskModel, User
from ..schemas.task import Message, Task as TaskSchema, TaskCreate, TaskMessage, TaskUpdate
from .auth import get_current_user

logger = logging.getLogger("taskflow.tasks")

router = APIRouter()


def _get_owned_task(db: Session, task_id: str, current_user: User) -> TaskModel:
    """Look a task up by id within the caller's tasks.

    Tasks owned by someone else are reported as missing, not forbidden.
    """
    task = (
        db.query(TaskModel)
        .filter(TaskModel.id == task_id, TaskModel.user_id == current_user.id)
        .first()
    )
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


def sort_by_priority(tasks: List[TaskModel]) -> List[TaskModel]:
    """Stable sort: High, Medium, Low; equal priorities keep their stored order."""
    return sorted(tasks, key=lambda task: PRIORITY_RANK[task.priority])


@router.post("/addTask", response_model=TaskSchema, status_code=status.HTTP_201_CREATED)
def create_task(
    task: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a new task owned by the caller."""
    db_task = TaskModel(
        title=task.title,
        description=task.description,
        due_date=task.due_date,
        priority=task.priority,
        user_id=current_user.id,
    )
    db.add(db_task)
    db.commit()
    db.refresh(db_task)
    logger.info("Created task %s for user %s", db_task.id, current_user.id)
    return db_task


@router.get("/tasks", response_model=List[TaskSchema])
def get_tasks(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """All of the caller's tasks, highest priority first."""
    tasks = (
        db.query(TaskModel)
        .filter(TaskModel.user_id == current_user.id)
        .order_by(TaskModel.created_at.asc())
        .all()
    )
    return sort_by_priority(tasks)


@router.get("/active-tasks", response_model=List[TaskSchema])
def get_active_tasks(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Incomplete tasks, highest priority first."""
    tasks = (
        db.query(TaskModel)
        .filter(TaskModel.user_id == current_user.id, TaskModel.completed.is_(False))
        .order_by(TaskModel.created_at.asc())
        .all()
    )
    return sort_by_priority(tasks)


@router.get("/completed-tasks", response_model=List[TaskSchema])
def get_completed_tasks(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Completed tasks, most recently completed first."""
    return (
        db.query(TaskModel)
        .filter(TaskModel.user_id == current_user.id, TaskModel.completed.is_(True))
        .order_by(TaskModel.completed_at.desc())
        .all()
    )


@router.get("/task/{task_id}", response_model=TaskSchema)
def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _get_owned_task(db, task_id, current_user)


@router.put("/updateTask/{task_id}", response_model=TaskMessage)
def update_task(
    task_id: str,
    task_update: TaskUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Apply the fields sent in the body to one of the caller's tasks."""
    task = _get_owned_task(db, task_id, current_user)

    changes = task_update.model_dump(exclude_unset=True)
    completed = changes.pop("completed", None)
    for field, value in changes.items():
        setattr(task, field, value)
    if completed is not None and completed != task.completed:
        task.set_completed(completed)

    task.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(task)
    return {"message": "Task updated successfully!", "task": task}


@router.patch("/toggleTask/{task_id}", response_model=TaskMessage)
def toggle_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Flip completion; ``completedAt`` is set or cleared in the same commit."""
    task = _get_owned_task(db, task_id, current_user)

    task.set_completed(not task.completed)
    task.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(task)
    message = "Task marked as completed!" if task.completed else "Task marked as pending!"
    return {"message": message, "task": task}


@router.delete("/deleteTask/{task_id}", response_model=Message)
def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task = _get_owned_task(db, task_id, current_user)

    db.delete(task)
    db.commit()
    logger.info("Deleted task %s for user %s", task_id, current_user.id)
    return {"message": "Task deleted successfully!"}
