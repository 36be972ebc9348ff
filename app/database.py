import logging
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, create_engine

from .config import DATABASE_URL

# Registers the tasks and users tables on SQLModel.metadata
from .models import Task, User  # noqa: F401

logger = logging.getLogger("taskflow.database")


def make_engine(url: str, **kwargs) -> Engine:
    """Build an engine for the task store.

    SQLite connections are shared between request threads and the reminder
    scheduler thread, so the same-thread check is turned off for them.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, echo=False, **kwargs)


engine = make_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_session():
    """Session for work outside a request, such as a reminder scan.

    A store error rolls back whatever the scan had not committed yet and is
    re-raised to the caller.
    """
    session = SessionLocal()
    try:
        yield session
    except SQLAlchemyError:
        session.rollback()
        raise
    finally:
        session.close()


def get_db():
    """Dependency to get database session."""
    with get_session() as db:
        yield db


def create_tables():
    SQLModel.metadata.create_all(bind=engine)
    logger.info("Task store ready: %s", ", ".join(sorted(SQLModel.metadata.tables)))
