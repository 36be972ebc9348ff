import os
import smtplib

import pytest

# Configure the app before it is imported: no file database, no background job
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REMINDER_SCHEDULER_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret"

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from app.database import get_db, make_engine
from app.main import app
from app.models import User
from app.routers.auth import create_access_token, get_password_hash
from app.services.mailer import Mailer, get_mailer


class RecordingMailer(Mailer):
    """Mailer that records messages instead of talking SMTP."""

    def __init__(self):
        super().__init__(host="localhost", port=25, username="", password="", sender="tests@taskflow.local")
        self.sent = []
        self.fail = False

    def send(self, to, subject, html):
        if self.fail:
            raise smtplib.SMTPServerDisconnected("connection unexpectedly closed")
        self.sent.append({"to": to, "subject": subject, "html": html})


@pytest.fixture()
def engine():
    # StaticPool keeps a single in-memory DB across threads/requests
    engine = make_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def client(session_factory, mailer):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session):
    def _make_user(name="Ada", email="ada@example.com", password="secret123"):
        user = User(name=name, email=email, hashed_password=get_password_hash(password))
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _auth_headers
