from datetime import datetime, timedelta
from unittest.mock import MagicMock

from jose import jwt

from app.config import SECRET_KEY
from app.database import get_db
from app.main import app
from app.models import User
from app.routers.auth import ALGORITHM, create_access_token


def _register(client, **overrides):
    body = {"name": "Ada Lovelace", "email": "Ada@Example.com", "password": "secret123"}
    body.update(overrides)
    return client.post("/register", json=body)


def test_register_returns_token_and_profile(client, db_session):
    response = _register(client)

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "User registered successfully"
    assert data["token"]
    assert data["user"]["name"] == "Ada Lovelace"
    assert data["user"]["email"] == "ada@example.com"
    assert set(data["user"]) == {"id", "name", "email"}

    stored = db_session.query(User).filter(User.email == "ada@example.com").one()
    assert stored.hashed_password != "secret123"
    assert stored.hashed_password.startswith("$2")


def test_register_sends_welcome_email(client, mailer):
    _register(client)

    assert len(mailer.sent) == 1
    assert mailer.sent[0]["to"] == "ada@example.com"
    assert mailer.sent[0]["subject"] == "Welcome to Task Manager!"
    assert "Ada Lovelace" in mailer.sent[0]["html"]


def test_register_succeeds_when_welcome_email_fails(client, mailer):
    mailer.fail = True

    response = _register(client)

    assert response.status_code == 201
    assert mailer.sent == []


def test_register_rejects_duplicate_email_case_insensitively(client):
    assert _register(client).status_code == 201

    response = _register(client, email="  ADA@example.COM ")

    assert response.status_code == 400
    assert response.json()["detail"] == "User already exists with this email"


def test_register_race_on_same_email_returns_400(client, session_factory, db_session, make_user, mailer):
    make_user(email="ada@example.com")

    def _db_without_lookup_hit():
        # The existence check misses, as if the other registration committed after it ran
        db = session_factory()
        lookup = MagicMock()
        lookup.filter.return_value.first.return_value = None
        db.query = lambda *entities: lookup
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _db_without_lookup_hit

    response = _register(client)

    assert response.status_code == 400
    assert response.json()["detail"] == "User already exists with this email"
    assert db_session.query(User).filter(User.email == "ada@example.com").count() == 1
    assert mailer.sent == []


def test_register_validates_input(client):
    assert _register(client, password="short").status_code == 422
    assert _register(client, email="not-an-email").status_code == 422
    assert _register(client, name="   ").status_code == 422


def test_token_carries_identity_and_expires_in_24h(client):
    data = _register(client).json()

    claims = jwt.decode(data["token"], SECRET_KEY, algorithms=[ALGORITHM])

    assert claims["sub"] == data["user"]["id"]
    assert claims["email"] == "ada@example.com"
    assert claims["name"] == "Ada Lovelace"
    lifetime = datetime.utcfromtimestamp(claims["exp"]) - datetime.utcnow()
    assert timedelta(hours=23, minutes=59) < lifetime <= timedelta(hours=24)


def test_login(client):
    _register(client)

    response = client.post("/login", json={"email": "ADA@example.com", "password": "secret123"})

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Login successful"
    assert data["user"]["email"] == "ada@example.com"
    assert client.get("/validate-token", headers={"Authorization": f"Bearer {data['token']}"}).status_code == 200


def test_login_rejects_bad_credentials(client):
    _register(client)

    wrong_password = client.post("/login", json={"email": "ada@example.com", "password": "nope-nope"})
    unknown_user = client.post("/login", json={"email": "bob@example.com", "password": "secret123"})

    assert wrong_password.status_code == 401
    assert unknown_user.status_code == 401
    assert wrong_password.json()["detail"] == "Invalid credentials"


def test_validate_token(client, make_user, auth_headers):
    user = make_user()

    response = client.get("/validate-token", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json() == {
        "valid": True,
        "user": {"id": user.id, "name": "Ada", "email": "ada@example.com"},
    }


def test_validate_token_rejections(client, make_user):
    user = make_user()
    expired = create_access_token(user, expires_delta=timedelta(seconds=-5))
    ghost = create_access_token(User(id="ghost", name="Ghost", email="ghost@example.com", hashed_password="x"))
    forged = jwt.encode({"sub": user.id}, "some-other-secret", algorithm=ALGORITHM)

    for headers in (
        {},
        {"Authorization": "Bearer"},
        {"Authorization": "Bearer not-a-jwt"},
        {"Authorization": f"Bearer {expired}"},
        {"Authorization": f"Bearer {forged}"},
        {"Authorization": f"Bearer {ghost}"},
    ):
        response = client.get("/validate-token", headers=headers)
        assert response.status_code == 401, headers
        assert response.headers["www-authenticate"] == "Bearer"
