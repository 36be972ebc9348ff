import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from jose import JWTError, jwt
import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import ACCESS_TOKEN_EXPIRE_MINUTES, SECRET_KEY
from ..database import get_db
from ..models import User
from ..schemas.user import AuthResponse, TokenData, TokenValidation, UserCreate, UserLogin
from ..services.mailer import Mailer, get_mailer

logger = logging.getLogger("taskflow.auth")

router = APIRouter()

ALGORITHM = "HS256"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password_bytes = plain_password.encode('utf-8')[:72]
    hashed_bytes = hashed_password.encode('utf-8') if isinstance(hashed_password, str) else hashed_password
    return bcrypt.checkpw(password_bytes, hashed_bytes)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt directly."""
    password_bytes = password.encode('utf-8')[:72]  # Truncate to 72 bytes (bcrypt limit)
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Return the user for valid credentials, None otherwise."""
    user = db.query(User).filter(User.email == email).first()
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT carrying the owner's id, email and name."""
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "exp": expire,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def _get_token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def _decode_token(token: str) -> Optional[TokenData]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    return TokenData(user_id=user_id, email=payload.get("email"), name=payload.get("name"))


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the bearer token; every task route depends on it."""
    token = _get_token_from_request(request)
    if not token:
        raise _unauthorized("Access token required")

    token_data = _decode_token(token)
    if token_data is None:
        raise _unauthorized("Invalid or expired token")

    user = db.get(User, token_data.user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user


def _send_welcome_email(mailer: Mailer, email: str, name: str) -> None:
    if not mailer.send_welcome_email(email, name):
        logger.warning("Welcome email to %s was not delivered", email)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user: UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Create a new account and sign it in."""
    db_user = db.query(User).filter(User.email == user.email).first()
    if db_user:
        raise HTTPException(status_code=400, detail="User already exists with this email")

    db_user = User(
        name=user.name,
        email=user.email,
        hashed_password=get_password_hash(user.password),
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise HTTPException(status_code=400, detail="User already exists with this email")
    db.refresh(db_user)
    logger.info("Registered user %s", db_user.id)

    background_tasks.add_task(_send_welcome_email, mailer, db_user.email, db_user.name)

    return {
        "message": "User registered successfully",
        "token": create_access_token(db_user),
        "user": db_user,
    }


@router.post("/login", response_model=AuthResponse)
def login(
    credentials: UserLogin,
    db: Session = Depends(get_db),
):
    """Sign in and get JWT token."""
    db_user = authenticate_user(db, credentials.email, credentials.password)
    if not db_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    return {
        "message": "Login successful",
        "token": create_access_token(db_user),
        "user": db_user,
    }


@router.get("/validate-token", response_model=TokenValidation)
def validate_token(current_user: User = Depends(get_current_user)):
    """Confirm the token's signature and expiry and that its user still exists."""
    return {"valid": True, "user": current_user}
