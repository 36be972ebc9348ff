from typing import Optional

from pydantic import BaseModel, Field, field_validator


def normalize_email(value: str) -> str:
    value = value.strip().lower()
    local, _, domain = value.partition("@")
    if not local or "." not in domain:
        raise ValueError("invalid email address")
    return value


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str
    password: str = Field(min_length=6)

    class Config:
        extra = "forbid"

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)


class UserLogin(BaseModel):
    email: str
    password: str

    class Config:
        extra = "forbid"

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class User(BaseModel):
    id: str
    name: str
    email: str

    class Config:
        from_attributes = True


class TokenData(BaseModel):
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None


class AuthResponse(BaseModel):
    message: str
    token: str
    user: User


class TokenValidation(BaseModel):
    valid: bool
    user: User
