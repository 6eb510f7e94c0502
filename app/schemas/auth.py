"""Pydantic schemas for the authentication flows."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from app.models.role import Role
from app.schemas.common import clean_username, normalise_email
from app.schemas.staff import StaffRead
from app.schemas.user import UserRead


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=1, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    avatar: str | None = Field(default=None, max_length=500)
    username: str | None = Field(default=None, min_length=3, max_length=50)
    role: Role = Role.USER

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("username")
    @classmethod
    def _clean_username(cls, v: str | None) -> str | None:
        return clean_username(v)

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: Role) -> Role:
        if v.is_staff:
            raise ValueError("Staff accounts are created by an administrator")
        return v


class LoginRequest(BaseModel):
    email_or_username: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=128)
    role: Role = Role.USER


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class LogoutRequest(BaseModel):
    refresh_token: str | None = None


class EmailRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        return normalise_email(v)


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=1, max_length=128)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=1, max_length=128)


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenPair(AccessToken):
    refresh_token: str


class AuthData(TokenPair):
    account: UserRead | StaffRead

