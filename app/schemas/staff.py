"""Pydantic schemas for staff management."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.models.role import STAFF_ROLES, Role
from app.schemas.common import normalise_email


def _staff_role(v: Role | None) -> Role | None:
    if v is not None and v not in STAFF_ROLES:
        raise ValueError(f"Role must be one of: {sorted(r.value for r in STAFF_ROLES)}")
    return v


class StaffRead(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str | None
    role: Role
    employee_id: str
    department: str
    permissions: list[str]
    is_active: bool
    has_pwd_changed: bool
    created_by: str | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class OtpRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        return normalise_email(v)


class StaffCreate(BaseModel):
    email: str
    password: str = Field(min_length=1)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    department: str | None = None
    role: Role = Role.GUIDE

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: Role) -> Role:
        return _staff_role(v)  # type: ignore[return-value]


class AdminCreate(BaseModel):
    email: str
    password: str = Field(min_length=1)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str | None = None
    otp: str = Field(min_length=1, max_length=12)

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        return normalise_email(v)


class StaffUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = None
    department: str | None = None
    role: Role | None = None

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: Role | None) -> Role | None:
        return _staff_role(v)
