"""Pydantic schemas for end-user accounts."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.models.role import Role
from app.schemas.common import clean_username


class UserRead(BaseModel):
    id: str
    email: str
    username: str | None
    first_name: str
    last_name: str | None
    avatar: str | None
    role: Role
    is_verified: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    avatar: str | None = Field(default=None, max_length=500)
    username: str | None = Field(default=None, min_length=3, max_length=50)

    @field_validator("username")
    @classmethod
    def _clean_username(cls, v: str | None) -> str | None:
        return clean_username(v)
