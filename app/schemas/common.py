"""Response envelope shared by every endpoint."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    status: str = "success"
    message: str | None = None
    data: T | None = None


def normalise_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v or v.startswith("@") or v.endswith("@"):
        raise ValueError("Invalid email address")
    return v


def clean_username(v: str | None) -> str | None:
    # Usernames and emails share the sign-in field; a username never contains '@'.
    if v is None:
        return v
    v = v.strip()
    if "@" in v:
        raise ValueError("Username may not contain '@'")
    return v
