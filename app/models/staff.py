"""
Staff account model — admins and guides provisioned by an administrator.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, String

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Staff(Base):
    __tablename__ = "staff"

    id: str = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(255), nullable=False)  # type: ignore[assignment]
    role: str = Column(String(20), nullable=False)  # type: ignore[assignment]  # admin | lead_guide | guide
    first_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    last_name: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    employee_id: str = Column(String(120), unique=True, nullable=False)  # type: ignore[assignment]
    department: str = Column(String(100), nullable=False, default="General")  # type: ignore[assignment]
    permissions: list[str] = Column(JSON, nullable=False, default=list)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true", nullable=False)  # type: ignore[assignment]
    has_pwd_changed: bool = Column(Boolean, default=False, server_default="false", nullable=False)  # type: ignore[assignment]
    created_by: str | None = Column(String(36), nullable=True)  # type: ignore[assignment]

    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]
    updated_at: datetime = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)  # type: ignore[assignment]
