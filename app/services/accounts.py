"""
Account lookups shared by the auth, user and staff services.

End users are matched case-insensitively on email or username; staff on
their email alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.role import AccountKind, Role
from app.models.staff import Staff
from app.models.user import User

Account = User | Staff


async def find_user_by_identifier(db: AsyncSession, identifier: str) -> User | None:
    value = identifier.strip().lower()
    result = await db.execute(
        select(User).where(
            or_(func.lower(User.email) == value, func.lower(User.username) == value)
        )
    )
    return result.scalars().first()


async def find_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(
        select(User).where(func.lower(User.email) == email.strip().lower())
    )
    return result.scalar_one_or_none()


async def find_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(
        select(User).where(func.lower(User.username) == username.strip().lower())
    )
    return result.scalar_one_or_none()


async def find_staff_by_email(db: AsyncSession, email: str) -> Staff | None:
    result = await db.execute(select(Staff).where(func.lower(Staff.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_account(db: AsyncSession, kind: AccountKind, account_id: str) -> Account | None:
    match kind:
        case AccountKind.USER:
            return await db.get(User, account_id)
        case AccountKind.STAFF:
            return await db.get(Staff, account_id)


def is_verified(account: Account) -> bool:
    # Staff are provisioned by an administrator and have no email flow.
    if isinstance(account, User):
        return bool(account.is_verified)
    return True


def account_claims(account: Account) -> dict[str, Any]:
    """Identity claims embedded in access and refresh tokens."""
    return {
        "sub": account.id,
        "email": account.email,
        "role": Role(account.role).value,
        "verified": is_verified(account),
    }


@dataclass(frozen=True)
class Principal:
    """Authenticated caller attached to the request."""

    id: str
    email: str
    role: Role
    is_verified: bool
    has_pwd_changed: bool = True

    @property
    def kind(self) -> AccountKind:
        return self.role.kind

    @classmethod
    def from_account(cls, account: Account) -> Principal:
        return cls(
            id=account.id,
            email=account.email,
            role=Role(account.role),
            is_verified=is_verified(account),
            has_pwd_changed=account.has_pwd_changed if isinstance(account, Staff) else True,
        )
