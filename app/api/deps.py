"""
FastAPI dependencies — database session, shared handles and the request
authenticator.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from functools import lru_cache

from fastapi import BackgroundTasks, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import TokenCache
from app.core.exceptions import UnauthorizedError
from app.core.security import TokenPurpose, decode_token, peek_claims
from app.db.session import async_session_factory
from app.models.role import Role
from app.models.staff import Staff
from app.services.accounts import Principal, get_account
from app.services.auth import AuthService
from app.services.email import EmailService
from app.services.staff import StaffService

logger = logging.getLogger(__name__)

# auto_error=False so a missing header becomes our own 401 / 403, not FastAPI's.
bearer_scheme = HTTPBearer(auto_error=False)


# ── Shared handles ──────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_cache(request: Request) -> TokenCache:
    return request.app.state.token_cache


@lru_cache(maxsize=1)
def get_mailer() -> EmailService:
    return EmailService.from_settings()


def get_auth_service(
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    cache: TokenCache = Depends(get_cache),
    mailer: EmailService = Depends(get_mailer),
) -> AuthService:
    return AuthService(db, cache, mailer, background)


def get_staff_service(
    db: AsyncSession = Depends(get_db),
    cache: TokenCache = Depends(get_cache),
    mailer: EmailService = Depends(get_mailer),
) -> StaffService:
    return StaffService(db, cache, mailer)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    return credentials.credentials if credentials else None


# ── Request authenticator ───────────────────────────────────────────
async def get_current_principal(
    request: Request,
    token: str | None = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
    cache: TokenCache = Depends(get_cache),
) -> Principal:
    """Authenticate the bearer token and attach the caller to ``request.state``.

    Revocation is checked before the signature so a revoked token never
    costs a verification; every rejection is the same 401.
    """
    if not token:
        raise UnauthorizedError("Not authenticated")

    if await cache.is_token_blacklisted(token):
        raise UnauthorizedError("Access has been revoked")

    unverified = peek_claims(token)
    if not unverified or not isinstance(unverified.get("sub"), str):
        raise UnauthorizedError()
    if await cache.is_revoked_for_account(unverified["sub"], unverified.get("iat")):
        raise UnauthorizedError("Access has been revoked")

    payload = decode_token(TokenPurpose.ACCESS, token)
    if payload is None:
        raise UnauthorizedError()

    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise UnauthorizedError()

    account = await get_account(db, role.kind, payload["sub"])
    if account is None:
        raise UnauthorizedError()
    if isinstance(account, Staff) and not account.is_active:
        raise UnauthorizedError("Account is deactivated")

    principal = Principal.from_account(account)
    request.state.principal = principal
    return principal
