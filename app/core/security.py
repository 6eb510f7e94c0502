"""
Password hashing (argon2 via passlib) and per-purpose token signing.

Every token purpose carries its own secret and lifetime, so a key leaked
for one purpose cannot mint tokens for another.
"""

from __future__ import annotations

import enum
import hashlib
import hmac
import secrets
import time
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from app.core.config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

_ALGORITHM = settings.JWT_ALGORITHM


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return pwd_context.hash(secrets.token_urlsafe(16))


async def hash_password_async(plain: str) -> str:
    return await run_in_threadpool(hash_password, plain)


async def verify_password_async(plain: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password, plain, hashed)


async def verify_password_or_dummy(plain: str, hashed: str | None) -> bool:
    """Verify *plain* against *hashed*, paying the same cost when there is no hash.

    Used on sign-in so an unknown identifier takes as long as a wrong
    password. Always ``False`` when *hashed* is ``None``.
    """
    if hashed is None:
        await verify_password_async(plain, _dummy_hash())
        return False
    return await verify_password_async(plain, hashed)


# ── Token purposes ──────────────────────────────────────────────────
class TokenPurpose(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    VERIFY = "verify"
    RESET = "reset"

    @property
    def secret(self) -> str:
        match self:
            case TokenPurpose.ACCESS:
                return settings.ACCESS_SECRET
            case TokenPurpose.REFRESH:
                return settings.REFRESH_SECRET
            case TokenPurpose.VERIFY:
                return settings.VERIFY_SECRET
            case TokenPurpose.RESET:
                return settings.RESET_SECRET

    @property
    def lifetime(self) -> timedelta:
        match self:
            case TokenPurpose.ACCESS:
                return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
            case TokenPurpose.REFRESH:
                return timedelta(hours=settings.REFRESH_TOKEN_EXPIRE_HOURS)
            case TokenPurpose.VERIFY:
                return timedelta(hours=settings.VERIFY_TOKEN_EXPIRE_HOURS)
            case TokenPurpose.RESET:
                return timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)


# ── JWT tokens ──────────────────────────────────────────────────────
def create_token(
    purpose: TokenPurpose,
    claims: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Sign *claims* for *purpose*.

    ``iat`` keeps sub-second precision so that account-wide revocation can
    tell apart tokens minted in the same second as the revocation marker.
    """
    issued_at = time.time()
    expire = datetime.fromtimestamp(issued_at, timezone.utc) + (
        expires_delta or purpose.lifetime
    )
    payload = {
        **claims,
        "type": purpose.value,
        "iat": issued_at,
        "exp": expire,
    }
    return jwt.encode(payload, purpose.secret, algorithm=_ALGORITHM)


def create_token_pair(claims: dict[str, Any]) -> tuple[str, str]:
    return (
        create_token(TokenPurpose.ACCESS, claims),
        create_token(TokenPurpose.REFRESH, claims),
    )


def decode_token(purpose: TokenPurpose, token: str) -> dict | None:
    """Return payload dict if *token* is a valid *purpose* token, else ``None``."""
    try:
        payload = jwt.decode(token, purpose.secret, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != purpose.value or not payload.get("sub"):
        return None
    return payload


def peek_claims(token: str) -> dict | None:
    """Read claims without checking the signature. Never trust the result."""
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        return None


def remaining_lifetime(token: str, ceiling: timedelta) -> int:
    """Seconds until *token* expires, capped at *ceiling* (and at least 1)."""
    cap = int(ceiling.total_seconds())
    claims = peek_claims(token)
    if not claims or not isinstance(claims.get("exp"), (int, float)):
        return cap
    left = int(claims["exp"] - time.time())
    return max(1, min(left, cap))


# ── Opaque single-use tokens ────────────────────────────────────────
def new_opaque_token() -> str:
    return secrets.token_urlsafe(32)


def digest_opaque_token(purpose: TokenPurpose, token: str) -> str:
    """Keyed digest stored in place of the raw token."""
    return hmac.new(
        purpose.secret.encode("utf-8"), token.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def opaque_token_expiry(purpose: TokenPurpose) -> datetime:
    return datetime.now(timezone.utc) + purpose.lifetime


def create_otp(length: int = 5) -> str:
    """Numeric one-time code."""
    return "".join(str(secrets.randbelow(10)) for _ in range(length))
