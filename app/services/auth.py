"""
Authentication core — registration, sign-in, email verification, token
refresh, logout and password flows.

Single-use verify/reset tokens are opaque random strings; only a keyed
digest is persisted and consumption is a conditional UPDATE that clears
the digest in the same statement.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from fastapi import BackgroundTasks
from redis.exceptions import RedisError
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import TokenCache
from app.core.config import settings
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.core.security import (TokenPurpose, create_token, create_token_pair,
                               decode_token, digest_opaque_token,
                               hash_password_async, new_opaque_token,
                               opaque_token_expiry, remaining_lifetime,
                               verify_password_async, verify_password_or_dummy)
from app.models.role import AccountKind, Role
from app.models.staff import Staff
from app.models.user import User
from app.schemas.auth import AccessToken, AuthData, RegisterRequest
from app.schemas.staff import StaffRead
from app.schemas.user import UserRead
from app.services.accounts import (Account, Principal, account_claims,
                                   find_staff_by_email, find_user_by_email,
                                   find_user_by_identifier,
                                   find_user_by_username, get_account)
from app.services.email import EmailService

logger = logging.getLogger(__name__)

BAD_CREDENTIALS = "Email/Username or Password Incorrect"
INVALID_VERIFY_TOKEN = "Invalid or expired verification token"
INVALID_REFRESH_TOKEN = "Invalid, expired or revoked refresh token"
INVALID_RESET_TOKEN = "Reset link expired or already used"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def account_read(account: Account) -> UserRead | StaffRead:
    if isinstance(account, Staff):
        return StaffRead.model_validate(account)
    return UserRead.model_validate(account)


def auth_data(account: Account) -> AuthData:
    access, refresh = create_token_pair(account_claims(account))
    return AuthData(account=account_read(account), access_token=access, refresh_token=refresh)


class AuthService:
    def __init__(
        self,
        db: AsyncSession,
        cache: TokenCache,
        mailer: EmailService,
        background: BackgroundTasks | None = None,
    ) -> None:
        self.db = db
        self.cache = cache
        self.mailer = mailer
        self.background = background

    async def _dispatch(self, send: Callable[..., Awaitable[bool]], *args: Any) -> None:
        """Queue an email after the response; send inline when there is no request."""
        if self.background is not None:
            self.background.add_task(send, *args)
        else:
            await send(*args)

    # ── Registration / verification ────────────────────────────────
    async def register(self, data: RegisterRequest) -> AuthData:
        if await find_user_by_email(self.db, data.email):
            raise ForbiddenError("Email is taken")
        if data.username and await find_user_by_username(self.db, data.username):
            raise ForbiddenError("Username is taken")

        token = new_opaque_token()
        user = User(
            email=data.email,
            username=data.username,
            hashed_password=await hash_password_async(data.password),
            role=data.role.value,
            first_name=data.first_name,
            last_name=data.last_name,
            avatar=data.avatar,
            is_verified=False,
            verification_token_hash=digest_opaque_token(TokenPurpose.VERIFY, token),
            verification_token_expires_at=opaque_token_expiry(TokenPurpose.VERIFY),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ForbiddenError("Email or username is taken")
        await self.db.refresh(user)
        logger.info("Registered user %s", user.id)

        await self._dispatch(
            self.mailer.send_verification_email,
            user.email,
            user.first_name,
            f"{settings.FRONTEND_URL}/verify-email?token={token}",
        )
        return auth_data(user)

    async def verify_email(self, token: str | None) -> AuthData:
        if not token:
            raise ForbiddenError("No token provided")

        digest = digest_opaque_token(TokenPurpose.VERIFY, token)
        result = await self.db.execute(
            select(User).where(User.verification_token_hash == digest)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise ForbiddenError(INVALID_VERIFY_TOKEN)
        if user.is_verified:
            raise ConflictError("User is already verified")

        now = _utcnow()
        consumed = await self.db.execute(
            update(User)
            .where(
                User.id == user.id,
                User.verification_token_hash == digest,
                User.is_verified.is_(False),
                User.verification_token_expires_at > now,
            )
            .values(
                is_verified=True,
                verification_token_hash=None,
                verification_token_expires_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if consumed.rowcount != 1:
            raise ForbiddenError(INVALID_VERIFY_TOKEN)

        await self.db.refresh(user)
        logger.info("Verified user %s", user.id)
        await self._dispatch(self.mailer.send_welcome_email, user.email, user.first_name)
        return auth_data(user)

    async def resend_verification(self, email: str) -> None:
        user = await find_user_by_email(self.db, email)
        if user is None:
            raise NotFoundError("User does not exist")
        if user.is_verified:
            raise ConflictError("User is already verified")

        token = new_opaque_token()
        user.verification_token_hash = digest_opaque_token(TokenPurpose.VERIFY, token)
        user.verification_token_expires_at = opaque_token_expiry(TokenPurpose.VERIFY)
        await self.db.commit()

        await self._dispatch(
            self.mailer.send_verification_email,
            user.email,
            user.first_name,
            f"{settings.FRONTEND_URL}/verify-email?token={token}",
        )

    # ── Sign-in / tokens ───────────────────────────────────────────
    async def login(self, identifier: str, password: str, role_hint: Role = Role.USER) -> AuthData:
        account: Account | None
        match role_hint.kind:
            case AccountKind.USER:
                account = await find_user_by_identifier(self.db, identifier)
            case AccountKind.STAFF:
                account = await find_staff_by_email(self.db, identifier.strip())

        matches = await verify_password_or_dummy(
            password, account.hashed_password if account is not None else None
        )
        if account is None or not matches:
            raise ForbiddenError(BAD_CREDENTIALS)
        if isinstance(account, Staff) and not account.is_active:
            raise ForbiddenError(BAD_CREDENTIALS)

        logger.info("Login succeeded for %s account %s", role_hint.kind.value, account.id)
        return auth_data(account)

    async def refresh(self, refresh_token: str) -> AccessToken:
        """Mint a new access token. The refresh token itself is not rotated."""
        if await self.cache.is_token_blacklisted(refresh_token):
            raise ForbiddenError(INVALID_REFRESH_TOKEN)

        payload = decode_token(TokenPurpose.REFRESH, refresh_token)
        if payload is None:
            raise ForbiddenError(INVALID_REFRESH_TOKEN)
        if await self.cache.is_revoked_for_account(payload["sub"], payload.get("iat")):
            raise ForbiddenError(INVALID_REFRESH_TOKEN)

        try:
            role = Role(payload.get("role"))
        except ValueError:
            raise ForbiddenError(INVALID_REFRESH_TOKEN)
        account = await get_account(self.db, role.kind, payload["sub"])
        if account is None or (isinstance(account, Staff) and not account.is_active):
            raise ForbiddenError(INVALID_REFRESH_TOKEN)

        return AccessToken(access_token=create_token(TokenPurpose.ACCESS, account_claims(account)))

    async def logout(self, access_token: str | None, refresh_token: str | None = None) -> None:
        if not access_token:
            raise ForbiddenError("No token provided")

        await self.cache.blacklist_token(
            access_token, remaining_lifetime(access_token, TokenPurpose.ACCESS.lifetime)
        )
        if refresh_token:
            try:
                await self.cache.blacklist_token(
                    refresh_token,
                    remaining_lifetime(refresh_token, TokenPurpose.REFRESH.lifetime),
                )
            except RedisError as e:
                logger.error("Failed to blacklist refresh token on logout: %s", e)

    async def logout_all(self, account_id: str) -> None:
        # The marker must outlive every token it can block.
        ttl = max(
            settings.USER_REVOCATION_TTL_SECONDS,
            int(TokenPurpose.REFRESH.lifetime.total_seconds()),
        )
        await self.cache.revoke_all_for_account(account_id, ttl)
        logger.info("Revoked all sessions of account %s", account_id)

    # ── Passwords ──────────────────────────────────────────────────
    async def forgot_password(self, email: str) -> None:
        user = await find_user_by_email(self.db, email)
        if user is None:
            raise NotFoundError("User does not exist")

        token = new_opaque_token()
        user.reset_token_hash = digest_opaque_token(TokenPurpose.RESET, token)
        user.reset_token_expires_at = opaque_token_expiry(TokenPurpose.RESET)
        await self.db.commit()

        await self._dispatch(
            self.mailer.send_password_reset_email,
            user.email,
            f"{settings.FRONTEND_URL}/reset-password?token={token}",
            user.first_name,
        )

    async def reset_password(self, token: str, password: str) -> None:
        if await self.cache.is_token_blacklisted(token):
            raise ForbiddenError(INVALID_RESET_TOKEN)

        digest = digest_opaque_token(TokenPurpose.RESET, token)
        result = await self.db.execute(select(User.id).where(User.reset_token_hash == digest))
        user_id = result.scalar_one_or_none()
        if user_id is None:
            raise ForbiddenError(INVALID_RESET_TOKEN)

        hashed = await hash_password_async(password)
        now = _utcnow()
        consumed = await self.db.execute(
            update(User)
            .where(
                User.id == user_id,
                User.reset_token_hash == digest,
                User.reset_token_expires_at > now,
            )
            .values(
                hashed_password=hashed,
                reset_token_hash=None,
                reset_token_expires_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if consumed.rowcount != 1:
            raise ForbiddenError(INVALID_RESET_TOKEN)

        await self.cache.blacklist_token(
            token, int(TokenPurpose.RESET.lifetime.total_seconds())
        )
        await self.logout_all(user_id)
        logger.info("Password reset for user %s", user_id)

    async def change_password(
        self, principal: Principal, old_password: str, new_password: str
    ) -> None:
        """Persist a new password, then revoke every session of the account."""
        account = await get_account(self.db, principal.kind, principal.id)
        if account is None:
            raise ForbiddenError("Account not found")
        if not await verify_password_async(old_password, account.hashed_password):
            raise ForbiddenError("Current password is incorrect")

        account.hashed_password = await hash_password_async(new_password)
        if isinstance(account, Staff):
            account.has_pwd_changed = True
        await self.db.commit()

        await self.logout_all(account.id)
        logger.info("Password changed for account %s", account.id)
