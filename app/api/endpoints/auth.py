"""
Auth endpoints — registration, login, verification, refresh, logout and
password flows.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import (get_auth_service, get_bearer_token,
                          get_current_principal, get_db)
from app.core.exceptions import UnauthorizedError
from app.core.rate_limit import limiter
from app.schemas.auth import (AccessToken, AuthData, ChangePasswordRequest,
                              EmailRequest, LoginRequest, LogoutRequest,
                              RefreshRequest, RegisterRequest,
                              ResetPasswordRequest)
from app.schemas.common import Envelope
from app.services.accounts import Principal, get_account
from app.services.auth import AuthService, account_read

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Envelope[AuthData], status_code=201)
@limiter.limit("3/hour")
async def register(
    request: Request,
    body: RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
) -> Envelope[AuthData]:
    """Create an unverified account and email a verification link."""
    data = await auth.register(body)
    return Envelope(data=data, message="Verify your email to activate your account.")


@router.post("/login", response_model=Envelope[AuthData])
@limiter.limit("5 per 15 minutes")
async def login(
    request: Request,
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> Envelope[AuthData]:
    data = await auth.login(body.email_or_username, body.password, body.role)
    return Envelope(data=data)


@router.post("/verify", response_model=Envelope[AuthData])
@limiter.limit("5 per 15 minutes")
async def verify(
    request: Request,
    token: Optional[str] = Query(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> Envelope[AuthData]:
    data = await auth.verify_email(token)
    return Envelope(data=data, message="Email verified successfully")


@router.post("/resend-verification", response_model=Envelope[None])
@limiter.limit("3/hour")
async def resend_verification(
    request: Request,
    body: EmailRequest,
    auth: AuthService = Depends(get_auth_service),
) -> Envelope[None]:
    await auth.resend_verification(body.email)
    return Envelope(message="Verification Mail Sent")


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("20 per 5 minutes")
async def logout(
    request: Request,
    body: Optional[LogoutRequest] = None,
    token: Optional[str] = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> None:
    """Revoke the presented access token and, if supplied, the refresh token."""
    await auth.logout(token, body.refresh_token if body else None)


@router.post("/logout-all", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("5/hour")
async def logout_all(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    auth: AuthService = Depends(get_auth_service),
) -> None:
    """Revoke every token issued so far for the caller's account."""
    await auth.logout_all(principal.id)


@router.post("/refresh", response_model=Envelope[AccessToken])
@limiter.limit("30 per 5 minutes")
async def refresh(
    request: Request,
    body: RefreshRequest,
    auth: AuthService = Depends(get_auth_service),
) -> Envelope[AccessToken]:
    data = await auth.refresh(body.refresh_token)
    return Envelope(data=data, message="Token refreshed successfully")


@router.post("/forgot-password", response_model=Envelope[None])
@limiter.limit("3/hour")
async def forgot_password(
    request: Request,
    body: EmailRequest,
    auth: AuthService = Depends(get_auth_service),
) -> Envelope[None]:
    await auth.forgot_password(body.email)
    return Envelope(message="Password reset email sent")


@router.post("/reset-password", response_model=Envelope[None])
@limiter.limit("3 per 15 minutes")
async def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
) -> Envelope[None]:
    await auth.reset_password(body.token, body.password)
    return Envelope(message="Password reset successfully. Log in again.")


@router.patch("/change-password", response_model=Envelope[None])
@limiter.limit("5/hour")
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    auth: AuthService = Depends(get_auth_service),
) -> Envelope[None]:
    """Change the caller's password and sign out every session.

    The body carries ``old_password`` as well as ``new_password``; the change
    is refused with 403 unless the current password matches.
    """
    await auth.change_password(principal, body.old_password, body.new_password)
    return Envelope(message="Password changed successfully. Log in again.")


@router.get("/me")
async def read_current_account(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> Envelope:
    """Return the profile of the currently authenticated account."""
    account = await get_account(db, principal.kind, principal.id)
    if account is None:
        raise UnauthorizedError()
    return Envelope(data=account_read(account).model_dump(mode="json"))
