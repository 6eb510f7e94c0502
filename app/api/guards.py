"""
Authorization guards — pure checks over the authenticated principal.

The ``check_*`` functions do no I/O; ``require_*`` wrap them as route
dependencies layered after ``get_current_principal``.
"""

from __future__ import annotations

from collections.abc import Callable, Collection

from fastapi import Depends

from app.api.deps import get_current_principal
from app.core.exceptions import ForbiddenError
from app.models.role import Role
from app.services.accounts import Principal


def check_roles(principal: Principal | None, allowed: Collection[Role]) -> None:
    if not allowed:
        return
    if principal is None:
        raise ForbiddenError("User not found in request")
    if principal.role not in allowed:
        raise ForbiddenError("Insufficient role")


def check_verified(principal: Principal | None, required: bool = True) -> None:
    if not required:
        return
    if principal is None:
        raise ForbiddenError("User not authenticated")
    if not principal.is_verified:
        raise ForbiddenError("Please verify your account to access this resource")


def check_password_changed(principal: Principal | None, required: bool = True) -> None:
    """Staff still on the temporary password set by an admin are held back."""
    if not required:
        return
    if principal is None:
        raise ForbiddenError("User not authenticated")
    if principal.role.is_staff and not principal.has_pwd_changed:
        raise ForbiddenError("Please change your temporary password to access this resource")


def require_roles(*roles: Role) -> Callable[..., Principal]:
    allowed = frozenset(roles)

    def _guard(principal: Principal = Depends(get_current_principal)) -> Principal:
        check_roles(principal, allowed)
        return principal

    return _guard


def require_verified() -> Callable[..., Principal]:
    def _guard(principal: Principal = Depends(get_current_principal)) -> Principal:
        check_verified(principal)
        return principal

    return _guard


def require_password_changed() -> Callable[..., Principal]:
    def _guard(principal: Principal = Depends(get_current_principal)) -> Principal:
        check_password_changed(principal)
        return principal

    return _guard
