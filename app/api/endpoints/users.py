"""
User profile endpoints — end users only.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.api.guards import require_roles, require_verified
from app.models.role import Role
from app.schemas.common import Envelope
from app.schemas.user import ProfileUpdate, UserRead
from app.services import users as user_service
from app.services.accounts import Principal

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile", response_model=Envelope[UserRead])
async def get_profile(
    principal: Principal = Depends(require_roles(Role.USER)),
    db: AsyncSession = Depends(get_db),
) -> Envelope[UserRead]:
    user = await user_service.get_profile(db, principal.id)
    return Envelope(data=UserRead.model_validate(user))


@router.patch(
    "/profile",
    response_model=Envelope[UserRead],
    dependencies=[Depends(require_roles(Role.USER))],
)
async def update_profile(
    body: ProfileUpdate,
    principal: Principal = Depends(require_verified()),
    db: AsyncSession = Depends(get_db),
) -> Envelope[UserRead]:
    """Update profile fields; only verified accounts may edit."""
    user = await user_service.update_profile(db, principal.id, body)
    return Envelope(data=UserRead.model_validate(user), message="Profile updated")
