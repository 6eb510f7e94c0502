"""
End-user profile reads and updates.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, NotFoundError
from app.models.user import User
from app.schemas.user import ProfileUpdate
from app.services.accounts import find_user_by_username

logger = logging.getLogger(__name__)


async def get_profile(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def update_profile(db: AsyncSession, user_id: str, data: ProfileUpdate) -> User:
    user = await get_profile(db, user_id)
    changes = data.model_dump(exclude_unset=True)

    username = changes.get("username")
    if username:
        holder = await find_user_by_username(db, username)
        if holder is not None and holder.id != user.id:
            raise BadRequestError("Username is taken")

    for field, value in changes.items():
        setattr(user, field, value)
    await db.commit()
    await db.refresh(user)
    logger.info("Profile updated for user %s: %s", user.id, sorted(changes))
    return user
