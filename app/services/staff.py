"""
Staff provisioning — OTP-gated admin creation and staff CRUD.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import time

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import TokenCache
from app.core.config import settings
from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.security import create_otp, hash_password_async
from app.models.role import Role, default_permissions
from app.models.staff import Staff
from app.schemas.staff import AdminCreate, StaffCreate, StaffUpdate
from app.services.accounts import find_staff_by_email
from app.services.email import EmailService

logger = logging.getLogger(__name__)


def generate_employee_id(first_name: str, last_name: str | None) -> str:
    stamp = int(time.time() * 1000)
    return f"EMP-{first_name}.{last_name or ''}-{stamp}-{secrets.token_hex(2)}"


class StaffService:
    def __init__(self, db: AsyncSession, cache: TokenCache, mailer: EmailService) -> None:
        self.db = db
        self.cache = cache
        self.mailer = mailer

    async def generate_admin_otp(self, email: str) -> None:
        otp = create_otp()
        await self.cache.store_otp(settings.ADMIN_OTP_PREFIX, email, otp, settings.OTP_TTL_SECONDS)
        await self.mailer.send_otp_email(email, otp)
        logger.info("Admin OTP issued")

    async def create_admin(self, data: AdminCreate) -> Staff:
        entry = await self.cache.get_otp(settings.ADMIN_OTP_PREFIX, data.email)
        if entry is None:
            raise ForbiddenError("Invalid or expired OTP")
        if entry.get("used"):
            raise ForbiddenError("OTP already used")
        if not hmac.compare_digest(str(entry.get("otp", "")), data.otp):
            raise ForbiddenError("Invalid OTP")
        if await find_staff_by_email(self.db, data.email):
            raise ForbiddenError("Admin already exists")
        if not await self.cache.consume_otp(settings.ADMIN_OTP_PREFIX, data.email):
            raise ForbiddenError("OTP already used")

        return await self._create(
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
            role=Role.ADMIN,
            department="Administration",
            created_by=None,
        )

    async def create_staff(self, data: StaffCreate, creator_id: str) -> Staff:
        if await find_staff_by_email(self.db, data.email):
            raise ForbiddenError("Staff already exists")
        return await self._create(
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
            role=data.role,
            department=data.department or "General",
            created_by=creator_id,
        )

    async def _create(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str | None,
        role: Role,
        department: str,
        created_by: str | None,
    ) -> Staff:
        staff = Staff(
            email=email,
            hashed_password=await hash_password_async(password),
            first_name=first_name,
            last_name=last_name,
            role=role.value,
            department=department,
            employee_id=generate_employee_id(first_name, last_name),
            permissions=default_permissions(role),
            is_active=True,
            has_pwd_changed=False,
            created_by=created_by,
        )
        self.db.add(staff)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ForbiddenError("Staff already exists")
        await self.db.refresh(staff)
        logger.info("Created %s staff member %s", role.value, staff.id)
        return staff

    async def list_staff(self) -> list[Staff]:
        result = await self.db.execute(select(Staff).order_by(Staff.created_at))
        return list(result.scalars().all())

    async def get_staff(self, staff_id: str) -> Staff:
        staff = await self.db.get(Staff, staff_id)
        if staff is None:
            raise NotFoundError("Staff not found")
        return staff

    async def update_staff(self, staff_id: str, data: StaffUpdate) -> Staff:
        staff = await self.get_staff(staff_id)
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if field == "role":
                role = Role(value)
                staff.role = role.value
                staff.permissions = default_permissions(role)
            else:
                setattr(staff, field, value)
        await self.db.commit()
        await self.db.refresh(staff)
        logger.info("Staff %s updated: %s", staff.id, sorted(changes))
        return staff

    async def deactivate_staff(self, staff_id: str) -> Staff:
        staff = await self.get_staff(staff_id)
        staff.is_active = False
        await self.db.commit()
        await self.db.refresh(staff)
        logger.info("Staff %s deactivated", staff.id)
        return staff

    async def delete_staff(self, staff_id: str) -> Staff:
        staff = await self.get_staff(staff_id)
        await self.db.delete(staff)
        await self.db.commit()
        logger.info("Staff %s deleted", staff_id)
        return staff
