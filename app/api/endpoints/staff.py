"""
Staff management endpoints — admin provisioning and staff CRUD.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.api.deps import get_staff_service
from app.api.guards import require_password_changed, require_roles
from app.models.role import Role
from app.schemas.common import Envelope
from app.schemas.staff import (AdminCreate, OtpRequest, StaffCreate, StaffRead,
                               StaffUpdate)
from app.services.accounts import Principal
from app.services.staff import StaffService

router = APIRouter(prefix="/staff", tags=["staff"])

_admin_only = require_roles(Role.ADMIN)
_any_staff = require_roles(Role.ADMIN, Role.LEAD_GUIDE, Role.GUIDE)


@router.post("/otp", response_model=Envelope[None], status_code=status.HTTP_201_CREATED)
async def generate_admin_otp(
    body: OtpRequest,
    _admin: Principal = Depends(_admin_only),
    service: StaffService = Depends(get_staff_service),
) -> Envelope[None]:
    """Email a one-time code that authorises creating a new admin."""
    await service.generate_admin_otp(body.email)
    return Envelope(message="OTP sent")


@router.post("/admin", response_model=Envelope[StaffRead], status_code=status.HTTP_201_CREATED)
async def create_admin(
    body: AdminCreate,
    _admin: Principal = Depends(_admin_only),
    service: StaffService = Depends(get_staff_service),
) -> Envelope[StaffRead]:
    staff = await service.create_admin(body)
    return Envelope(data=StaffRead.model_validate(staff), message="Admin created successfully")


@router.post("/create", response_model=Envelope[StaffRead], status_code=status.HTTP_201_CREATED)
async def create_staff(
    body: StaffCreate,
    admin: Principal = Depends(_admin_only),
    service: StaffService = Depends(get_staff_service),
) -> Envelope[StaffRead]:
    staff = await service.create_staff(body, admin.id)
    return Envelope(data=StaffRead.model_validate(staff), message="Staff member created successfully")


@router.get("", response_model=Envelope[list[StaffRead]])
async def list_staff(
    _admin: Principal = Depends(_admin_only),
    service: StaffService = Depends(get_staff_service),
) -> Envelope[list[StaffRead]]:
    staff = await service.list_staff()
    return Envelope(data=[StaffRead.model_validate(s) for s in staff])


@router.get("/{staff_id}", response_model=Envelope[StaffRead])
async def get_staff(
    staff_id: str,
    _admin: Principal = Depends(_admin_only),
    service: StaffService = Depends(get_staff_service),
) -> Envelope[StaffRead]:
    staff = await service.get_staff(staff_id)
    return Envelope(data=StaffRead.model_validate(staff))


@router.patch("/deactivate/{staff_id}", response_model=Envelope[StaffRead])
async def deactivate_staff(
    staff_id: str,
    _caller: Principal = Depends(_any_staff),
    service: StaffService = Depends(get_staff_service),
) -> Envelope[StaffRead]:
    staff = await service.deactivate_staff(staff_id)
    return Envelope(data=StaffRead.model_validate(staff), message="Staff deactivated successfully")


@router.patch(
    "/{staff_id}",
    response_model=Envelope[StaffRead],
    dependencies=[Depends(_any_staff)],
)
async def update_staff(
    staff_id: str,
    body: StaffUpdate,
    _caller: Principal = Depends(require_password_changed()),
    service: StaffService = Depends(get_staff_service),
) -> Envelope[StaffRead]:
    """Update a staff member; callers still on a temporary password are refused."""
    staff = await service.update_staff(staff_id, body)
    return Envelope(data=StaffRead.model_validate(staff))


@router.delete("/{staff_id}", response_model=Envelope[StaffRead])
async def delete_staff(
    staff_id: str,
    _caller: Principal = Depends(_any_staff),
    service: StaffService = Depends(get_staff_service),
) -> Envelope[StaffRead]:
    staff = await service.delete_staff(staff_id)
    return Envelope(data=StaffRead.model_validate(staff), message="Staff deleted successfully")
