"""
Roles and account kinds — closed enumerations used for RBAC.
"""

from __future__ import annotations

import enum


class AccountKind(str, enum.Enum):
    USER = "user"
    STAFF = "staff"


class Role(str, enum.Enum):
    ADMIN = "admin"
    LEAD_GUIDE = "lead_guide"
    GUIDE = "guide"
    USER = "user"

    @property
    def kind(self) -> AccountKind:
        match self:
            case Role.USER:
                return AccountKind.USER
            case Role.ADMIN | Role.LEAD_GUIDE | Role.GUIDE:
                return AccountKind.STAFF

    @property
    def is_staff(self) -> bool:
        return self.kind is AccountKind.STAFF


STAFF_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.LEAD_GUIDE, Role.GUIDE})


def default_permissions(role: Role) -> list[str]:
    """Permission set granted to a staff member at creation."""
    match role:
        case Role.ADMIN:
            return ["create_staff", "manage_users", "view_all_data", "system_config"]
        case Role.LEAD_GUIDE:
            return ["manage_guides", "view_reports", "schedule_tours"]
        case Role.GUIDE:
            return ["view_schedule", "update_profile"]
        case Role.USER:
            return []
