"""Authorization gate for principals.

``can_act_on`` is the only place that decides whether a principal may use a
capability. The ADMINISTER override is applied here and nowhere else.
"""

import uuid
from dataclasses import dataclass

from app.config import settings
from app.models.records import Principal
from app.services.permissions import Permission, has_permission


@dataclass(frozen=True)
class RoleAssignment:
    principal_id: uuid.UUID
    area_id: uuid.UUID
    permission_mask: Permission
    is_blocked: bool

    @classmethod
    def resolve(cls, principal: Principal) -> "RoleAssignment":
        # An inactive principal is blocked for every purpose
        blocked = bool(principal.is_blocked) or principal.is_active is False
        return cls(
            principal_id=principal.id,
            area_id=principal.area_id,
            permission_mask=Permission(principal.permission_mask or 0),
            is_blocked=blocked,
        )

    def can_act_on(
        self, capability: Permission, administer_override: bool | None = None
    ) -> bool:
        if self.is_blocked:
            return False
        if administer_override is None:
            administer_override = settings.administer_override
        if administer_override and has_permission(
            self.permission_mask, Permission.ADMINISTER
        ):
            return True
        return has_permission(self.permission_mask, capability)

    def holds_area(self, area_id: uuid.UUID) -> bool:
        return self.area_id == area_id


def can_act_on(principal: Principal, capability: Permission) -> bool:
    return RoleAssignment.resolve(principal).can_act_on(capability)
