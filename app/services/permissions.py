"""Permission bit vocabulary.

Each capability is one bit of an integer mask. The values are persisted in
``principals.permission_mask`` and must never be renumbered.
"""

import enum
from functools import reduce


class Permission(enum.IntFlag):
    CREATE = 1
    EDIT = 2
    DELETE = 4
    VIEW = 8
    DERIVE = 16
    AUDIT = 32
    EXPORT = 64
    ADMINISTER = 128
    # Historical name of the ADMINISTER bit
    BLOCK = 128


ALL_PERMISSIONS = (
    Permission.CREATE
    | Permission.EDIT
    | Permission.DELETE
    | Permission.VIEW
    | Permission.DERIVE
    | Permission.AUDIT
    | Permission.EXPORT
    | Permission.ADMINISTER
)

ROLE_PRESETS: dict[str, Permission] = {
    "admin": ALL_PERMISSIONS,
    "mesa_partes": Permission.CREATE
    | Permission.EDIT
    | Permission.VIEW
    | Permission.DERIVE
    | Permission.EXPORT,
    "area_responsable": Permission.CREATE
    | Permission.EDIT
    | Permission.VIEW
    | Permission.DERIVE
    | Permission.EXPORT,
    "auditor": Permission.VIEW | Permission.AUDIT | Permission.EXPORT,
}


def has_permission(mask: int, capability: Permission) -> bool:
    """Return True when every bit of ``capability`` is set in ``mask``."""
    if not isinstance(capability, Permission):
        raise TypeError(
            f"capability must be a Permission flag, got {type(capability).__name__}"
        )
    return (int(mask) & capability.value) == capability.value


def combine(*capabilities: Permission) -> Permission:
    return reduce(lambda acc, cap: acc | cap, capabilities, Permission(0))


def permission_names(mask: int) -> list[str]:
    return sorted(
        name
        for name, member in Permission.__members__.items()
        if member.name == name and has_permission(mask, member)
    )
