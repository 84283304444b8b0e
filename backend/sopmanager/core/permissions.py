"""Role → permission table for restaurant staff"""

import enum
from typing import Dict, FrozenSet


class Permission(str, enum.Enum):
    SOP_READ = "sop:read"
    SOP_WRITE = "sop:write"
    SOP_APPROVE = "sop:approve"
    CATEGORY_READ = "category:read"
    CATEGORY_WRITE = "category:write"
    TRAINING_READ = "training:read"
    TRAINING_WRITE = "training:write"
    ASSIGNMENT_READ = "assignment:read"
    ASSIGNMENT_WRITE = "assignment:write"
    ASSIGNMENT_READ_OWN = "assignment:read_own"
    ASSIGNMENT_UPDATE_OWN = "assignment:update_own"
    ANALYTICS_READ = "analytics:read"
    USER_READ = "user:read"
    USER_WRITE = "user:write"
    AUDIT_READ = "audit:read"
    TRANSLATION_READ = "translation:read"
    TRANSLATION_WRITE = "translation:write"
    TRANSLATION_PUBLISH = "translation:publish"
    RESTAURANT_WRITE = "restaurant:write"
    SYSTEM_ADMIN = "system:admin"


MANAGER_PERMISSIONS = frozenset({
    Permission.SOP_READ,
    Permission.SOP_WRITE,
    Permission.SOP_APPROVE,
    Permission.CATEGORY_READ,
    Permission.CATEGORY_WRITE,
    Permission.TRAINING_READ,
    Permission.TRAINING_WRITE,
    Permission.ASSIGNMENT_READ,
    Permission.ASSIGNMENT_WRITE,
    Permission.ANALYTICS_READ,
    Permission.USER_READ,
    Permission.AUDIT_READ,
    Permission.TRANSLATION_READ,
    Permission.TRANSLATION_WRITE,
})

STAFF_PERMISSIONS = frozenset({
    Permission.SOP_READ,
    Permission.CATEGORY_READ,
    Permission.TRAINING_READ,
    Permission.ASSIGNMENT_READ_OWN,
    Permission.ASSIGNMENT_UPDATE_OWN,
})

ROLE_PERMISSIONS: Dict[str, FrozenSet[Permission]] = {
    "admin": frozenset(Permission),
    "manager": MANAGER_PERMISSIONS,
    "staff": STAFF_PERMISSIONS,
}


def get_role_permissions(role) -> FrozenSet[Permission]:
    role_name = getattr(role, "value", role)
    return ROLE_PERMISSIONS.get(role_name, frozenset())


def has_permission(role, permission: Permission) -> bool:
    return permission in get_role_permissions(role)
