# Authentication module

from sopmanager.modules.auth.dependencies import (
    CurrentStaff,
    get_current_staff,
    get_current_admin,
    get_current_manager,
    get_audit_context,
    require_permission,
)

__all__ = [
    "CurrentStaff",
    "get_current_staff",
    "get_current_admin",
    "get_current_manager",
    "get_audit_context",
    "require_permission",
]
