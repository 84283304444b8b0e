"""
Audit Service - Writes the audit trail for mutations and auth events

Rows are added to the caller's session; the caller commits together with
the change being audited.
"""

import enum
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.logging_config import logger
from sopmanager.models.audit_log import AuditLog, AuditAction
from sopmanager.models.user import User


@dataclass
class AuditContext:
    """Request metadata stamped on audit rows"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None


def to_jsonable(value: Any) -> Any:
    """Convert enums and dates so values fit a JSON column"""
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    return value


def diff_values(old: Dict[str, Any], new: Dict[str, Any]):
    """Split two snapshots into the (old, new) pairs that actually differ"""
    changed = [k for k in new if old.get(k) != new.get(k)]
    return (
        {k: to_jsonable(old.get(k)) for k in changed},
        {k: to_jsonable(new.get(k)) for k in changed},
    )


class AuditService:
    """Service for recording audit log entries"""

    def record(
        self,
        db: AsyncSession,
        action: AuditAction,
        resource_type: str,
        resource_id: Optional[str] = None,
        user: Optional[User] = None,
        restaurant_id: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        context: Optional[AuditContext] = None,
    ) -> AuditLog:
        context = context or AuditContext()
        entry = AuditLog(
            restaurant_id=restaurant_id or (user.restaurant_id if user else None),
            user_id=user.id if user else None,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id else None,
            old_values=to_jsonable(old_values) if old_values else None,
            new_values=to_jsonable(new_values) if new_values else None,
            extra_metadata=to_jsonable(metadata) if metadata else None,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            session_id=context.session_id,
        )
        db.add(entry)

        logger.log_audit_event(
            action.value,
            resource_type,
            resource_id=str(resource_id) if resource_id else None,
            actor_id=str(user.id) if user else None,
        )
        return entry


audit_service = AuditService()
