"""
Admin Audit Logs endpoints. Every query is scoped to the caller's restaurant.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from datetime import datetime, timedelta
from typing import Optional
import math

from sopmanager.core.database import get_db
from sopmanager.core.permissions import Permission
from sopmanager.models import User, AuditLog, AuditAction
from sopmanager.modules.auth.dependencies import CurrentStaff, require_permission
from sopmanager.schemas.audit import AuditLogResponse, AuditLogsResponse, AuditStatsResponse

router = APIRouter()


@router.get("", response_model=AuditLogsResponse)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[AuditAction] = None,
    resource_type: Optional[str] = Query(None, max_length=50),
    user_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    staff: CurrentStaff = Depends(require_permission(Permission.AUDIT_READ))
):
    """List audit logs with filtering and pagination"""
    conditions = [AuditLog.restaurant_id == staff.restaurant_id]
    if action:
        conditions.append(AuditLog.action == action)
    if resource_type:
        conditions.append(AuditLog.resource_type == resource_type)
    if user_id:
        conditions.append(AuditLog.user_id == user_id)
    if start_date:
        conditions.append(AuditLog.created_at >= start_date)
    if end_date:
        conditions.append(AuditLog.created_at <= end_date)

    total = await db.scalar(select(func.count(AuditLog.id)).where(and_(*conditions)))

    offset = (page - 1) * page_size
    query = (
        select(AuditLog, User)
        .outerjoin(User, AuditLog.user_id == User.id)
        .where(and_(*conditions))
        .order_by(AuditLog.created_at.desc())
        .offset(offset)
        .limit(page_size)
    )
    result = await db.execute(query)

    items = []
    for log, user in result.all():
        items.append(AuditLogResponse(
            id=str(log.id),
            user_id=str(log.user_id) if log.user_id else None,
            user_email=user.email if user else None,
            user_name=user.full_name if user else None,
            action=log.action,
            resource_type=log.resource_type,
            resource_id=str(log.resource_id) if log.resource_id else None,
            old_values=log.old_values,
            new_values=log.new_values,
            metadata=log.extra_metadata,
            ip_address=log.ip_address,
            created_at=log.created_at
        ))

    return AuditLogsResponse(
        items=items,
        total=total or 0,
        page=page,
        page_size=page_size,
        total_pages=math.ceil((total or 0) / page_size) if total and total > 0 else 1
    )


@router.get("/stats", response_model=AuditStatsResponse)
async def get_audit_stats(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    staff: CurrentStaff = Depends(require_permission(Permission.AUDIT_READ))
):
    """Get audit log statistics"""
    now = datetime.utcnow()
    start_date = now - timedelta(days=days)
    tenant = AuditLog.restaurant_id == staff.restaurant_id

    total_logs = await db.scalar(select(func.count(AuditLog.id)).where(tenant))

    logs_in_period = await db.scalar(
        select(func.count(AuditLog.id)).where(tenant, AuditLog.created_at >= start_date)
    )

    # Logs by action
    result = await db.execute(
        select(AuditLog.action, func.count(AuditLog.id).label("count"))
        .where(tenant, AuditLog.created_at >= start_date)
        .group_by(AuditLog.action)
        .order_by(func.count(AuditLog.id).desc())
    )
    logs_by_action = {row.action.value: row.count for row in result}

    # Logs by resource type
    result = await db.execute(
        select(AuditLog.resource_type, func.count(AuditLog.id).label("count"))
        .where(tenant, AuditLog.created_at >= start_date)
        .group_by(AuditLog.resource_type)
        .order_by(func.count(AuditLog.id).desc())
        .limit(10)
    )
    logs_by_resource = {row.resource_type: row.count for row in result}

    # Logs by user
    result = await db.execute(
        select(User.email, func.count(AuditLog.id).label("count"))
        .join(AuditLog, User.id == AuditLog.user_id)
        .where(tenant, AuditLog.created_at >= start_date)
        .group_by(User.email)
        .order_by(func.count(AuditLog.id).desc())
        .limit(10)
    )
    logs_by_user = {row.email: row.count for row in result}

    # Daily activity
    daily_activity = []
    for i in range(min(days, 30)):
        day = now - timedelta(days=i)
        day_start = day.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end = day_start + timedelta(days=1)

        count = await db.scalar(
            select(func.count(AuditLog.id)).where(
                and_(
                    tenant,
                    AuditLog.created_at >= day_start,
                    AuditLog.created_at < day_end
                )
            )
        )
        daily_activity.append({
            "date": day_start.strftime("%Y-%m-%d"),
            "count": count or 0
        })

    daily_activity.reverse()

    return {
        "total_logs": total_logs or 0,
        "logs_in_period": logs_in_period or 0,
        "period_days": days,
        "logs_by_action": logs_by_action,
        "logs_by_resource": logs_by_resource,
        "logs_by_user": logs_by_user,
        "daily_activity": daily_activity
    }
