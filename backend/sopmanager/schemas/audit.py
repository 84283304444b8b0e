from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime

from sopmanager.models.audit_log import AuditAction


class AuditLogResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    action: AuditAction
    resource_type: str
    resource_id: Optional[str] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime


class AuditLogsResponse(BaseModel):
    items: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class AuditStatsResponse(BaseModel):
    total_logs: int
    logs_in_period: int
    period_days: int
    logs_by_action: Dict[str, int]
    logs_by_resource: Dict[str, int]
    logs_by_user: Dict[str, int]
    daily_activity: List[Dict[str, Any]]
