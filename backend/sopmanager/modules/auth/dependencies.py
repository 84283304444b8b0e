from dataclasses import dataclass
from typing import Optional, FrozenSet

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.config import settings
from sopmanager.core.database import get_db
from sopmanager.core.exceptions import AuthenticationError, AuthorizationError
from sopmanager.core.logging_config import set_user_id, set_restaurant_id
from sopmanager.core.permissions import Permission, get_role_permissions
from sopmanager.core.security import decode_token
from sopmanager.models.session import StaffSession
from sopmanager.models.user import User, UserRole
from sopmanager.services.audit_service import AuditContext
from sopmanager.services.auth_service import auth_service

security = HTTPBearer(auto_error=False)


@dataclass
class CurrentStaff:
    """Authenticated staff member plus the session the request rides on"""
    user: User
    session: StaffSession
    permissions: FrozenSet[Permission]
    audit: AuditContext

    @property
    def restaurant_id(self) -> str:
        return self.user.restaurant_id

    def can(self, permission: Permission) -> bool:
        return permission in self.permissions


def get_client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_audit_context(request: Request, session_id: Optional[str] = None) -> AuditContext:
    return AuditContext(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        session_id=session_id,
    )


def _request_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Bearer header first, then the session cookie"""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_current_staff(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> CurrentStaff:
    """Get current authenticated staff member"""
    token = _request_token(request, credentials)
    if not token:
        raise AuthenticationError()

    payload = decode_token(token)
    user, session = await auth_service.resolve_session(db, payload)

    # Rate limiting and log lines key off these
    request.state.user_id = user.id
    set_user_id(user.id)
    set_restaurant_id(user.restaurant_id)

    return CurrentStaff(
        user=user,
        session=session,
        permissions=get_role_permissions(user.role),
        audit=get_audit_context(request, session.id),
    )


def require_permission(permission: Permission):
    """
    Dependency factory guarding an endpoint with one permission.

    Usage:
        @router.post("/")
        async def create(staff: CurrentStaff = Depends(require_permission(Permission.SOP_WRITE))):
            ...
    """
    async def checker(staff: CurrentStaff = Depends(get_current_staff)) -> CurrentStaff:
        if not staff.can(permission):
            raise AuthorizationError(
                f"Permission '{permission.value}' required",
                permission=permission.value,
            )
        return staff

    return checker


async def get_current_admin(
    staff: CurrentStaff = Depends(get_current_staff)
) -> CurrentStaff:
    """Get current admin"""
    if staff.user.role != UserRole.ADMIN:
        raise AuthorizationError("Admin access required")
    return staff


async def get_current_manager(
    staff: CurrentStaff = Depends(get_current_staff)
) -> CurrentStaff:
    """Managers and admins"""
    if staff.user.role not in (UserRole.MANAGER, UserRole.ADMIN):
        raise AuthorizationError("Manager access required")
    return staff
