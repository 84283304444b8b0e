"""
Admin staff management. Accounts never leave the admin's own restaurant.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.core.permissions import Permission
from sopmanager.models.user import UserRole
from sopmanager.modules.auth.dependencies import CurrentStaff, get_current_manager, require_permission
from sopmanager.schemas.auth import UserResponse, MessageResponse
from sopmanager.schemas.user import StaffCreate, StaffUpdate, StaffResetPin, StaffListResponse
from sopmanager.services.user_service import user_service

router = APIRouter()


@router.get("", response_model=StaffListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    staff: CurrentStaff = Depends(require_permission(Permission.USER_READ)),
    db: AsyncSession = Depends(get_db)
):
    """List staff accounts with filtering and pagination"""
    return await user_service.list_staff(
        db, staff.restaurant_id, page=page, page_size=page_size,
        role=role, is_active=is_active, search=search,
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: StaffCreate,
    staff: CurrentStaff = Depends(require_permission(Permission.USER_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Create a staff account with an initial PIN"""
    return await user_service.create_staff(db, staff.restaurant_id, data, actor=staff.user, context=staff.audit)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.USER_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await user_service.get_staff(db, staff.restaurant_id, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    data: StaffUpdate,
    staff: CurrentStaff = Depends(require_permission(Permission.USER_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Update profile, role or active flag"""
    return await user_service.update_staff(
        db, staff.restaurant_id, user_id, data, actor=staff.user, context=staff.audit
    )


@router.post("/{user_id}/reset-pin", response_model=MessageResponse)
async def reset_user_pin(
    user_id: str,
    data: StaffResetPin,
    staff: CurrentStaff = Depends(require_permission(Permission.USER_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Assign a new PIN. Clears any lockout and ends the user's sessions."""
    user = await user_service.reset_pin(
        db, staff.restaurant_id, user_id, data.new_pin, actor=staff.user, context=staff.audit
    )
    return MessageResponse(message=f"PIN reset for {user.email}")


@router.post("/{user_id}/unlock", response_model=UserResponse)
async def unlock_user(
    user_id: str,
    staff: CurrentStaff = Depends(get_current_manager),
    db: AsyncSession = Depends(get_db)
):
    """Clear failed PIN attempts and lockout. Managers may unlock their staff."""
    return await user_service.unlock(db, staff.restaurant_id, user_id, actor=staff.user, context=staff.audit)


@router.delete("/{user_id}", response_model=MessageResponse)
async def deactivate_user(
    user_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.USER_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Deactivate an account. Staff rows are kept for the audit trail."""
    user = await user_service.deactivate(db, staff.restaurant_id, user_id, actor=staff.user, context=staff.audit)
    return MessageResponse(message=f"User {user.email} deactivated")
