"""Bookmarks and completion records for SOP documents"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.core.permissions import Permission
from sopmanager.modules.auth.dependencies import CurrentStaff, get_current_staff, require_permission
from sopmanager.schemas.auth import MessageResponse
from sopmanager.schemas.sop import (
    BookmarkCreate,
    BookmarkResponse,
    CompletionCreate,
    CompletionVerify,
    CompletionResponse,
    CompletionListResponse,
)
from sopmanager.services.sop_activity_service import sop_activity_service

bookmarks_router = APIRouter()
completions_router = APIRouter()


# ==================== BOOKMARKS ====================

@bookmarks_router.get("", response_model=List[BookmarkResponse])
async def list_bookmarks(
    staff: CurrentStaff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """Own bookmarks, newest first"""
    return await sop_activity_service.list_bookmarks(db, staff.user)


@bookmarks_router.post("", response_model=BookmarkResponse, status_code=status.HTTP_201_CREATED)
async def create_bookmark(
    data: BookmarkCreate,
    staff: CurrentStaff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """Staff without write access can only bookmark approved SOPs"""
    return await sop_activity_service.create_bookmark(
        db, staff.user, data,
        approved_only=not staff.can(Permission.SOP_WRITE),
        context=staff.audit,
    )


@bookmarks_router.delete("/{bookmark_id}", response_model=MessageResponse)
async def delete_bookmark(
    bookmark_id: str,
    staff: CurrentStaff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    await sop_activity_service.delete_bookmark(db, staff.user, bookmark_id, context=staff.audit)
    return MessageResponse(message="Bookmark removed")


# ==================== COMPLETIONS ====================

@completions_router.post("", response_model=CompletionResponse, status_code=status.HTTP_201_CREATED)
async def record_completion(
    data: CompletionCreate,
    staff: CurrentStaff = Depends(require_permission(Permission.SOP_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Record that the caller worked through an approved SOP"""
    return await sop_activity_service.record_completion(db, staff.user, data, context=staff.audit)


@completions_router.get("", response_model=CompletionListResponse)
async def list_completions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    user_id: Optional[str] = None,
    sop_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    include_stats: bool = False,
    staff: CurrentStaff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """Staff see their own completions; managers may look at anyone in the restaurant"""
    if not staff.can(Permission.SOP_APPROVE):
        user_id = staff.user.id

    return await sop_activity_service.list_completions(
        db,
        staff.restaurant_id,
        user_id=user_id,
        sop_id=sop_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        page_size=page_size,
        include_stats=include_stats,
    )


@completions_router.post("/{completion_id}/verify", response_model=CompletionResponse)
async def verify_completion(
    completion_id: str,
    data: CompletionVerify,
    staff: CurrentStaff = Depends(require_permission(Permission.SOP_APPROVE)),
    db: AsyncSession = Depends(get_db)
):
    """Sign off a completion with a 1-5 quality rating"""
    return await sop_activity_service.verify_completion(
        db, staff.restaurant_id, completion_id, data, actor=staff.user, context=staff.audit
    )
