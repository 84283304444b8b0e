from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.core.permissions import Permission
from sopmanager.modules.auth.dependencies import CurrentStaff, require_permission
from sopmanager.schemas.sop import CategoryCreate, CategoryUpdate, CategoryResponse
from sopmanager.services.sop_service import sop_service

router = APIRouter()


@router.get("", response_model=List[CategoryResponse])
async def list_categories(
    include_inactive: bool = Query(False),
    with_counts: bool = Query(True, description="Count active documents of the caller's restaurant"),
    staff: CurrentStaff = Depends(require_permission(Permission.CATEGORY_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Categories sorted by sort_order"""
    if include_inactive and not staff.can(Permission.CATEGORY_WRITE):
        include_inactive = False

    pairs = await sop_service.list_categories(db, staff.restaurant_id, include_inactive, with_counts)
    return [
        CategoryResponse.model_validate(category).model_copy(update={"document_count": count})
        for category, count in pairs
    ]


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.CATEGORY_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await sop_service.get_category(db, category_id)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    staff: CurrentStaff = Depends(require_permission(Permission.CATEGORY_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    return await sop_service.create_category(db, data, actor=staff.user, context=staff.audit)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    staff: CurrentStaff = Depends(require_permission(Permission.CATEGORY_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    return await sop_service.update_category(db, category_id, data, actor=staff.user, context=staff.audit)


@router.delete("/{category_id}", response_model=CategoryResponse)
async def deactivate_category(
    category_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.CATEGORY_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Deactivate; refused while any active document uses the category"""
    return await sop_service.deactivate_category(db, category_id, actor=staff.user, context=staff.audit)
