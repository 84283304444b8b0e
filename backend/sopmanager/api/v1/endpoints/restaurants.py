from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.core.permissions import Permission
from sopmanager.modules.auth.dependencies import CurrentStaff, get_current_staff, require_permission
from sopmanager.schemas.restaurant import RestaurantResponse, RestaurantUpdate
from sopmanager.services.restaurant_service import restaurant_service

router = APIRouter()


@router.get("/current", response_model=RestaurantResponse)
async def get_current_restaurant(
    staff: CurrentStaff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """The caller's restaurant"""
    return await restaurant_service.get_restaurant(db, staff.restaurant_id)


@router.patch("/current", response_model=RestaurantResponse)
async def update_current_restaurant(
    data: RestaurantUpdate,
    staff: CurrentStaff = Depends(require_permission(Permission.RESTAURANT_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Update the restaurant profile (admin only)"""
    return await restaurant_service.update_restaurant(
        db, staff.restaurant_id, data, actor=staff.user, context=staff.audit
    )
