"""
Restaurant Service - The tenant profile
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.exceptions import ResourceNotFoundError
from sopmanager.models.audit_log import AuditAction
from sopmanager.models.restaurant import Restaurant
from sopmanager.models.user import User
from sopmanager.schemas.restaurant import RestaurantUpdate
from sopmanager.services.audit_service import AuditContext, audit_service, diff_values


class RestaurantService:

    async def get_restaurant(self, db: AsyncSession, restaurant_id: str) -> Restaurant:
        result = await db.execute(select(Restaurant).where(Restaurant.id == restaurant_id))
        restaurant = result.scalar_one_or_none()
        if not restaurant:
            raise ResourceNotFoundError("Restaurant", restaurant_id)
        return restaurant

    async def update_restaurant(
        self,
        db: AsyncSession,
        restaurant_id: str,
        data: RestaurantUpdate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> Restaurant:
        restaurant = await self.get_restaurant(db, restaurant_id)
        changes = data.model_dump(exclude_unset=True)

        before = {field: getattr(restaurant, field) for field in changes}
        for field, value in changes.items():
            setattr(restaurant, field, value)

        old_values, new_values = diff_values(before, changes)
        if new_values:
            audit_service.record(
                db, AuditAction.UPDATE, "restaurant", restaurant.id, user=actor,
                old_values=old_values, new_values=new_values, context=context,
            )
        await db.commit()
        return restaurant


restaurant_service = RestaurantService()
