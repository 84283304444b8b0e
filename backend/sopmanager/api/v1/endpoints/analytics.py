from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.core.permissions import Permission
from sopmanager.modules.auth.dependencies import CurrentStaff, require_permission
from sopmanager.schemas.analytics import (
    DashboardResponse,
    SOPAnalyticsResponse,
    TrainingAnalyticsResponse,
    TranslationAnalyticsResponse,
)
from sopmanager.services.analytics_service import analytics_service

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    days: int = Query(30, ge=1, le=365),
    staff: CurrentStaff = Depends(require_permission(Permission.ANALYTICS_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Headline KPIs for the manager dashboard"""
    return await analytics_service.dashboard(db, staff.restaurant_id, days)


@router.get("/sop", response_model=SOPAnalyticsResponse)
async def get_sop_analytics(
    days: int = Query(30, ge=1, le=365),
    staff: CurrentStaff = Depends(require_permission(Permission.ANALYTICS_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await analytics_service.sop_analytics(db, staff.restaurant_id, days)


@router.get("/training", response_model=TrainingAnalyticsResponse)
async def get_training_analytics(
    days: int = Query(30, ge=1, le=365),
    staff: CurrentStaff = Depends(require_permission(Permission.ANALYTICS_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await analytics_service.training_analytics(db, staff.restaurant_id, days)


@router.get("/translations", response_model=TranslationAnalyticsResponse)
async def get_translation_analytics(
    staff: CurrentStaff = Depends(require_permission(Permission.ANALYTICS_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Per-locale completeness of published translations"""
    return await analytics_service.translation_analytics(db)
