from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.core.permissions import Permission
from sopmanager.modules.auth.dependencies import CurrentStaff, require_permission
from sopmanager.schemas.translation import (
    TranslationCreate,
    TranslationUpdate,
    TranslationResponse,
    TranslationStatusUpdate,
    TranslationHistoryResponse,
    CacheInvalidateRequest,
    CacheInvalidateResponse,
)
from sopmanager.services.translation_service import translation_service

router = APIRouter()


@router.post("/cache/invalidate", response_model=CacheInvalidateResponse)
async def invalidate_translation_cache(
    data: CacheInvalidateRequest,
    staff: CurrentStaff = Depends(require_permission(Permission.TRANSLATION_PUBLISH)),
    db: AsyncSession = Depends(get_db)
):
    """Drop cached bundles. No locales means every translation locale."""
    count = await translation_service.invalidate_many(
        db, data.locales, data.namespaces, actor=staff.user, context=staff.audit
    )
    return CacheInvalidateResponse(invalidated_entries=count)


@router.post("", response_model=TranslationResponse, status_code=status.HTTP_201_CREATED)
async def create_translation(
    data: TranslationCreate,
    staff: CurrentStaff = Depends(require_permission(Permission.TRANSLATION_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Add a locale value to a key. New values start as drafts."""
    return await translation_service.create_translation(db, data, actor=staff.user, context=staff.audit)


@router.get("/{translation_id}", response_model=TranslationResponse)
async def get_translation(
    translation_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.TRANSLATION_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await translation_service.get_translation(db, translation_id)


@router.patch("/{translation_id}", response_model=TranslationResponse)
async def update_translation(
    translation_id: str,
    data: TranslationUpdate,
    staff: CurrentStaff = Depends(require_permission(Permission.TRANSLATION_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Change the value. Bumps the version and records history."""
    return await translation_service.update_translation(
        db, translation_id, data, actor=staff.user, context=staff.audit
    )


@router.post("/{translation_id}/status", response_model=TranslationResponse)
async def change_translation_status(
    translation_id: str,
    data: TranslationStatusUpdate,
    staff: CurrentStaff = Depends(require_permission(Permission.TRANSLATION_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Move a value through draft -> review -> approved -> published"""
    return await translation_service.change_status(
        db, translation_id, data.status, actor=staff.user,
        reason=data.change_reason, context=staff.audit,
    )


@router.get("/{translation_id}/history", response_model=List[TranslationHistoryResponse])
async def get_translation_history(
    translation_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.TRANSLATION_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await translation_service.get_history(db, translation_id)
