from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.core.permissions import Permission
from sopmanager.models.translation import TranslationCategory, TranslationStatus
from sopmanager.modules.auth.dependencies import CurrentStaff, require_permission
from sopmanager.schemas.auth import MessageResponse
from sopmanager.schemas.translation import (
    TranslationKeyCreate,
    TranslationKeyUpdate,
    TranslationKeyResponse,
    TranslationKeyListResponse,
)
from sopmanager.services.translation_service import translation_service

router = APIRouter()


@router.get("", response_model=TranslationKeyListResponse)
async def list_translation_keys(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    category: Optional[TranslationCategory] = None,
    namespace: Optional[str] = Query(None, max_length=100),
    search: Optional[str] = Query(None, max_length=200),
    locale: Optional[str] = Query(None, pattern=r"^[a-z]{2}$"),
    status_filter: Optional[TranslationStatus] = Query(None, alias="status"),
    is_active: Optional[bool] = None,
    include_summary: bool = True,
    staff: CurrentStaff = Depends(require_permission(Permission.TRANSLATION_READ)),
    db: AsyncSession = Depends(get_db)
):
    """List translation keys with their per-locale values"""
    return await translation_service.list_keys(
        db, page=page, page_size=page_size, category=category, namespace=namespace,
        search=search, locale=locale, status=status_filter, is_active=is_active,
        include_summary=include_summary,
    )


@router.post("", response_model=TranslationKeyResponse, status_code=status.HTTP_201_CREATED)
async def create_translation_key(
    data: TranslationKeyCreate,
    staff: CurrentStaff = Depends(require_permission(Permission.TRANSLATION_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Create a key, optionally with initial draft values"""
    return await translation_service.create_key(db, data, actor=staff.user, context=staff.audit)


@router.get("/{key_id}", response_model=TranslationKeyResponse)
async def get_translation_key(
    key_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.TRANSLATION_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await translation_service.get_key(db, key_id)


@router.patch("/{key_id}", response_model=TranslationKeyResponse)
async def update_translation_key(
    key_id: str,
    data: TranslationKeyUpdate,
    staff: CurrentStaff = Depends(require_permission(Permission.TRANSLATION_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    return await translation_service.update_key(db, key_id, data, actor=staff.user, context=staff.audit)


@router.delete("/{key_id}", response_model=MessageResponse)
async def delete_translation_key(
    key_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.TRANSLATION_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Deactivate a key. Its values drop out of every public bundle."""
    key = await translation_service.deactivate_key(db, key_id, actor=staff.user, context=staff.audit)
    return MessageResponse(message=f"Translation key '{key.key_name}' deactivated")
