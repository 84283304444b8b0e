"""
Public translation bundles for the tablet UI. No authentication: only
published values are served.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.schemas.translation import LocaleBundleResponse
from sopmanager.services.translation_service import translation_service

router = APIRouter()


@router.get("/locales")
async def list_locales():
    """Default locale, content locales and translation locales"""
    return translation_service.list_locales()


@router.get("/{locale}", response_model=LocaleBundleResponse)
async def get_locale_bundle(
    locale: str,
    namespace: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db)
):
    """Flat {key_name: value} map; keys missing in the locale fall back to English"""
    return await translation_service.get_bundle(db, locale, namespace)
