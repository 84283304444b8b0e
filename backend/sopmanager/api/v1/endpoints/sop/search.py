from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.core.permissions import Permission
from sopmanager.modules.auth.dependencies import CurrentStaff, require_permission
from sopmanager.schemas.sop import SearchResponse, SearchResult
from sopmanager.services.sop_service import sop_service

router = APIRouter()


@router.get("", response_model=SearchResponse)
async def search_documents(
    q: str = Query(..., min_length=1, max_length=1000),
    locale: str = Query("en", pattern="^(en|th)$"),
    category_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=100),
    staff: CurrentStaff = Depends(require_permission(Permission.SOP_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Search titles, bodies and tags in English and Thai; title hits rank first"""
    cleaned, results = await sop_service.search(
        db,
        staff.restaurant_id,
        q,
        locale=locale,
        category_id=category_id,
        approved_only=not staff.can(Permission.SOP_WRITE),
        limit=limit,
    )
    return SearchResponse(
        query=cleaned,
        locale=locale,
        results=[SearchResult(**r) for r in results],
        total=len(results),
    )
