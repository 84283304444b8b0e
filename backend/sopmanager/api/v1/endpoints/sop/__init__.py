"""
SOP API endpoints: categories, documents, search, bookmarks and completions.
"""
from fastapi import APIRouter

from sopmanager.api.v1.endpoints.sop import categories, documents, search, activity

sop_router = APIRouter(prefix="/sop", tags=["SOP"])

sop_router.include_router(categories.router, prefix="/categories", tags=["SOP Categories"])
sop_router.include_router(documents.router, prefix="/documents", tags=["SOP Documents"])
sop_router.include_router(search.router, prefix="/search", tags=["SOP Search"])
sop_router.include_router(activity.bookmarks_router, prefix="/bookmarks", tags=["SOP Bookmarks"])
sop_router.include_router(activity.completions_router, prefix="/completions", tags=["SOP Completions"])
