from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.core.permissions import Permission
from sopmanager.models.sop import SOPStatus, SOPPriority
from sopmanager.modules.auth.dependencies import CurrentStaff, require_permission
from sopmanager.schemas.auth import MessageResponse
from sopmanager.schemas.sop import (
    DocumentCreate,
    DocumentUpdate,
    DocumentResponse,
    DocumentListResponse,
    StatusChangeRequest,
    VersionResponse,
    ApprovalResponse,
)
from sopmanager.services.sop_service import sop_service

router = APIRouter()


def _approved_only(staff: CurrentStaff) -> bool:
    """Staff without write access only ever see approved SOPs"""
    return not staff.can(Permission.SOP_WRITE)


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    category_id: Optional[str] = None,
    status_filter: Optional[SOPStatus] = Query(None, alias="status"),
    priority: Optional[SOPPriority] = None,
    search: Optional[str] = Query(None, max_length=500),
    tag: Optional[str] = Query(None, max_length=100),
    staff: CurrentStaff = Depends(require_permission(Permission.SOP_READ)),
    db: AsyncSession = Depends(get_db)
):
    """List SOP documents of the caller's restaurant"""
    return await sop_service.list_documents(
        db,
        staff.restaurant_id,
        approved_only=_approved_only(staff),
        category_id=category_id,
        status=status_filter,
        priority=priority,
        search=search,
        tag=tag,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    data: DocumentCreate,
    staff: CurrentStaff = Depends(require_permission(Permission.SOP_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Create a draft SOP"""
    return await sop_service.create_document(
        db, staff.restaurant_id, data, actor=staff.user, context=staff.audit
    )


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.SOP_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await sop_service.get_document(
        db, staff.restaurant_id, document_id, approved_only=_approved_only(staff)
    )


@router.patch("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: str,
    data: DocumentUpdate,
    staff: CurrentStaff = Depends(require_permission(Permission.SOP_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Edit an SOP.

    Content changes snapshot the previous version, bump `version` and
    return an approved SOP to draft.
    """
    return await sop_service.update_document(
        db, staff.restaurant_id, document_id, data, actor=staff.user, context=staff.audit
    )


@router.delete("/{document_id}", response_model=MessageResponse)
async def delete_document(
    document_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.SOP_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete: archived and inactive"""
    await sop_service.delete_document(
        db, staff.restaurant_id, document_id, actor=staff.user, context=staff.audit
    )
    return MessageResponse(message="SOP document archived")


@router.post("/{document_id}/status", response_model=DocumentResponse)
async def change_document_status(
    document_id: str,
    data: StatusChangeRequest,
    staff: CurrentStaff = Depends(require_permission(Permission.SOP_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Move an SOP through draft → review → approved → archived"""
    return await sop_service.change_status(
        db, staff.restaurant_id, document_id, data.status,
        actor=staff.user, notes=data.notes, context=staff.audit,
    )


@router.get("/{document_id}/versions", response_model=List[VersionResponse])
async def list_document_versions(
    document_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.SOP_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    return await sop_service.list_versions(db, staff.restaurant_id, document_id)


@router.get("/{document_id}/approvals", response_model=List[ApprovalResponse])
async def list_document_approvals(
    document_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.SOP_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    return await sop_service.list_approvals(db, staff.restaurant_id, document_id)
