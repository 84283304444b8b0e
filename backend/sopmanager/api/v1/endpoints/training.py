from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.core.permissions import Permission
from sopmanager.models.training import TrainingModule, CertificateStatus
from sopmanager.modules.auth.dependencies import CurrentStaff, require_permission
from sopmanager.schemas.auth import MessageResponse
from sopmanager.schemas.training import (
    ModuleCreate,
    ModuleUpdate,
    ModuleResponse,
    ModuleDetailResponse,
    ModuleListResponse,
    SectionResponse,
    QuestionResponse,
    ProgressResponse,
    SectionCompleteRequest,
    AssessmentSubmit,
    AssessmentResult,
    CertificateResponse,
    CertificateListResponse,
    CertificateVerifyResponse,
    CertificateRevokeRequest,
    CertificateTextResponse,
)
from sopmanager.services.certificate_service import certificate_service
from sopmanager.services.training_service import training_service

router = APIRouter()

ANSWER_FIELDS = {"correct_answer", "explanation", "explanation_th"}


def _module_summary(module: TrainingModule) -> ModuleResponse:
    return ModuleResponse.model_validate(module).model_copy(update={
        "section_count": len(module.sections),
        "question_count": len([q for q in module.questions if q.is_active]),
    })


def _module_detail(module: TrainingModule, include_answers: bool) -> ModuleDetailResponse:
    """Staff taking the training never receive the answer key"""
    questions = []
    for question in module.questions:
        if not question.is_active:
            continue
        item = QuestionResponse.model_validate(question)
        if not include_answers:
            item = item.model_copy(update={field: None for field in ANSWER_FIELDS})
        questions.append(item)

    summary = _module_summary(module)
    return ModuleDetailResponse(
        **summary.model_dump(),
        sections=[SectionResponse.model_validate(s) for s in module.sections],
        questions=questions,
    )


def _progress_response(entry: dict) -> ProgressResponse:
    return ProgressResponse.model_validate(entry["progress"]).model_copy(
        update={"completed_section_ids": entry["completed_section_ids"]}
    )


# ==================== MODULES ====================

@router.get("/modules", response_model=ModuleListResponse)
async def list_modules(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    include_inactive: bool = False,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Training modules of the caller's restaurant, mandatory first"""
    if not staff.can(Permission.TRAINING_WRITE):
        include_inactive = False
    page_data = await training_service.list_modules(
        db, staff.restaurant_id, include_inactive=include_inactive, page=page, page_size=page_size
    )
    page_data["items"] = [_module_summary(m) for m in page_data["items"]]
    return page_data


@router.post("/modules", response_model=ModuleDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_module(
    data: ModuleCreate,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """Create a module with its sections and questions"""
    module = await training_service.create_module(
        db, staff.restaurant_id, data, actor=staff.user, context=staff.audit
    )
    return _module_detail(module, include_answers=True)


@router.get("/modules/{module_id}", response_model=ModuleDetailResponse)
async def get_module(
    module_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_READ)),
    db: AsyncSession = Depends(get_db)
):
    can_author = staff.can(Permission.TRAINING_WRITE)
    module = await training_service.get_module(
        db, staff.restaurant_id, module_id, active_only=not can_author
    )
    return _module_detail(module, include_answers=can_author)


@router.patch("/modules/{module_id}", response_model=ModuleDetailResponse)
async def update_module(
    module_id: str,
    data: ModuleUpdate,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    module = await training_service.update_module(
        db, staff.restaurant_id, module_id, data, actor=staff.user, context=staff.audit
    )
    return _module_detail(module, include_answers=True)


@router.delete("/modules/{module_id}", response_model=MessageResponse)
async def deactivate_module(
    module_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    await training_service.deactivate_module(
        db, staff.restaurant_id, module_id, actor=staff.user, context=staff.audit
    )
    return MessageResponse(message="Training module deactivated")


# ==================== PROGRESS ====================

@router.post("/modules/{module_id}/start", response_model=ProgressResponse)
async def start_module(
    module_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Open the next attempt, or return the one already in progress"""
    progress = await training_service.start_module(db, staff.user, module_id, context=staff.audit)
    completed = await training_service.completed_section_ids(db, progress.id)
    return _progress_response({"progress": progress, "completed_section_ids": completed})


@router.post("/modules/{module_id}/sections/{section_id}/complete", response_model=ProgressResponse)
async def complete_section(
    module_id: str,
    section_id: str,
    data: SectionCompleteRequest,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_READ)),
    db: AsyncSession = Depends(get_db)
):
    result = await training_service.complete_section(
        db, staff.user, module_id, section_id, data.time_spent_minutes
    )
    return _progress_response(result)


@router.get("/progress", response_model=List[ProgressResponse])
async def list_progress(
    user_id: Optional[str] = None,
    module_id: Optional[str] = None,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Own attempts; managers may pass user_id"""
    if not user_id or not staff.can(Permission.TRAINING_WRITE):
        user_id = staff.user.id
    entries = await training_service.list_progress(db, staff.restaurant_id, user_id, module_id)
    return [_progress_response(e) for e in entries]


@router.post("/modules/{module_id}/assess", response_model=AssessmentResult)
async def submit_assessment(
    module_id: str,
    submission: AssessmentSubmit,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Score the current attempt; a pass issues a certificate"""
    return await training_service.submit_assessment(
        db, staff.user, module_id, submission, context=staff.audit
    )


# ==================== CERTIFICATES ====================

@router.get("/certificates", response_model=CertificateListResponse)
async def list_certificates(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    user_id: Optional[str] = None,
    module_id: Optional[str] = None,
    status_filter: Optional[CertificateStatus] = Query(None, alias="status"),
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Own certificates; managers see the whole restaurant"""
    if not staff.can(Permission.TRAINING_WRITE):
        user_id = staff.user.id
    return await certificate_service.list_certificates(
        db, staff.restaurant_id, user_id=user_id, module_id=module_id,
        status=status_filter, page=page, page_size=page_size,
    )


@router.get("/certificates/verify/{certificate_number}", response_model=CertificateVerifyResponse)
async def verify_certificate(
    certificate_number: str,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Check a certificate number issued by the caller's restaurant"""
    return await certificate_service.verify_certificate(db, staff.restaurant_id, certificate_number)


def _owner_filter(staff: CurrentStaff) -> Optional[str]:
    return None if staff.can(Permission.TRAINING_WRITE) else staff.user.id


@router.get("/certificates/{certificate_id}", response_model=CertificateResponse)
async def get_certificate(
    certificate_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await certificate_service.get_certificate(
        db, staff.restaurant_id, certificate_id, owner_id=_owner_filter(staff)
    )


@router.get("/certificates/{certificate_id}/text", response_model=CertificateTextResponse)
async def get_certificate_text(
    certificate_id: str,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Plain-text rendering for printing"""
    certificate = await certificate_service.get_certificate(
        db, staff.restaurant_id, certificate_id, owner_id=_owner_filter(staff)
    )
    return CertificateTextResponse(
        certificate_number=certificate.certificate_number,
        text=certificate_service.render_text(certificate),
    )


@router.post("/certificates/{certificate_id}/revoke", response_model=CertificateResponse)
async def revoke_certificate(
    certificate_id: str,
    data: CertificateRevokeRequest,
    staff: CurrentStaff = Depends(require_permission(Permission.TRAINING_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    return await certificate_service.revoke_certificate(
        db, staff.restaurant_id, certificate_id, data.reason, actor=staff.user, context=staff.audit
    )
