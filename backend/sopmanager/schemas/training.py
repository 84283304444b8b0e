from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from sopmanager.models.training import (
    TrainingStatus,
    AssessmentStatus,
    CertificateStatus,
    QuestionType,
    QuestionDifficulty,
)


# ==================== Module authoring ====================

class SectionCreate(BaseModel):
    section_number: int = Field(..., ge=1)
    title: str = Field(..., min_length=1, max_length=500)
    title_th: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    content_th: str = Field(..., min_length=1)
    media_urls: List[str] = []
    estimated_minutes: int = Field(5, ge=1)
    is_required: bool = True
    sort_order: int = 0


class QuestionCreate(BaseModel):
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    question: str = Field(..., min_length=1)
    question_th: str = Field(..., min_length=1)
    options: List[str] = []
    options_th: List[str] = []
    correct_answer: str = Field(..., min_length=1, max_length=500)
    explanation: Optional[str] = None
    explanation_th: Optional[str] = None
    points: int = Field(1, ge=1)
    difficulty: QuestionDifficulty = QuestionDifficulty.MEDIUM
    sort_order: int = 0

    @model_validator(mode='after')
    def validate_answer_shape(self):
        if self.question_type == QuestionType.MULTIPLE_CHOICE:
            if len(self.options) < 2:
                raise ValueError("Multiple choice questions need at least two options")
            if self.options_th and len(self.options_th) != len(self.options):
                raise ValueError("options_th must match options")
            if not self.correct_answer.isdigit() or int(self.correct_answer) >= len(self.options):
                raise ValueError("correct_answer must be the index of one of the options")
        elif self.question_type == QuestionType.TRUE_FALSE:
            if self.correct_answer.lower() not in ("true", "false"):
                raise ValueError("correct_answer must be 'true' or 'false'")
        return self


class ModuleCreate(BaseModel):
    sop_document_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=500)
    title_th: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    description_th: Optional[str] = None
    duration_minutes: int = Field(30, ge=1)
    passing_score: int = Field(80, ge=0, le=100)
    max_attempts: int = Field(3, ge=1)
    validity_days: int = Field(365, ge=1)
    is_mandatory: bool = False
    sections: List[SectionCreate] = []
    questions: List[QuestionCreate] = []

    @model_validator(mode='after')
    def validate_section_numbers(self):
        numbers = [s.section_number for s in self.sections]
        if len(numbers) != len(set(numbers)):
            raise ValueError("section_number must be unique within a module")
        return self


class ModuleUpdate(BaseModel):
    sop_document_id: Optional[str] = None
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    title_th: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    description_th: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=1)
    passing_score: Optional[int] = Field(None, ge=0, le=100)
    max_attempts: Optional[int] = Field(None, ge=1)
    validity_days: Optional[int] = Field(None, ge=1)
    is_mandatory: Optional[bool] = None
    is_active: Optional[bool] = None


# ==================== Module responses ====================

class SectionResponse(BaseModel):
    id: str
    section_number: int
    title: str
    title_th: str
    content: str
    content_th: str
    media_urls: List[str] = []
    estimated_minutes: int
    is_required: bool
    sort_order: int

    class Config:
        from_attributes = True


class QuestionResponse(BaseModel):
    id: str
    question_type: QuestionType
    question: str
    question_th: str
    options: List[str] = []
    options_th: List[str] = []
    points: int
    difficulty: QuestionDifficulty
    sort_order: int
    # Only present for users who can author training
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    explanation_th: Optional[str] = None

    class Config:
        from_attributes = True


class ModuleResponse(BaseModel):
    id: str
    restaurant_id: str
    sop_document_id: Optional[str] = None
    title: str
    title_th: str
    description: Optional[str] = None
    description_th: Optional[str] = None
    duration_minutes: int
    passing_score: int
    max_attempts: int
    validity_days: int
    is_mandatory: bool
    is_active: bool
    section_count: int = 0
    question_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class ModuleDetailResponse(ModuleResponse):
    sections: List[SectionResponse] = []
    questions: List[QuestionResponse] = []


class ModuleListResponse(BaseModel):
    items: List[ModuleResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


# ==================== Progress & assessment ====================

class ProgressResponse(BaseModel):
    id: str
    user_id: str
    module_id: str
    status: TrainingStatus
    progress_percentage: int
    current_section_id: Optional[str] = None
    attempt_number: int
    time_spent_minutes: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed_section_ids: List[str] = []

    class Config:
        from_attributes = True


class SectionCompleteRequest(BaseModel):
    time_spent_minutes: int = Field(0, ge=0, le=24 * 60)


class AnswerSubmission(BaseModel):
    question_id: str
    answer: str


class AssessmentSubmit(BaseModel):
    answers: List[AnswerSubmission]
    time_spent_minutes: int = Field(0, ge=0, le=24 * 60)


class QuestionResult(BaseModel):
    question_id: str
    is_correct: bool
    points_earned: int
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    explanation_th: Optional[str] = None


class AssessmentResult(BaseModel):
    assessment_id: str
    module_id: str
    attempt_number: int
    status: AssessmentStatus
    total_questions: int
    correct_answers: int
    score_percentage: float
    passing_score: int
    passed: bool
    attempts_remaining: int
    results: List[QuestionResult] = []
    certificate: Optional["CertificateResponse"] = None


# ==================== Certificates ====================

class CertificateResponse(BaseModel):
    id: str
    certificate_number: str
    user_id: str
    module_id: str
    assessment_id: Optional[str] = None
    status: CertificateStatus
    issued_at: datetime
    expires_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    revoked_reason: Optional[str] = None
    certificate_data: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class CertificateListResponse(BaseModel):
    items: List[CertificateResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class CertificateVerifyResponse(BaseModel):
    valid: bool
    certificate: CertificateResponse


class CertificateRevokeRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class CertificateTextResponse(BaseModel):
    certificate_number: str
    text: str


AssessmentResult.model_rebuild()
