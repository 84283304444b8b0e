from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime, date

from sopmanager.models.sop import SOPStatus, SOPPriority, ApprovalAction
from sopmanager.models.sop_activity import SOPCompletionStatus


# ==================== Categories ====================

class CategoryCreate(BaseModel):
    code: str = Field(..., min_length=2, max_length=50, pattern=r'^[A-Z][A-Z0-9_]*$')
    name: str = Field(..., min_length=1, max_length=255)
    name_th: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    description_th: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, pattern=r'^#[0-9A-Fa-f]{6}$')
    sort_order: int = 0


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    name_th: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    description_th: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, pattern=r'^#[0-9A-Fa-f]{6}$')
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(BaseModel):
    id: str
    code: str
    name: str
    name_th: str
    description: Optional[str] = None
    description_th: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    sort_order: int
    is_active: bool
    document_count: Optional[int] = None

    class Config:
        from_attributes = True


# ==================== Documents ====================

class SOPStep(BaseModel):
    step: int = Field(..., ge=1)
    text: str = Field(..., min_length=1)
    note: Optional[str] = None


class DocumentCreate(BaseModel):
    category_id: str
    title: str = Field(..., min_length=1, max_length=500)
    title_th: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    content_th: str = Field(..., min_length=1)
    steps: List[SOPStep] = []
    steps_th: List[SOPStep] = []
    attachments: List[str] = []
    tags: List[str] = []
    tags_th: List[str] = []
    priority: SOPPriority = SOPPriority.MEDIUM
    effective_date: Optional[date] = None
    review_date: Optional[date] = None


class DocumentUpdate(BaseModel):
    category_id: Optional[str] = None
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    title_th: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    content_th: Optional[str] = Field(None, min_length=1)
    steps: Optional[List[SOPStep]] = None
    steps_th: Optional[List[SOPStep]] = None
    attachments: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    tags_th: Optional[List[str]] = None
    priority: Optional[SOPPriority] = None
    effective_date: Optional[date] = None
    review_date: Optional[date] = None
    change_summary: Optional[str] = Field(None, max_length=1000)


class DocumentResponse(BaseModel):
    id: str
    category_id: str
    restaurant_id: str
    title: str
    title_th: str
    content: str
    content_th: str
    steps: List[Dict[str, Any]] = []
    steps_th: List[Dict[str, Any]] = []
    attachments: List[str] = []
    tags: List[str] = []
    tags_th: List[str] = []
    version: int
    status: SOPStatus
    priority: SOPPriority
    effective_date: Optional[date] = None
    review_date: Optional[date] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentListResponse(BaseModel):
    items: List[DocumentResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class StatusChangeRequest(BaseModel):
    status: SOPStatus
    notes: Optional[str] = Field(None, max_length=1000)


class VersionResponse(BaseModel):
    id: str
    document_id: str
    version: int
    content_snapshot: Dict[str, Any]
    change_summary: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ApprovalResponse(BaseModel):
    id: str
    document_id: str
    version: int
    action: ApprovalAction
    notes: Optional[str] = None
    reviewer_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class SearchResult(BaseModel):
    id: str
    category_id: str
    title: str
    snippet: str
    status: SOPStatus
    priority: SOPPriority
    tags: List[str] = []
    relevance: int


class SearchResponse(BaseModel):
    query: str
    locale: str
    results: List[SearchResult]
    total: int


# ==================== Bookmarks ====================

class BookmarkCreate(BaseModel):
    sop_id: str
    notes: Optional[str] = Field(None, max_length=1000)


class BookmarkResponse(BaseModel):
    id: str
    sop_id: str
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ==================== Completions ====================

class CompletionCreate(BaseModel):
    sop_id: str
    status: SOPCompletionStatus = SOPCompletionStatus.COMPLETED
    started_at: Optional[datetime] = None
    time_spent_minutes: int = Field(0, ge=0, le=24 * 60)
    notes: Optional[str] = Field(None, max_length=2000)


class CompletionVerify(BaseModel):
    quality_rating: int = Field(..., ge=1, le=5)
    notes: Optional[str] = Field(None, max_length=2000)


class CompletionResponse(BaseModel):
    id: str
    sop_id: str
    user_id: str
    status: SOPCompletionStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    time_spent_minutes: int
    notes: Optional[str] = None
    quality_rating: Optional[int] = None
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CompletionStats(BaseModel):
    total: int
    completed: int
    verified: int
    average_time_minutes: float
    average_quality_rating: Optional[float] = None


class CompletionListResponse(BaseModel):
    items: List[CompletionResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool
    stats: Optional[CompletionStats] = None
