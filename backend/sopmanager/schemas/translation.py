from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime

from sopmanager.models.translation import (
    TranslationStatus,
    TranslationCategory,
    TranslationPriority,
)

KEY_NAME_PATTERN = r'^[a-zA-Z][a-zA-Z0-9._-]*$'
LOCALE_PATTERN = r'^(en|th|fr)$'


class TranslationValueCreate(BaseModel):
    locale: str = Field(..., pattern=LOCALE_PATTERN)
    value: str = Field(..., min_length=1)
    icu_message: Optional[str] = None


class TranslationKeyCreate(BaseModel):
    key_name: str = Field(..., min_length=1, max_length=255, pattern=KEY_NAME_PATTERN)
    category: TranslationCategory
    description: Optional[str] = Field(None, max_length=500)
    context_notes: Optional[str] = None
    interpolation_vars: List[str] = []
    supports_pluralization: bool = False
    namespace: Optional[str] = Field(None, max_length=100)
    feature_area: Optional[str] = Field(None, max_length=100)
    priority: TranslationPriority = TranslationPriority.MEDIUM
    translations: List[TranslationValueCreate] = []


class TranslationKeyUpdate(BaseModel):
    category: Optional[TranslationCategory] = None
    description: Optional[str] = Field(None, max_length=500)
    context_notes: Optional[str] = None
    interpolation_vars: Optional[List[str]] = None
    supports_pluralization: Optional[bool] = None
    feature_area: Optional[str] = Field(None, max_length=100)
    priority: Optional[TranslationPriority] = None
    is_active: Optional[bool] = None


class TranslationResponse(BaseModel):
    id: str
    key_id: str
    locale: str
    value: str
    icu_message: Optional[str] = None
    character_count: int
    word_count: int
    status: TranslationStatus
    version: int
    previous_value: Optional[str] = None
    notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TranslationKeyResponse(BaseModel):
    id: str
    key_name: str
    category: TranslationCategory
    description: Optional[str] = None
    context_notes: Optional[str] = None
    interpolation_vars: List[str] = []
    supports_pluralization: bool
    namespace: Optional[str] = None
    feature_area: Optional[str] = None
    priority: TranslationPriority
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    translations: List[TranslationResponse] = []

    class Config:
        from_attributes = True


class TranslationSummary(BaseModel):
    total_keys: int
    total_translations: int
    status_breakdown: Dict[str, int]
    locale_breakdown: Dict[str, int]
    category_breakdown: Dict[str, int]


class TranslationKeyListResponse(BaseModel):
    items: List[TranslationKeyResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool
    summary: Optional[TranslationSummary] = None


class TranslationCreate(BaseModel):
    key_id: str
    locale: str = Field(..., pattern=LOCALE_PATTERN)
    value: str = Field(..., min_length=1)
    icu_message: Optional[str] = None
    notes: Optional[str] = None


class TranslationUpdate(BaseModel):
    value: str = Field(..., min_length=1)
    icu_message: Optional[str] = None
    notes: Optional[str] = None
    change_reason: Optional[str] = Field(None, max_length=500)


class TranslationStatusUpdate(BaseModel):
    status: TranslationStatus
    change_reason: Optional[str] = Field(None, max_length=500)


class TranslationHistoryResponse(BaseModel):
    id: str
    translation_id: str
    action: str
    locale: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    version_before: Optional[int] = None
    version_after: Optional[int] = None
    reason: Optional[str] = None
    changed_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CacheInvalidateRequest(BaseModel):
    locales: List[str] = []
    namespaces: List[str] = []


class CacheInvalidateResponse(BaseModel):
    invalidated_entries: int


class LocaleBundleResponse(BaseModel):
    locale: str
    namespace: Optional[str] = None
    cache_version: int
    key_count: int
    translations: Dict[str, str]
