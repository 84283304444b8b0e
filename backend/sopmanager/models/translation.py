"""
Translation Models - Keys, per-locale values with workflow state,
change history, and the compiled per-locale cache
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, Text, Integer, ForeignKey, JSON, Index,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from sopmanager.core.database import Base
from sopmanager.core.types import GUID, generate_uuid


class TranslationStatus(str, enum.Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    PUBLISHED = "published"
    DEPRECATED = "deprecated"


class TranslationCategory(str, enum.Enum):
    COMMON = "common"
    AUTH = "auth"
    SOP = "sop"
    NAVIGATION = "navigation"
    ERRORS = "errors"
    DASHBOARD = "dashboard"
    SEARCH = "search"
    RECOMMENDATIONS = "recommendations"
    ANALYTICS = "analytics"
    TRAINING = "training"
    TIME = "time"
    CATEGORIES = "categories"
    FORMS = "forms"
    NOTIFICATIONS = "notifications"
    REPORTS = "reports"
    SETTINGS = "settings"


class TranslationPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TranslationKey(Base):
    __tablename__ = "translation_keys"
    __table_args__ = (
        Index('ix_translation_keys_namespace', 'namespace'),
        Index('ix_translation_keys_category', 'category'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    key_name = Column(String(255), unique=True, nullable=False)  # e.g. "common.loading"
    category = Column(SQLEnum(TranslationCategory), nullable=False)
    description = Column(Text, nullable=True)
    context_notes = Column(Text, nullable=True)
    interpolation_vars = Column(JSON, default=list)
    supports_pluralization = Column(Boolean, default=False, nullable=False)
    namespace = Column(String(100), nullable=True)
    feature_area = Column(String(100), nullable=True)
    priority = Column(SQLEnum(TranslationPriority), default=TranslationPriority.MEDIUM, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    translations = relationship(
        "Translation",
        back_populates="key",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @staticmethod
    def namespace_for(key_name: str) -> str:
        """Prefix before the first dot"""
        return key_name.split(".", 1)[0]

    def __repr__(self):
        return f"<TranslationKey {self.key_name}>"


class Translation(Base):
    __tablename__ = "translations"
    __table_args__ = (
        UniqueConstraint('key_id', 'locale', name='uq_translations_key_locale'),
        Index('ix_translations_locale_status', 'locale', 'status'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    key_id = Column(GUID, ForeignKey("translation_keys.id", ondelete="CASCADE"), nullable=False)
    locale = Column(String(5), nullable=False)
    value = Column(Text, nullable=False)
    icu_message = Column(Text, nullable=True)
    character_count = Column(Integer, default=0, nullable=False)
    word_count = Column(Integer, default=0, nullable=False)

    status = Column(SQLEnum(TranslationStatus), default=TranslationStatus.DRAFT, nullable=False)
    version = Column(Integer, default=1, nullable=False)
    previous_value = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    updated_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    reviewed_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    approved_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    published_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    published_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    key = relationship("TranslationKey", back_populates="translations")

    def set_value(self, value: str) -> None:
        self.value = value
        self.character_count = len(value)
        self.word_count = len(value.split())


class TranslationHistory(Base):
    __tablename__ = "translation_history"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    translation_id = Column(GUID, ForeignKey("translations.id", ondelete="CASCADE"), nullable=False, index=True)
    key_id = Column(GUID, ForeignKey("translation_keys.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(50), nullable=False)  # created, updated, status_changed
    locale = Column(String(5), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    old_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=True)
    version_before = Column(Integer, nullable=True)
    version_after = Column(Integer, nullable=True)
    reason = Column(Text, nullable=True)
    changed_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# Namespace stored for the bundle that spans every namespace; NULL would
# escape the (locale, namespace) unique constraint
ALL_NAMESPACES = "*"


class TranslationCacheEntry(Base):
    """Compiled {key_name: value} bundle for one locale and namespace"""
    __tablename__ = "translation_cache"
    __table_args__ = (
        UniqueConstraint('locale', 'namespace', name='uq_translation_cache_locale_namespace'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    locale = Column(String(5), nullable=False)
    namespace = Column(String(100), nullable=False, default=ALL_NAMESPACES)
    translations_json = Column(JSON, nullable=False, default=dict)
    cache_version = Column(Integer, default=1, nullable=False)
    key_count = Column(Integer, default=0, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_valid = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def is_fresh(self, now: datetime = None) -> bool:
        now = now or datetime.utcnow()
        return self.is_valid and self.expires_at > now
