"""
SOP Models - Categories, documents, version snapshots and approval records
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, Date, Text, Integer, ForeignKey, JSON, Index,
    Enum as SQLEnum, UniqueConstraint,
)
from datetime import datetime
import enum

from sopmanager.core.database import Base
from sopmanager.core.types import GUID, generate_uuid


class SOPStatus(str, enum.Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    ARCHIVED = "archived"


class SOPPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ApprovalAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


class SOPCategory(Base):
    """Global category, shared by every restaurant"""
    __tablename__ = "sop_categories"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    code = Column(String(50), unique=True, nullable=False, index=True)  # e.g. FOOD_SAFETY
    name = Column(String(255), nullable=False)
    name_th = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    description_th = Column(Text, nullable=True)
    icon = Column(String(50), nullable=True)
    color = Column(String(7), nullable=True)  # #RRGGBB
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<SOPCategory {self.code}>"


class SOPDocument(Base):
    """Bilingual SOP owned by one restaurant"""
    __tablename__ = "sop_documents"
    __table_args__ = (
        Index('ix_sop_documents_restaurant_status', 'restaurant_id', 'status'),
        Index('ix_sop_documents_category', 'category_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    category_id = Column(GUID, ForeignKey("sop_categories.id"), nullable=False)
    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(500), nullable=False)
    title_th = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    content_th = Column(Text, nullable=False)
    steps = Column(JSON, default=list)  # [{"step": 1, "text": "..."}]
    steps_th = Column(JSON, default=list)
    attachments = Column(JSON, default=list)  # object storage URLs
    tags = Column(JSON, default=list)
    tags_th = Column(JSON, default=list)

    version = Column(Integer, default=1, nullable=False)
    status = Column(SQLEnum(SOPStatus), default=SOPStatus.DRAFT, nullable=False)
    priority = Column(SQLEnum(SOPPriority), default=SOPPriority.MEDIUM, nullable=False)
    effective_date = Column(Date, nullable=True)
    review_date = Column(Date, nullable=True)

    created_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    updated_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    approved_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Fields whose change produces a new version
    VERSIONED_FIELDS = (
        "title", "title_th", "content", "content_th", "steps", "steps_th", "attachments",
    )

    def snapshot(self) -> dict:
        return {name: getattr(self, name) for name in self.VERSIONED_FIELDS}

    def __repr__(self):
        return f"<SOPDocument {self.title} v{self.version}>"


class SOPVersion(Base):
    """Frozen copy of a document's content at a given version"""
    __tablename__ = "sop_versions"
    __table_args__ = (
        UniqueConstraint('document_id', 'version', name='uq_sop_versions_document_version'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    document_id = Column(GUID, ForeignKey("sop_documents.id", ondelete="CASCADE"), nullable=False)
    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    version = Column(Integer, nullable=False)
    content_snapshot = Column(JSON, nullable=False)
    change_summary = Column(Text, nullable=True)
    created_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class SOPApproval(Base):
    """Reviewer decision on a document"""
    __tablename__ = "sop_approvals"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    document_id = Column(GUID, ForeignKey("sop_documents.id", ondelete="CASCADE"), nullable=False, index=True)
    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    version = Column(Integer, nullable=False)
    action = Column(SQLEnum(ApprovalAction), nullable=False)
    notes = Column(Text, nullable=True)
    reviewer_id = Column(GUID, ForeignKey("auth_users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
