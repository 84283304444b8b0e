"""
Per-staff SOP activity: bookmarks and completion records
"""

from sqlalchemy import (
    Column, DateTime, Text, Integer, ForeignKey, Enum as SQLEnum, UniqueConstraint, Index,
)
from datetime import datetime
import enum

from sopmanager.core.database import Base
from sopmanager.core.types import GUID, generate_uuid


class SOPCompletionStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    VERIFIED = "verified"
    FAILED = "failed"
    SKIPPED = "skipped"


class SOPBookmark(Base):
    __tablename__ = "user_bookmarks"
    __table_args__ = (
        UniqueConstraint('user_id', 'sop_id', name='uq_user_bookmarks_user_sop'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False, index=True)
    sop_id = Column(GUID, ForeignKey("sop_documents.id", ondelete="CASCADE"), nullable=False)
    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class SOPCompletion(Base):
    """A staff member working through an SOP on shift"""
    __tablename__ = "sop_completions"
    __table_args__ = (
        Index('ix_sop_completions_restaurant_created', 'restaurant_id', 'created_at'),
        Index('ix_sop_completions_user', 'user_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    sop_id = Column(GUID, ForeignKey("sop_documents.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(GUID, ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False)
    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)

    status = Column(SQLEnum(SOPCompletionStatus), default=SOPCompletionStatus.COMPLETED, nullable=False)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    time_spent_minutes = Column(Integer, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    quality_rating = Column(Integer, nullable=True)  # 1-5, set by the verifier

    verified_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    verified_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
