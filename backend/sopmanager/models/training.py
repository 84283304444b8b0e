"""
Training Models - Modules, sections, quiz questions, staff progress,
assessments and certificates
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, Text, Integer, Float, ForeignKey, JSON, Index,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from sopmanager.core.database import Base
from sopmanager.core.types import GUID, generate_uuid


class TrainingStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"


class AssessmentStatus(str, enum.Enum):
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    RETAKE_REQUIRED = "retake_required"


class CertificateStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"


class QuestionDifficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TrainingModule(Base):
    __tablename__ = "training_modules"
    __table_args__ = (
        Index('ix_training_modules_restaurant', 'restaurant_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    sop_document_id = Column(GUID, ForeignKey("sop_documents.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(500), nullable=False)
    title_th = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    description_th = Column(Text, nullable=True)

    duration_minutes = Column(Integer, default=30, nullable=False)
    passing_score = Column(Integer, default=80, nullable=False)  # percent
    max_attempts = Column(Integer, default=3, nullable=False)
    validity_days = Column(Integer, default=365, nullable=False)
    is_mandatory = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    sections = relationship(
        "TrainingSection",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="[TrainingSection.sort_order, TrainingSection.section_number]",
        lazy="selectin",
    )
    questions = relationship(
        "TrainingQuestion",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="TrainingQuestion.sort_order",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<TrainingModule {self.title}>"


class TrainingSection(Base):
    __tablename__ = "training_sections"
    __table_args__ = (
        UniqueConstraint('module_id', 'section_number', name='uq_training_sections_module_number'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    module_id = Column(GUID, ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False)
    section_number = Column(Integer, nullable=False)
    title = Column(String(500), nullable=False)
    title_th = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    content_th = Column(Text, nullable=False)
    media_urls = Column(JSON, default=list)
    estimated_minutes = Column(Integer, default=5, nullable=False)
    is_required = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    module = relationship("TrainingModule", back_populates="sections")


class TrainingQuestion(Base):
    __tablename__ = "training_questions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    module_id = Column(GUID, ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False, index=True)
    section_id = Column(GUID, ForeignKey("training_sections.id", ondelete="SET NULL"), nullable=True)
    question_type = Column(SQLEnum(QuestionType), default=QuestionType.MULTIPLE_CHOICE, nullable=False)
    question = Column(Text, nullable=False)
    question_th = Column(Text, nullable=False)
    options = Column(JSON, default=list)
    options_th = Column(JSON, default=list)
    # Option index for multiple choice, "true"/"false", or expected text
    correct_answer = Column(String(500), nullable=False)
    explanation = Column(Text, nullable=True)
    explanation_th = Column(Text, nullable=True)
    points = Column(Integer, default=1, nullable=False)
    difficulty = Column(SQLEnum(QuestionDifficulty), default=QuestionDifficulty.MEDIUM, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    module = relationship("TrainingModule", back_populates="questions")

    def is_correct(self, answer: str) -> bool:
        if answer is None:
            return False
        given = str(answer).strip().lower()
        return given == str(self.correct_answer).strip().lower()


class UserTrainingProgress(Base):
    """One attempt of one staff member at one module"""
    __tablename__ = "user_training_progress"
    __table_args__ = (
        UniqueConstraint('user_id', 'module_id', 'attempt_number', name='uq_training_progress_attempt'),
        Index('ix_training_progress_restaurant', 'restaurant_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False)
    module_id = Column(GUID, ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False)
    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)

    status = Column(SQLEnum(TrainingStatus), default=TrainingStatus.NOT_STARTED, nullable=False)
    progress_percentage = Column(Integer, default=0, nullable=False)
    current_section_id = Column(GUID, ForeignKey("training_sections.id", ondelete="SET NULL"), nullable=True)
    attempt_number = Column(Integer, default=1, nullable=False)
    time_spent_minutes = Column(Integer, default=0, nullable=False)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    last_accessed_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserSectionProgress(Base):
    __tablename__ = "user_section_progress"
    __table_args__ = (
        UniqueConstraint('progress_id', 'section_id', name='uq_section_progress'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    progress_id = Column(GUID, ForeignKey("user_training_progress.id", ondelete="CASCADE"), nullable=False)
    section_id = Column(GUID, ForeignKey("training_sections.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(GUID, ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    time_spent_minutes = Column(Integer, default=0, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class TrainingAssessment(Base):
    __tablename__ = "training_assessments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = Column(GUID, ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False)
    progress_id = Column(GUID, ForeignKey("user_training_progress.id", ondelete="CASCADE"), nullable=False)
    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)

    attempt_number = Column(Integer, nullable=False)
    status = Column(SQLEnum(AssessmentStatus), default=AssessmentStatus.PENDING, nullable=False)
    total_questions = Column(Integer, default=0, nullable=False)
    correct_answers = Column(Integer, default=0, nullable=False)
    score_percentage = Column(Float, default=0.0, nullable=False)
    time_spent_minutes = Column(Integer, default=0, nullable=False)

    started_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class QuestionResponse(Base):
    __tablename__ = "training_question_responses"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    assessment_id = Column(GUID, ForeignKey("training_assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(GUID, ForeignKey("training_questions.id", ondelete="CASCADE"), nullable=False)
    user_answer = Column(Text, nullable=True)
    is_correct = Column(Boolean, default=False, nullable=False)
    points_earned = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class TrainingCertificate(Base):
    __tablename__ = "training_certificates"
    __table_args__ = (
        Index('ix_training_certificates_restaurant_issued', 'restaurant_id', 'issued_at'),
        Index('ix_training_certificates_user', 'user_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    certificate_number = Column(String(50), unique=True, nullable=False)
    user_id = Column(GUID, ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False)
    module_id = Column(GUID, ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False)
    assessment_id = Column(GUID, ForeignKey("training_assessments.id", ondelete="SET NULL"), nullable=True)
    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)

    status = Column(SQLEnum(CertificateStatus), default=CertificateStatus.ACTIVE, nullable=False)
    issued_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    revoked_by = Column(GUID, ForeignKey("auth_users.id"), nullable=True)
    revoked_reason = Column(Text, nullable=True)
    certificate_data = Column(JSON, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<TrainingCertificate {self.certificate_number} ({self.status.value if self.status else '-'})>"
