# Re-export all models for convenient imports
from sopmanager.models.restaurant import Restaurant
from sopmanager.models.user import User, UserRole
from sopmanager.models.session import StaffSession
from sopmanager.models.sop import (
    SOPCategory,
    SOPDocument,
    SOPVersion,
    SOPApproval,
    SOPStatus,
    SOPPriority,
    ApprovalAction,
)
from sopmanager.models.sop_activity import SOPBookmark, SOPCompletion, SOPCompletionStatus
from sopmanager.models.training import (
    TrainingModule,
    TrainingSection,
    TrainingQuestion,
    UserTrainingProgress,
    UserSectionProgress,
    TrainingAssessment,
    QuestionResponse,
    TrainingCertificate,
    TrainingStatus,
    AssessmentStatus,
    CertificateStatus,
    QuestionType,
    QuestionDifficulty,
)
from sopmanager.models.translation import (
    TranslationKey,
    Translation,
    TranslationHistory,
    TranslationCacheEntry,
    TranslationStatus,
    TranslationCategory,
    TranslationPriority,
)
from sopmanager.models.audit_log import AuditLog, AuditAction

__all__ = [
    # Tenancy
    "Restaurant",
    # Staff
    "User",
    "UserRole",
    "StaffSession",
    # SOP
    "SOPCategory",
    "SOPDocument",
    "SOPVersion",
    "SOPApproval",
    "SOPStatus",
    "SOPPriority",
    "ApprovalAction",
    "SOPBookmark",
    "SOPCompletion",
    "SOPCompletionStatus",
    # Training
    "TrainingModule",
    "TrainingSection",
    "TrainingQuestion",
    "UserTrainingProgress",
    "UserSectionProgress",
    "TrainingAssessment",
    "QuestionResponse",
    "TrainingCertificate",
    "TrainingStatus",
    "AssessmentStatus",
    "CertificateStatus",
    "QuestionType",
    "QuestionDifficulty",
    # Translations
    "TranslationKey",
    "Translation",
    "TranslationHistory",
    "TranslationCacheEntry",
    "TranslationStatus",
    "TranslationCategory",
    "TranslationPriority",
    # Audit
    "AuditLog",
    "AuditAction",
]
