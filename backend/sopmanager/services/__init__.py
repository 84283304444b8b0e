from sopmanager.services.cache_service import CacheService, cache_service
from sopmanager.services.audit_service import AuditService, AuditContext, audit_service
from sopmanager.services.auth_service import AuthService, auth_service

# Domain services
from sopmanager.services.restaurant_service import RestaurantService, restaurant_service
from sopmanager.services.user_service import UserService, user_service
from sopmanager.services.sop_service import SOPService, sop_service
from sopmanager.services.sop_activity_service import SOPActivityService, sop_activity_service
from sopmanager.services.training_service import TrainingService, training_service
from sopmanager.services.certificate_service import CertificateService, certificate_service
from sopmanager.services.translation_service import TranslationService, translation_service
from sopmanager.services.analytics_service import AnalyticsService, analytics_service

__all__ = [
    # Core services
    "CacheService",
    "cache_service",
    "AuditService",
    "AuditContext",
    "audit_service",
    "AuthService",
    "auth_service",
    # Domain services
    "RestaurantService",
    "restaurant_service",
    "UserService",
    "user_service",
    "SOPService",
    "sop_service",
    "SOPActivityService",
    "sop_activity_service",
    "TrainingService",
    "training_service",
    "CertificateService",
    "certificate_service",
    "TranslationService",
    "translation_service",
    "AnalyticsService",
    "analytics_service",
]
