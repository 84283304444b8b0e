"""
Admin endpoints: staff accounts, translation management and audit logs.
"""
from fastapi import APIRouter

from sopmanager.api.v1.endpoints.admin import users, translation_keys, translations, audit_logs

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

admin_router.include_router(users.router, prefix="/users", tags=["Admin - Users"])
admin_router.include_router(translation_keys.router, prefix="/translation-keys", tags=["Admin - Translation Keys"])
admin_router.include_router(translations.router, prefix="/translations", tags=["Admin - Translations"])
admin_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["Admin - Audit Logs"])
