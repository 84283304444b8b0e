"""
Application error codes and their bilingual (English / Thai) messages.

Every error surfaced by the API carries one of these codes. The user-facing
text is picked from ERROR_MESSAGES using the request locale.
"""

import enum
from typing import Dict, Optional


class ErrorCode(str, enum.Enum):
    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_PIN_FORMAT = "INVALID_PIN_FORMAT"
    WEAK_PIN = "WEAK_PIN"
    PIN_MISMATCH = "PIN_MISMATCH"
    PIN_REUSED = "PIN_REUSED"

    # Authentication
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    SESSION_REFRESH_DENIED = "SESSION_REFRESH_DENIED"

    # Authorization
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"

    # Resources
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    STATUS_UNCHANGED = "STATUS_UNCHANGED"

    # Training
    MAX_ATTEMPTS_EXCEEDED = "MAX_ATTEMPTS_EXCEEDED"
    TRAINING_INCOMPLETE = "TRAINING_INCOMPLETE"

    # Platform
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_MESSAGES: Dict[ErrorCode, Dict[str, str]] = {
    ErrorCode.VALIDATION_ERROR: {
        "en": "The submitted data is invalid.",
        "th": "ข้อมูลที่ส่งมาไม่ถูกต้อง",
    },
    ErrorCode.INVALID_PIN_FORMAT: {
        "en": "PIN must be exactly 4 digits.",
        "th": "รหัส PIN ต้องเป็นตัวเลข 4 หลัก",
    },
    ErrorCode.WEAK_PIN: {
        "en": "This PIN is too easy to guess. Please choose another.",
        "th": "รหัส PIN นี้เดาง่ายเกินไป กรุณาเลือกรหัสอื่น",
    },
    ErrorCode.PIN_MISMATCH: {
        "en": "PIN confirmation does not match.",
        "th": "การยืนยันรหัส PIN ไม่ตรงกัน",
    },
    ErrorCode.PIN_REUSED: {
        "en": "New PIN must be different from the current PIN.",
        "th": "รหัส PIN ใหม่ต้องไม่ซ้ำกับรหัสปัจจุบัน",
    },
    ErrorCode.INVALID_CREDENTIALS: {
        "en": "Invalid email or PIN.",
        "th": "อีเมลหรือรหัส PIN ไม่ถูกต้อง",
    },
    ErrorCode.ACCOUNT_LOCKED: {
        "en": "Account is temporarily locked after too many failed attempts.",
        "th": "บัญชีถูกล็อกชั่วคราวเนื่องจากใส่รหัสผิดหลายครั้ง",
    },
    ErrorCode.ACCOUNT_INACTIVE: {
        "en": "This account has been deactivated.",
        "th": "บัญชีนี้ถูกปิดใช้งานแล้ว",
    },
    ErrorCode.AUTH_REQUIRED: {
        "en": "Please sign in to continue.",
        "th": "กรุณาเข้าสู่ระบบเพื่อดำเนินการต่อ",
    },
    ErrorCode.INVALID_TOKEN: {
        "en": "Your session is invalid. Please sign in again.",
        "th": "เซสชันไม่ถูกต้อง กรุณาเข้าสู่ระบบใหม่",
    },
    ErrorCode.SESSION_EXPIRED: {
        "en": "Your session has expired. Please sign in again.",
        "th": "เซสชันหมดอายุแล้ว กรุณาเข้าสู่ระบบใหม่",
    },
    ErrorCode.SESSION_REFRESH_DENIED: {
        "en": "This session cannot be extended.",
        "th": "ไม่สามารถต่ออายุเซสชันนี้ได้",
    },
    ErrorCode.INSUFFICIENT_PERMISSIONS: {
        "en": "You do not have permission to perform this action.",
        "th": "คุณไม่มีสิทธิ์ดำเนินการนี้",
    },
    ErrorCode.NOT_FOUND: {
        "en": "The requested item was not found.",
        "th": "ไม่พบรายการที่ต้องการ",
    },
    ErrorCode.CONFLICT: {
        "en": "This item already exists or is in use.",
        "th": "รายการนี้มีอยู่แล้วหรือกำลังถูกใช้งาน",
    },
    ErrorCode.INVALID_STATUS_TRANSITION: {
        "en": "This status change is not allowed.",
        "th": "ไม่อนุญาตให้เปลี่ยนสถานะนี้",
    },
    ErrorCode.STATUS_UNCHANGED: {
        "en": "The item is already in the requested status.",
        "th": "รายการอยู่ในสถานะที่ร้องขออยู่แล้ว",
    },
    ErrorCode.MAX_ATTEMPTS_EXCEEDED: {
        "en": "Maximum number of training attempts reached.",
        "th": "ทำแบบทดสอบครบจำนวนครั้งสูงสุดแล้ว",
    },
    ErrorCode.TRAINING_INCOMPLETE: {
        "en": "Complete all required sections before the assessment.",
        "th": "กรุณาเรียนให้ครบทุกบทที่กำหนดก่อนทำแบบทดสอบ",
    },
    ErrorCode.RATE_LIMIT_EXCEEDED: {
        "en": "Too many requests. Please try again later.",
        "th": "มีคำขอมากเกินไป กรุณาลองใหม่ภายหลัง",
    },
    ErrorCode.DATABASE_ERROR: {
        "en": "A database error occurred. Please try again.",
        "th": "เกิดข้อผิดพลาดของฐานข้อมูล กรุณาลองใหม่",
    },
    ErrorCode.INTERNAL_ERROR: {
        "en": "An unexpected error occurred.",
        "th": "เกิดข้อผิดพลาดที่ไม่คาดคิด",
    },
}


def get_error_messages(code: ErrorCode) -> Dict[str, str]:
    """Both language variants for a code, falling back to INTERNAL_ERROR"""
    return ERROR_MESSAGES.get(code, ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR])


def get_error_message(code: ErrorCode, locale: str = "en") -> str:
    messages = get_error_messages(code)
    return messages.get(locale, messages["en"])


def get_severity(status_code: int) -> str:
    """Severity bucket reported alongside every error"""
    if status_code >= 500:
        return "critical"
    if status_code >= 400:
        return "medium"
    return "low"


def resolve_locale(accept_language: Optional[str]) -> str:
    """Pick 'th' when the client prefers Thai, otherwise 'en'"""
    if not accept_language:
        return "en"
    for part in accept_language.split(","):
        tag = part.split(";")[0].strip().lower()
        if tag.startswith("th"):
            return "th"
        if tag.startswith("en"):
            return "en"
    return "en"
