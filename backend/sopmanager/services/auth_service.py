"""
Auth Service - PIN login, lockout, server-side sessions and PIN changes

Handles:
- Email + 4-digit PIN authentication with progressive lockout
- StaffSession rows bound to the issued JWT (`sid` claim)
- Session refresh, logout and revocation
- Self-service PIN change under the PIN policy
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple, Dict, Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.config import settings
from sopmanager.core.errors import ErrorCode
from sopmanager.core.exceptions import (
    AccountInactiveError,
    AccountLockedError,
    InvalidCredentialsError,
    InvalidTokenError,
    PinPolicyError,
    SessionExpiredError,
    SessionRefreshDeniedError,
)
from sopmanager.core.logging_config import logger
from sopmanager.core.pin_policy import (
    PinValidationResult,
    is_pin_expired,
    is_valid_pin_format,
    lockout_minutes,
    validate_pin,
    validate_pin_change,
)
from sopmanager.core.security import create_session_token, hash_pin, verify_pin
from sopmanager.models.audit_log import AuditAction
from sopmanager.models.session import StaffSession
from sopmanager.models.user import User
from sopmanager.services.audit_service import AuditContext, audit_service


class AuthService:
    """Service for staff authentication"""

    # ==================== LOGIN ====================

    async def authenticate(
        self,
        db: AsyncSession,
        email: str,
        pin: str,
        device_fingerprint: Optional[str] = None,
        context: Optional[AuditContext] = None,
    ) -> Dict[str, Any]:
        """
        Exchange email + PIN for a session.

        Returns:
            Dict with user, session, access_token and pin_expired
        """
        context = context or AuditContext()
        email = email.strip().lower()

        if not is_valid_pin_format(pin):
            verify_pin(pin, None)
            logger.log_auth_event("login", False, user_email=email, reason="invalid_pin_format")
            raise PinPolicyError(ErrorCode.INVALID_PIN_FORMAT, ["PIN must be exactly 4 digits"])

        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if not user:
            verify_pin(pin, None)
            logger.log_auth_event("login", False, user_email=email, reason="unknown_email")
            raise InvalidCredentialsError()

        now = datetime.utcnow()

        if user.is_locked(now):
            audit_service.record(
                db, AuditAction.LOGIN, "auth_user", user.id, user=user,
                metadata={"success": False, "reason": "account_locked"}, context=context,
            )
            await db.commit()
            logger.log_auth_event("login", False, user_email=email, reason="account_locked")
            raise AccountLockedError(user.locked_until)

        if not verify_pin(pin, user.pin_hash):
            await self._register_failed_attempt(db, user, now, context)
            if user.is_locked(now):
                raise AccountLockedError(user.locked_until)
            raise InvalidCredentialsError()

        if not user.is_active:
            audit_service.record(
                db, AuditAction.LOGIN, "auth_user", user.id, user=user,
                metadata={"success": False, "reason": "account_inactive"}, context=context,
            )
            await db.commit()
            logger.log_auth_event("login", False, user_email=email, reason="account_inactive")
            raise AccountInactiveError()

        user.pin_attempts = 0
        user.locked_until = None
        user.last_login_at = now
        if device_fingerprint:
            user.device_fingerprint = device_fingerprint

        session, token = await self._open_session(db, user, device_fingerprint, context)

        audit_service.record(
            db, AuditAction.LOGIN, "auth_user", user.id, user=user,
            metadata={"success": True},
            context=AuditContext(context.ip_address, context.user_agent, session.id),
        )
        await db.commit()

        logger.log_auth_event("login", True, user_email=email, session_id=session.id)

        return {
            "user": user,
            "session": session,
            "access_token": token,
            "pin_expired": is_pin_expired(user.pin_changed_at, now),
        }

    async def _register_failed_attempt(
        self,
        db: AsyncSession,
        user: User,
        now: datetime,
        context: AuditContext,
    ) -> None:
        user.pin_attempts = (user.pin_attempts or 0) + 1
        minutes = lockout_minutes(user.pin_attempts)
        if minutes:
            user.locked_until = now + timedelta(minutes=minutes)

        audit_service.record(
            db, AuditAction.LOGIN, "auth_user", user.id, user=user,
            metadata={
                "success": False,
                "reason": "invalid_pin",
                "attempts": user.pin_attempts,
                "locked_minutes": minutes,
            },
            context=context,
        )
        await db.commit()

        if minutes:
            logger.log_auth_event(
                "lockout", False, user_email=user.email,
                reason=f"{user.pin_attempts} failed attempts, locked {minutes} min",
            )
        else:
            logger.log_auth_event("login", False, user_email=user.email, reason="invalid_pin")

    async def _open_session(
        self,
        db: AsyncSession,
        user: User,
        device_fingerprint: Optional[str],
        context: AuditContext,
    ) -> Tuple[StaffSession, str]:
        now = datetime.utcnow()
        session = StaffSession(
            user_id=user.id,
            restaurant_id=user.restaurant_id,
            expires_at=now + timedelta(hours=settings.SESSION_DURATION_HOURS),
            last_activity_at=now,
            refresh_count=0,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            device_fingerprint=device_fingerprint,
        )
        db.add(session)
        await db.flush()

        token = create_session_token(
            user.id, session.id, user.restaurant_id, user.role.value, session.expires_at
        )
        return session, token

    # ==================== SESSIONS ====================

    async def resolve_session(
        self,
        db: AsyncSession,
        payload: Dict[str, Any],
    ) -> Tuple[User, StaffSession]:
        """Load and validate the session a decoded token points at"""
        if payload.get("type") != "access":
            raise InvalidTokenError("Invalid token type")

        user_id = payload.get("sub")
        session_id = payload.get("sid")
        if not user_id or not session_id:
            raise InvalidTokenError("Invalid token payload")

        result = await db.execute(select(StaffSession).where(StaffSession.id == session_id))
        session = result.scalar_one_or_none()
        if not session or session.user_id != user_id:
            raise InvalidTokenError("Session not found")

        now = datetime.utcnow()
        if session.revoked_at is not None:
            raise InvalidTokenError("Session has been revoked")
        if session.is_expired(now) or session.is_idle(now):
            raise SessionExpiredError()

        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user or user.restaurant_id != session.restaurant_id:
            raise InvalidTokenError("Session user not found")
        if not user.is_active:
            raise AccountInactiveError()

        session.last_activity_at = now
        return user, session

    async def refresh_session(
        self,
        db: AsyncSession,
        user: User,
        session: StaffSession,
        context: Optional[AuditContext] = None,
    ) -> Tuple[StaffSession, str]:
        """Extend a session that is close to expiry"""
        now = datetime.utcnow()

        if session.refresh_count >= settings.SESSION_MAX_REFRESH_COUNT:
            raise SessionRefreshDeniedError(
                f"Session already refreshed {session.refresh_count} times"
            )
        if session.expires_at - now > timedelta(hours=settings.SESSION_REFRESH_THRESHOLD_HOURS):
            raise SessionRefreshDeniedError(
                f"Sessions can only be refreshed within {settings.SESSION_REFRESH_THRESHOLD_HOURS} hours of expiry"
            )

        old_expiry = session.expires_at
        session.extend()
        token = create_session_token(
            user.id, session.id, user.restaurant_id, user.role.value, session.expires_at
        )

        audit_service.record(
            db, AuditAction.UPDATE, "staff_session", session.id, user=user,
            old_values={"expires_at": old_expiry},
            new_values={"expires_at": session.expires_at, "refresh_count": session.refresh_count},
            context=context,
        )
        await db.commit()

        logger.log_auth_event("refresh", True, user_email=user.email, session_id=session.id)
        return session, token

    async def logout(
        self,
        db: AsyncSession,
        user: User,
        session: StaffSession,
        context: Optional[AuditContext] = None,
    ) -> None:
        session.revoked_at = datetime.utcnow()
        audit_service.record(
            db, AuditAction.LOGOUT, "staff_session", session.id, user=user, context=context,
        )
        await db.commit()
        logger.log_auth_event("logout", True, user_email=user.email, session_id=session.id)

    async def revoke_user_sessions(
        self,
        db: AsyncSession,
        user_id: str,
        except_session_id: Optional[str] = None,
    ) -> int:
        """Revoke every open session of a user, optionally keeping one"""
        stmt = (
            update(StaffSession)
            .where(StaffSession.user_id == user_id, StaffSession.revoked_at.is_(None))
            .values(revoked_at=datetime.utcnow())
        )
        if except_session_id:
            stmt = stmt.where(StaffSession.id != except_session_id)
        result = await db.execute(stmt)
        return result.rowcount or 0

    # ==================== PIN ====================

    def check_pin_strength(self, pin: str) -> PinValidationResult:
        return validate_pin(pin)

    async def change_pin(
        self,
        db: AsyncSession,
        user: User,
        session: StaffSession,
        current_pin: str,
        new_pin: str,
        confirm_pin: str,
        context: Optional[AuditContext] = None,
    ) -> None:
        """Change the caller's own PIN; other sessions are signed out"""
        now = datetime.utcnow()
        context = context or AuditContext()

        if not verify_pin(current_pin, user.pin_hash):
            await self._register_failed_attempt(db, user, now, context)
            if user.is_locked(now):
                raise AccountLockedError(user.locked_until)
            raise InvalidCredentialsError()

        check = validate_pin_change(current_pin, new_pin, confirm_pin)
        if not check.valid:
            logger.log_auth_event("pin_change", False, user_email=user.email, reason=check.error_code.value)
            raise PinPolicyError(check.error_code, check.errors)

        user.pin_hash = hash_pin(new_pin)
        user.pin_changed_at = now
        user.pin_attempts = 0
        user.locked_until = None

        revoked = await self.revoke_user_sessions(db, user.id, except_session_id=session.id)

        audit_service.record(
            db, AuditAction.UPDATE, "auth_user", user.id, user=user,
            metadata={"event": "pin_change", "strength": check.strength, "sessions_revoked": revoked},
            context=context,
        )
        await db.commit()

        logger.log_auth_event("pin_change", True, user_email=user.email)


auth_service = AuthService()
