"""
User Service - Tenant-scoped staff management
"""

from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.exceptions import (
    ConflictError,
    PinPolicyError,
    ResourceNotFoundError,
    ValidationError,
)
from sopmanager.core.logging_config import logger
from sopmanager.core.pin_policy import validate_pin
from sopmanager.core.security import hash_pin
from sopmanager.models.audit_log import AuditAction
from sopmanager.models.user import User, UserRole
from sopmanager.schemas.user import StaffCreate, StaffUpdate
from sopmanager.services.audit_service import AuditContext, audit_service, diff_values
from sopmanager.services.auth_service import auth_service
from sopmanager.utils.pagination import paginate

PROFILE_FIELDS = (
    "role", "full_name", "full_name_th", "phone", "position", "position_th", "is_active",
)


def _profile(user: User) -> dict:
    return {name: getattr(user, name) for name in PROFILE_FIELDS}


def _checked_pin(pin: str) -> str:
    result = validate_pin(pin)
    if not result.valid:
        raise PinPolicyError(result.error_code, result.errors)
    return hash_pin(pin)


class UserService:
    """Service for managing staff accounts within one restaurant"""

    async def list_staff(
        self,
        db: AsyncSession,
        restaurant_id: str,
        page: int = 1,
        page_size: int = 20,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> dict:
        query = select(User).where(User.restaurant_id == restaurant_id)
        if role:
            query = query.where(User.role == role)
        if is_active is not None:
            query = query.where(User.is_active == is_active)
        if search:
            term = f"%{search.strip()}%"
            query = query.where(or_(
                User.email.ilike(term),
                User.full_name.ilike(term),
                User.full_name_th.ilike(term),
            ))
        query = query.order_by(User.full_name)
        return await paginate(db, query, page, page_size)

    async def get_staff(self, db: AsyncSession, restaurant_id: str, user_id: str) -> User:
        result = await db.execute(
            select(User).where(User.id == user_id, User.restaurant_id == restaurant_id)
        )
        user = result.scalar_one_or_none()
        if not user:
            raise ResourceNotFoundError("User", user_id)
        return user

    async def create_staff(
        self,
        db: AsyncSession,
        restaurant_id: str,
        data: StaffCreate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> User:
        email = data.email.lower()
        existing = await db.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none():
            raise ConflictError(f"A user with email '{email}' already exists", details={"field": "email"})

        user = User(
            email=email,
            pin_hash=_checked_pin(data.pin),
            role=data.role,
            full_name=data.full_name,
            full_name_th=data.full_name_th,
            phone=data.phone,
            position=data.position,
            position_th=data.position_th,
            restaurant_id=restaurant_id,
            is_active=True,
            # Admin-assigned PINs count as never changed
            pin_changed_at=None,
            pin_attempts=0,
        )
        db.add(user)
        await db.flush()

        audit_service.record(
            db, AuditAction.CREATE, "auth_user", user.id, user=actor,
            new_values={"email": email, **_profile(user)}, context=context,
        )
        await db.commit()

        logger.info(f"Created staff user {email} ({data.role.value})")
        return user

    async def update_staff(
        self,
        db: AsyncSession,
        restaurant_id: str,
        user_id: str,
        data: StaffUpdate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> User:
        user = await self.get_staff(db, restaurant_id, user_id)
        changes = data.model_dump(exclude_unset=True)

        if user.id == actor.id:
            if changes.get("is_active") is False:
                raise ValidationError("You cannot deactivate your own account", field="is_active")
            if "role" in changes and changes["role"] != user.role:
                raise ValidationError("You cannot change your own role", field="role")

        before = _profile(user)
        for field, value in changes.items():
            setattr(user, field, value)

        if before["is_active"] and not user.is_active:
            await auth_service.revoke_user_sessions(db, user.id)

        old_values, new_values = diff_values(before, _profile(user))
        if new_values:
            audit_service.record(
                db, AuditAction.UPDATE, "auth_user", user.id, user=actor,
                old_values=old_values, new_values=new_values, context=context,
            )
        await db.commit()
        return user

    async def reset_pin(
        self,
        db: AsyncSession,
        restaurant_id: str,
        user_id: str,
        new_pin: str,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> User:
        """Set a new PIN, clear lockout and sign the user out everywhere"""
        user = await self.get_staff(db, restaurant_id, user_id)

        user.pin_hash = _checked_pin(new_pin)
        user.pin_changed_at = None
        user.pin_attempts = 0
        user.locked_until = None
        revoked = await auth_service.revoke_user_sessions(db, user.id)

        audit_service.record(
            db, AuditAction.UPDATE, "auth_user", user.id, user=actor,
            metadata={"event": "pin_reset", "sessions_revoked": revoked}, context=context,
        )
        await db.commit()

        logger.log_auth_event("pin_reset", True, user_email=user.email, reset_by=actor.id)
        return user

    async def unlock(
        self,
        db: AsyncSession,
        restaurant_id: str,
        user_id: str,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> User:
        user = await self.get_staff(db, restaurant_id, user_id)

        old_values = {"pin_attempts": user.pin_attempts, "locked_until": user.locked_until}
        user.pin_attempts = 0
        user.locked_until = None

        audit_service.record(
            db, AuditAction.UPDATE, "auth_user", user.id, user=actor,
            old_values=old_values, new_values={"pin_attempts": 0, "locked_until": None},
            metadata={"event": "unlock"}, context=context,
        )
        await db.commit()

        logger.log_auth_event("unlock", True, user_email=user.email, unlocked_by=actor.id)
        return user

    async def deactivate(
        self,
        db: AsyncSession,
        restaurant_id: str,
        user_id: str,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> User:
        user = await self.get_staff(db, restaurant_id, user_id)
        if user.id == actor.id:
            raise ValidationError("You cannot deactivate your own account", field="user_id")

        user.is_active = False
        revoked = await auth_service.revoke_user_sessions(db, user.id)

        audit_service.record(
            db, AuditAction.DELETE, "auth_user", user.id, user=actor,
            old_values={"is_active": True}, new_values={"is_active": False},
            metadata={"sessions_revoked": revoked}, context=context,
        )
        await db.commit()
        return user


user_service = UserService()
