from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.database import get_db
from sopmanager.core.config import settings
from sopmanager.core.permissions import get_role_permissions
from sopmanager.core.pin_policy import is_pin_expired
from sopmanager.core.rate_limiter import auth_rate_limit, strict_rate_limit
from sopmanager.modules.auth.dependencies import CurrentStaff, get_current_staff, get_audit_context
from sopmanager.schemas.auth import (
    LoginRequest,
    LoginResponse,
    SessionResponse,
    MeResponse,
    ChangePinRequest,
    PinStrengthRequest,
    PinStrengthResponse,
    MessageResponse,
    UserResponse,
)
from sopmanager.services.auth_service import auth_service

router = APIRouter()


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_DURATION_HOURS * 3600,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite=settings.SESSION_COOKIE_SAMESITE,
    )


def _sorted_permissions(staff_permissions) -> list:
    return sorted(p.value for p in staff_permissions)


@router.post("/login", response_model=LoginResponse)
@auth_rate_limit()
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Sign in with email and 4-digit PIN (rate limited per client IP)"""
    result = await auth_service.authenticate(
        db,
        email=credentials.email,
        pin=credentials.pin,
        device_fingerprint=credentials.device_fingerprint,
        context=get_audit_context(request),
    )
    user = result["user"]
    session = result["session"]

    _set_session_cookie(response, result["access_token"])

    return LoginResponse(
        access_token=result["access_token"],
        session_id=session.id,
        expires_at=session.expires_at,
        pin_expired=result["pin_expired"],
        permissions=_sorted_permissions(get_role_permissions(user.role)),
        user=UserResponse.model_validate(user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    staff: CurrentStaff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """End the current session"""
    await auth_service.logout(db, staff.user, staff.session, staff.audit)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=MeResponse)
async def get_me(staff: CurrentStaff = Depends(get_current_staff)):
    """Current staff member, permissions and session expiry"""
    return MeResponse(
        user=UserResponse.model_validate(staff.user),
        permissions=_sorted_permissions(staff.permissions),
        session_expires_at=staff.session.expires_at,
        pin_expired=is_pin_expired(staff.user.pin_changed_at),
    )


@router.post("/refresh", response_model=SessionResponse)
async def refresh_session(
    response: Response,
    staff: CurrentStaff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """Extend a session close to expiry"""
    session, token = await auth_service.refresh_session(db, staff.user, staff.session, staff.audit)
    _set_session_cookie(response, token)
    return SessionResponse(
        access_token=token,
        session_id=session.id,
        expires_at=session.expires_at,
        refresh_count=session.refresh_count,
    )


@router.post("/change-pin", response_model=MessageResponse)
@strict_rate_limit()
async def change_pin(
    request: Request,
    data: ChangePinRequest,
    staff: CurrentStaff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db)
):
    """Change own PIN (rate limited: 3/min). Other sessions are signed out."""
    await auth_service.change_pin(
        db, staff.user, staff.session,
        current_pin=data.current_pin,
        new_pin=data.new_pin,
        confirm_pin=data.confirm_pin,
        context=staff.audit,
    )
    return MessageResponse(message="PIN changed")


@router.post("/pin-strength", response_model=PinStrengthResponse)
async def check_pin_strength(data: PinStrengthRequest):
    """Score a candidate PIN without storing it"""
    result = auth_service.check_pin_strength(data.pin)
    return PinStrengthResponse(
        valid=result.valid,
        strength=result.strength,
        score=result.score,
        errors=result.errors,
    )
