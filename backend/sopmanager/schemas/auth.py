from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime

from sopmanager.models.user import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    pin: str = Field(..., min_length=1, max_length=16)
    device_fingerprint: Optional[str] = Field(None, max_length=255)


class UserResponse(BaseModel):
    id: str
    email: str
    role: UserRole
    full_name: str
    full_name_th: Optional[str] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    position_th: Optional[str] = None
    restaurant_id: str
    is_active: bool
    last_login_at: Optional[datetime] = None
    pin_changed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session_id: str
    expires_at: datetime
    pin_expired: bool = False
    permissions: List[str] = []
    user: UserResponse


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session_id: str
    expires_at: datetime
    refresh_count: int


class MeResponse(BaseModel):
    user: UserResponse
    permissions: List[str]
    session_expires_at: datetime
    pin_expired: bool


class ChangePinRequest(BaseModel):
    current_pin: str = Field(..., min_length=1, max_length=16)
    new_pin: str = Field(..., min_length=1, max_length=16)
    confirm_pin: str = Field(..., min_length=1, max_length=16)


class PinStrengthRequest(BaseModel):
    pin: str = Field(..., max_length=16)


class PinStrengthResponse(BaseModel):
    valid: bool
    strength: str
    score: int
    errors: List[str] = []


class MessageResponse(BaseModel):
    message: str
