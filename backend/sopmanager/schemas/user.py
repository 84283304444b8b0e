from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List

from sopmanager.models.user import UserRole
from sopmanager.schemas.auth import UserResponse


class StaffCreate(BaseModel):
    email: EmailStr
    pin: str = Field(..., min_length=1, max_length=16)
    role: UserRole = UserRole.STAFF
    full_name: str = Field(..., min_length=1, max_length=255)
    full_name_th: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    position: Optional[str] = Field(None, max_length=100)
    position_th: Optional[str] = Field(None, max_length=100)


class StaffUpdate(BaseModel):
    role: Optional[UserRole] = None
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    full_name_th: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    position: Optional[str] = Field(None, max_length=100)
    position_th: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None


class StaffResetPin(BaseModel):
    new_pin: str = Field(..., min_length=1, max_length=16)


class StaffListResponse(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool
