from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Dict, Any
from datetime import datetime


class RestaurantResponse(BaseModel):
    id: str
    name: str
    name_th: Optional[str] = None
    address: Optional[str] = None
    address_th: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    timezone: str
    settings: Optional[Dict[str, Any]] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RestaurantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    name_th: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    address_th: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    timezone: Optional[str] = Field(None, max_length=50)
    settings: Optional[Dict[str, Any]] = None
