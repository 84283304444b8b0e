from sqlalchemy import Column, String, Boolean, DateTime, Text, JSON
from datetime import datetime

from sopmanager.core.database import Base
from sopmanager.core.types import GUID, generate_uuid


class Restaurant(Base):
    """A tenant. Every tenant-owned row points at one of these."""
    __tablename__ = "restaurants"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    name_th = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    address_th = Column(Text, nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    timezone = Column(String(50), default="Asia/Bangkok", nullable=False)
    settings = Column(JSON, default=dict)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Restaurant {self.name}>"
