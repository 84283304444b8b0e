from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Integer, ForeignKey, Index
from datetime import datetime
import enum

from sopmanager.core.database import Base
from sopmanager.core.types import GUID, generate_uuid


class UserRole(str, enum.Enum):
    """Staff roles"""
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"


class User(Base):
    """Restaurant staff account, authenticated by email + 4-digit PIN"""
    __tablename__ = "auth_users"
    __table_args__ = (
        Index('ix_auth_users_restaurant_role', 'restaurant_id', 'role'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    pin_hash = Column(String(255), nullable=True)
    role = Column(SQLEnum(UserRole), default=UserRole.STAFF, nullable=False)

    # Bilingual profile
    full_name = Column(String(255), nullable=False)
    full_name_th = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    position = Column(String(100), nullable=True)
    position_th = Column(String(100), nullable=True)

    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # PIN state
    pin_changed_at = Column(DateTime, nullable=True)
    pin_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime, nullable=True)
    device_fingerprint = Column(String(255), nullable=True)

    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def is_locked(self, now: datetime = None) -> bool:
        now = now or datetime.utcnow()
        return self.locked_until is not None and self.locked_until > now

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else '-'})>"
