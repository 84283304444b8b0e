from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text
from datetime import datetime, timedelta

from sopmanager.core.config import settings
from sopmanager.core.database import Base
from sopmanager.core.types import GUID, generate_uuid


class StaffSession(Base):
    """Server-side record of a PIN login; the JWT carries its id as `sid`"""
    __tablename__ = "staff_sessions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False, index=True)
    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)

    expires_at = Column(DateTime, nullable=False)
    last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    refresh_count = Column(Integer, default=0, nullable=False)
    revoked_at = Column(DateTime, nullable=True)

    # Device/browser info
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    device_fingerprint = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def is_expired(self, now: datetime = None) -> bool:
        now = now or datetime.utcnow()
        return now >= self.expires_at

    def is_idle(self, now: datetime = None) -> bool:
        now = now or datetime.utcnow()
        return now - self.last_activity_at > timedelta(minutes=settings.SESSION_IDLE_TIMEOUT_MINUTES)

    def is_valid(self, now: datetime = None) -> bool:
        return self.revoked_at is None and not self.is_expired(now) and not self.is_idle(now)

    def extend(self, hours: int = None):
        """Push expiry out by a full session length"""
        now = datetime.utcnow()
        self.expires_at = now + timedelta(hours=hours or settings.SESSION_DURATION_HOURS)
        self.last_activity_at = now
        self.refresh_count = (self.refresh_count or 0) + 1

    def __repr__(self):
        return f"<StaffSession {self.id} user={self.user_id}>"
