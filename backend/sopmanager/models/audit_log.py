from sqlalchemy import Column, String, DateTime, Text, ForeignKey, JSON, Index, Enum as SQLEnum
from datetime import datetime
import enum

from sopmanager.core.database import Base
from sopmanager.core.types import GUID, generate_uuid


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    VIEW = "VIEW"
    DOWNLOAD = "DOWNLOAD"
    UPLOAD = "UPLOAD"
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class AuditLog(Base):
    """Audit trail of mutations and auth events, scoped to a restaurant"""
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index('ix_audit_logs_restaurant_created', 'restaurant_id', 'created_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    restaurant_id = Column(GUID, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=True)
    user_id = Column(GUID, ForeignKey("auth_users.id", ondelete="SET NULL"), nullable=True, index=True)

    action = Column(SQLEnum(AuditAction), nullable=False)
    resource_type = Column(String(50), nullable=False)  # e.g. 'sop_document', 'auth_user'
    resource_id = Column(GUID, nullable=True)

    # Change details
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    # `metadata` is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, nullable=True)

    # Request metadata
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    session_id = Column(GUID, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action.value if self.action else '-'} {self.resource_type} by {self.user_id}>"
