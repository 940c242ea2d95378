"""
Audit Log Model
Tracks workflow decisions, per diem changes and certificate verifications
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, JSON
from datetime import datetime

from training_hub.config.database import Base


class AuditLog(Base):
    """Audit log model"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Null for anonymous actions such as public certificate verification
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    action = Column(String, nullable=False)  # e.g. "approval_decided", "verified"
    entity_type = Column(String, nullable=False)  # e.g. "approval", "certificate"
    entity_id = Column(Integer, nullable=True)

    description = Column(Text, nullable=False)
    changes = Column(JSON, nullable=True)

    ip_address = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<AuditLog {self.action} on {self.entity_type}:{self.entity_id}>"
