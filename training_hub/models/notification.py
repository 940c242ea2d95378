"""
Notification Model
In-app notifications raised by workflow transitions
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from training_hub.config.database import Base, enum_values


class NotificationType(str, enum.Enum):
    """Notification types"""
    APPROVAL_REQUIRED = "approval_required"
    REQUEST_APPROVED = "request_approved"
    REQUEST_REJECTED = "request_rejected"
    SYSTEM = "system"


class Notification(Base):
    """Notification model"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    type = Column(Enum(NotificationType, values_callable=enum_values), nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)

    # Originating entity, e.g. ("training_request", 12) or ("approval", 40)
    reference_type = Column(String, nullable=True)
    reference_id = Column(Integer, nullable=True)

    is_read = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    read_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="notifications")

    def __repr__(self):
        return f"<Notification {self.type.value} - User {self.user_id}>"
