"""
Training Request Model
An employee's request (or nomination) to attend a course
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Text, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from training_hub.config.database import Base, enum_values


class RequestStatus(str, enum.Enum):
    """Request status"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TrainingRequest(Base):
    """Training request model"""
    __tablename__ = "training_requests"

    id = Column(Integer, primary_key=True, index=True)
    request_number = Column(String, unique=True, index=True, nullable=False)

    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    nominated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)

    justification = Column(Text, nullable=True)
    preferred_start_date = Column(DateTime, nullable=True)

    # Workflow
    status = Column(Enum(RequestStatus, values_callable=enum_values), default=RequestStatus.PENDING, nullable=False)
    is_extended_workflow = Column(Boolean, default=False, nullable=False)
    current_approval_level = Column(Integer, default=0, nullable=False)
    current_approver_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    decided_at = Column(DateTime, nullable=True)

    # Relationships
    employee = relationship("User", foreign_keys=[employee_id])
    current_approver = relationship("User", foreign_keys=[current_approver_id])
    course = relationship("Course")
    approvals = relationship(
        "Approval",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="Approval.approval_level"
    )

    def __repr__(self):
        return f"<TrainingRequest {self.request_number} - {self.status.value}>"
