"""
Approval Model
One step of a training request's approval chain
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from training_hub.config.database import Base, enum_values


class ApprovalStatus(str, enum.Enum):
    """Approval status"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalLevel(int, enum.Enum):
    """Position in the approval chain: Manager -> HRBP -> L&D -> CHRO"""
    MANAGER = 1
    HRBP = 2
    L_AND_D = 3
    CHRO = 4


class Approval(Base):
    """Approval model"""
    __tablename__ = "approvals"

    id = Column(Integer, primary_key=True, index=True)

    request_id = Column(Integer, ForeignKey("training_requests.id"), nullable=False, index=True)
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    approver_role = Column(String, nullable=True)
    approval_level = Column(Integer, nullable=False)

    status = Column(Enum(ApprovalStatus, values_callable=enum_values), default=ApprovalStatus.PENDING, nullable=False)
    comments = Column(Text, nullable=True)
    decision_date = Column(DateTime, nullable=True)

    # Set when the original approver hands the step to someone else
    delegated_from = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    request = relationship("TrainingRequest", back_populates="approvals")
    approver = relationship("User", foreign_keys=[approver_id])

    def __repr__(self):
        return f"<Approval L{self.approval_level} - {self.status.value}>"
