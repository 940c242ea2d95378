"""
Approval Schemas
Pydantic models for approval workflow
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from enum import Enum

from training_hub.models.approval import ApprovalStatus


class DecisionStatus(str, Enum):
    approved = "approved"
    rejected = "rejected"


class ApprovalDecision(BaseModel):
    """
    Decision on one approval step

    next_approver_id and next_approval_level route an approved request to
    the next step; leave both empty to finalise, or set auto_route to let
    the service pick the next approver in the chain.
    """
    request_id: int
    status: DecisionStatus
    comments: Optional[str] = None
    requester_id: Optional[int] = None
    next_approver_id: Optional[int] = None
    next_approval_level: Optional[int] = Field(None, ge=1, le=4)
    auto_route: bool = False

    @model_validator(mode='after')
    def validate_next_step(self):
        if (self.next_approver_id is None) != (self.next_approval_level is None):
            raise ValueError("next_approver_id and next_approval_level must be given together")
        return self


class ApprovalDelegate(BaseModel):
    """Hand a pending approval to another user"""
    delegate_to_user_id: int
    comments: str = Field("", max_length=1000)


class ApprovalResponse(BaseModel):
    """Schema for approval response"""
    id: int
    request_id: int
    approver_id: int
    approver_role: Optional[str] = None
    approval_level: int
    status: ApprovalStatus
    comments: Optional[str] = None
    delegated_from: Optional[int] = None
    created_at: datetime
    decision_date: Optional[datetime] = None

    class Config:
        from_attributes = True
