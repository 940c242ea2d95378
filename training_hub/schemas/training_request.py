"""
Training Request Schemas
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from training_hub.models.training_request import RequestStatus
from training_hub.schemas.approval import ApprovalResponse


class TrainingRequestCreate(BaseModel):
    """Request training for yourself, or nominate an employee (employee_id)"""
    course_id: int
    employee_id: Optional[int] = None
    justification: Optional[str] = Field(None, max_length=2000)
    preferred_start_date: Optional[datetime] = None


class TrainingRequestResponse(BaseModel):
    id: int
    request_number: str
    employee_id: int
    nominated_by: Optional[int] = None
    course_id: int
    justification: Optional[str] = None
    status: RequestStatus
    is_extended_workflow: bool
    current_approval_level: int
    current_approver_id: Optional[int] = None
    created_at: datetime
    decided_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TrainingRequestDetail(TrainingRequestResponse):
    approvals: List[ApprovalResponse] = []
