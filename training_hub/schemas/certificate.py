"""
Certificate Schemas
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime

from training_hub.models.certificate import CertificateStatus


class CertificateCreate(BaseModel):
    participant_name: str = Field(..., min_length=1, max_length=200)
    course_name: str = Field(..., min_length=1, max_length=300)
    completion_date: date
    provider_name: Optional[str] = None
    employee_id: Optional[int] = None
    training_request_id: Optional[int] = None
    expires_at: Optional[datetime] = None


class CertificateResponse(BaseModel):
    id: int
    certificate_number: str
    participant_name: str
    course_name: str
    provider_name: Optional[str] = None
    completion_date: date
    status: CertificateStatus
    expires_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    issued_at: datetime
    verification_url: Optional[str] = None

    class Config:
        from_attributes = True
