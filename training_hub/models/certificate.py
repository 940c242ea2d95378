"""
Certificate Model
Completion certificates and their public verification tokens
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Enum, ForeignKey
from datetime import datetime
import enum

from training_hub.config.database import Base, enum_values


class CertificateStatus(str, enum.Enum):
    """Stored status; "expired" is derived at verification time"""
    VALID = "valid"
    EXPIRED = "expired"
    REVOKED = "revoked"


class Certificate(Base):
    """Certificate model"""
    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, index=True)
    certificate_number = Column(String, unique=True, index=True, nullable=False)

    employee_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    training_request_id = Column(Integer, ForeignKey("training_requests.id"), nullable=True)

    participant_name = Column(String, nullable=False)
    course_name = Column(String, nullable=False)
    provider_name = Column(String, nullable=True)
    completion_date = Column(Date, nullable=False)

    status = Column(Enum(CertificateStatus, values_callable=enum_values), default=CertificateStatus.VALID, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)

    verification_token = Column(String, unique=True, index=True, nullable=False)

    issued_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Certificate {self.certificate_number} - {self.status.value}>"
