"""
Database models

Importing this package registers every table on Base.metadata.
"""

from training_hub.models.user import User, UserRoleAssignment, AppRole
from training_hub.models.course import Course, TrainingLocation, CostLevel
from training_hub.models.training_request import TrainingRequest, RequestStatus
from training_hub.models.approval import Approval, ApprovalStatus, ApprovalLevel
from training_hub.models.notification import Notification, NotificationType
from training_hub.models.audit_log import AuditLog
from training_hub.models.per_diem import (
    DestinationBand,
    GradeBand,
    PolicyConfig,
    PerDiemCalculation,
    PerDiemOverride,
    CalculationType,
    CalculationStatus,
    OverrideStatus,
)
from training_hub.models.certificate import Certificate, CertificateStatus
