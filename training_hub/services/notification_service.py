"""
Notification Service
Creates in-app notifications for workflow transitions

Notifications are added to the caller's session and committed together
with the workflow change that raised them.
"""

from sqlalchemy.orm import Session
from typing import Optional

from training_hub.models.notification import Notification, NotificationType
from training_hub.models.training_request import TrainingRequest
from training_hub.utils.logger import setup_logger

logger = setup_logger()

TRAINING_REQUEST_REFERENCE = "training_request"
APPROVAL_REFERENCE = "approval"


class NotificationService:
    """Service for managing notifications"""

    def create(
        self,
        db: Session,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            reference_type=reference_type,
            reference_id=reference_id
        )
        db.add(notification)
        logger.info(f"Notification {notification_type.value} queued for user {user_id}")
        return notification

    def _course_title(self, request: TrainingRequest) -> str:
        return request.course.title if request.course else "training"

    def notify_approval_required(self, db: Session, request: TrainingRequest, approver_id: int) -> Notification:
        """
        Notify the next approver that a request is waiting on them

        Args:
            db: Database session
            request: Training request awaiting approval
            approver_id: User who must decide
        """
        return self.create(
            db,
            user_id=approver_id,
            notification_type=NotificationType.APPROVAL_REQUIRED,
            title="Training Approval Required",
            message=f'A training request for "{self._course_title(request)}" requires your approval.',
            reference_type=TRAINING_REQUEST_REFERENCE,
            reference_id=request.id
        )

    def notify_request_approved(self, db: Session, request: TrainingRequest) -> Notification:
        """Tell the requester their request is fully approved"""
        return self.create(
            db,
            user_id=request.employee_id,
            notification_type=NotificationType.REQUEST_APPROVED,
            title="Training Request Approved",
            message=f'Your training request for "{self._course_title(request)}" has been fully approved.',
            reference_type=TRAINING_REQUEST_REFERENCE,
            reference_id=request.id
        )

    def notify_request_rejected(
        self,
        db: Session,
        request: TrainingRequest,
        comments: Optional[str] = None
    ) -> Notification:
        """
        Tell the requester their request was rejected

        Args:
            db: Database session
            request: Rejected request
            comments: Approver's reason, appended to the message
        """
        message = f'Your training request for "{self._course_title(request)}" has been rejected.'
        if comments:
            message += f" Reason: {comments}"

        return self.create(
            db,
            user_id=request.employee_id,
            notification_type=NotificationType.REQUEST_REJECTED,
            title="Training Request Rejected",
            message=message,
            reference_type=TRAINING_REQUEST_REFERENCE,
            reference_id=request.id
        )

    def notify_nomination(self, db: Session, request: TrainingRequest, pending_role: Optional[str]) -> Notification:
        """Tell an employee they were nominated by someone else"""
        pending = pending_role.replace("_", " ").upper() if pending_role else "further"
        return self.create(
            db,
            user_id=request.employee_id,
            notification_type=NotificationType.SYSTEM,
            title="Training Nomination",
            message=f'You have been nominated for "{self._course_title(request)}". Pending {pending} approval.',
            reference_type=TRAINING_REQUEST_REFERENCE,
            reference_id=request.id
        )

    def notify_delegation(self, db: Session, approval_id: int, delegate_id: int) -> Notification:
        return self.create(
            db,
            user_id=delegate_id,
            notification_type=NotificationType.APPROVAL_REQUIRED,
            title="Approval Delegated to You",
            message="A training request approval has been delegated to you.",
            reference_type=APPROVAL_REFERENCE,
            reference_id=approval_id
        )


# Create singleton instance
notification_service = NotificationService()
