"""
Notification Routes
User notification management endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from datetime import datetime

from training_hub.config.database import get_db
from training_hub.services.auth_service import auth_service
from training_hub.models.user import User
from training_hub.models.notification import Notification
from training_hub.models.training_request import TrainingRequest
from training_hub.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()


@router.get("/my-notifications")
async def get_my_notifications(
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """
    Get current user's notifications

    **Parameters:**
    - unread_only: If True, only return unread notifications
    - skip: Number of records to skip (pagination)
    - limit: Maximum number of records to return

    **Returns:**
    - total: Total notification count
    - unread_count: Count of unread notifications
    - notifications: Notifications, with request number and status when they
      reference a training request
    """
    query = db.query(Notification).filter(Notification.user_id == current_user.id)

    if unread_only:
        query = query.filter(Notification.is_read == False)

    total_count = query.count()

    notifications = query.order_by(
        Notification.created_at.desc(), Notification.id.desc()
    ).offset(skip).limit(limit).all()

    unread_count = db.query(Notification).filter(
        Notification.user_id == current_user.id,
        Notification.is_read == False
    ).count()

    notifications_list = []
    for notif in notifications:
        notif_dict = {
            "id": notif.id,
            "user_id": notif.user_id,
            "type": notif.type.value,
            "title": notif.title,
            "message": notif.message,
            "reference_type": notif.reference_type,
            "reference_id": notif.reference_id,
            "is_read": notif.is_read,
            "read_at": notif.read_at.isoformat() if notif.read_at else None,
            "created_at": notif.created_at.isoformat(),
            "request_number": None,
            "request_status": None
        }

        if notif.reference_type == "training_request" and notif.reference_id:
            request = db.query(TrainingRequest).filter(TrainingRequest.id == notif.reference_id).first()
            if request:
                notif_dict["request_number"] = request.request_number
                notif_dict["request_status"] = request.status.value

        notifications_list.append(notif_dict)

    logger.info(f"User {current_user.username} (ID: {current_user.id}) fetched {len(notifications_list)} notifications (unread: {unread_count})")

    return {
        "success": True,
        "total": total_count,
        "unread_count": unread_count,
        "notifications": notifications_list
    }


@router.get("/unread-count")
async def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Count of unread notifications (lightweight endpoint for polling)"""
    unread_count = db.query(Notification).filter(
        Notification.user_id == current_user.id,
        Notification.is_read == False
    ).count()

    return {
        "success": True,
        "unread_count": unread_count
    }


@router.put("/mark-all-read")
async def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """
    Mark all notifications as read for current user

    **Returns:**
    - count: Number of notifications marked as read
    """
    count = db.query(Notification).filter(
        Notification.user_id == current_user.id,
        Notification.is_read == False
    ).update({
        "is_read": True,
        "read_at": datetime.utcnow()
    }, synchronize_session=False)
    db.commit()

    if count:
        logger.info(f"User {current_user.username} marked {count} notifications as read")

    return {
        "success": True,
        "message": "All notifications marked as read" if count else "No unread notifications to mark",
        "count": count
    }


@router.put("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == current_user.id
    ).first()

    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )

    if notification.is_read:
        return {
            "success": True,
            "message": "Notification was already marked as read"
        }

    notification.is_read = True
    notification.read_at = datetime.utcnow()
    db.commit()

    return {
        "success": True,
        "message": "Notification marked as read"
    }


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == current_user.id
    ).first()

    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )

    db.delete(notification)
    db.commit()

    logger.info(f"User {current_user.username} deleted notification {notification_id}")

    return {
        "success": True,
        "message": "Notification deleted successfully"
    }
