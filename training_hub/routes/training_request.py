"""
Training Request Routes
Request or nominate for training and follow the request through approval
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from training_hub.config.database import get_db
from training_hub.models.course import Course
from training_hub.models.training_request import TrainingRequest, RequestStatus
from training_hub.models.user import User, AppRole
from training_hub.schemas.training_request import (
    TrainingRequestCreate,
    TrainingRequestResponse,
    TrainingRequestDetail,
)
from training_hub.services.approval_service import approval_service
from training_hub.services.auth_service import auth_service, AuthContext
from training_hub.utils.helpers import generate_reference
from training_hub.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()

NOMINATING_ROLES = (AppRole.MANAGER.value, AppRole.HRBP.value, AppRole.L_AND_D.value, AppRole.CHRO.value)
REVIEWING_ROLES = (AppRole.HRBP.value, AppRole.L_AND_D.value, AppRole.CHRO.value)


@router.post("", response_model=TrainingRequestDetail, status_code=status.HTTP_201_CREATED)
async def create_training_request(
    payload: TrainingRequestCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.get_auth_context)
):
    """
    Create a training request and start its approval workflow

    Leave employee_id empty to request for yourself. Managers, HRBP, L&D
    and CHRO may nominate another employee; their own approval level is
    recorded as auto-approved.
    """
    employee_id = payload.employee_id or ctx.user_id
    if employee_id != ctx.user_id and not (ctx.is_admin or ctx.has_role(*NOMINATING_ROLES)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only managers and HR roles can nominate other employees"
        )

    employee = db.query(User).filter(User.id == employee_id, User.is_active == True).first()
    if not employee:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")

    course = db.query(Course).filter(Course.id == payload.course_id, Course.is_active == True).first()
    if not course:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")

    request = TrainingRequest(
        request_number=generate_reference("TR"),
        employee_id=employee.id,
        nominated_by=ctx.user_id if employee.id != ctx.user_id else None,
        course_id=course.id,
        justification=payload.justification,
        preferred_start_date=payload.preferred_start_date,
        status=RequestStatus.PENDING,
        is_extended_workflow=course.requires_extended_workflow,
        current_approval_level=0
    )
    db.add(request)
    db.flush()

    try:
        request = approval_service.initialize_workflow(db, request, ctx.user)
    except Exception:
        db.rollback()
        raise

    logger.info(f"Training request {request.request_number} created by user {ctx.user_id} for employee {employee.id}")
    return request


@router.get("/my-requests", response_model=List[TrainingRequestResponse])
async def get_my_requests(
    request_status: Optional[RequestStatus] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.get_auth_context)
):
    """Requests where the current user is the trainee, newest first"""
    query = db.query(TrainingRequest).filter(TrainingRequest.employee_id == ctx.user_id)
    if request_status:
        query = query.filter(TrainingRequest.status == request_status)

    return query.order_by(
        TrainingRequest.created_at.desc(), TrainingRequest.id.desc()
    ).offset(skip).limit(limit).all()


@router.get("/{request_id}", response_model=TrainingRequestDetail)
async def get_training_request(
    request_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.get_auth_context)
):
    """Request detail with its approval history"""
    request = db.query(TrainingRequest).filter(TrainingRequest.id == request_id).first()
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Training request not found")

    involved = {request.employee_id, request.nominated_by} | {a.approver_id for a in request.approvals}
    if ctx.user_id not in involved and not (ctx.is_admin or ctx.has_role(*REVIEWING_ROLES)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    return request
