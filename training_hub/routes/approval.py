"""
Approval Routes
Training request approval workflow endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from training_hub.config.database import get_db
from training_hub.schemas.approval import ApprovalDecision, ApprovalDelegate, ApprovalResponse
from training_hub.schemas.training_request import TrainingRequestResponse
from training_hub.services.approval_service import approval_service
from training_hub.services.auth_service import auth_service, AuthContext
from training_hub.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()


@router.get("/pending")
async def get_pending_approvals(
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.get_auth_context)
):
    """
    Get approvals waiting on the current user

    **Returns:**
    - count: Number of pending approvals returned
    - approvals: Approval rows with request number and course title
    """
    approvals = approval_service.pending_for(db, ctx.user_id, skip=skip, limit=limit)

    items = []
    for approval in approvals:
        item = ApprovalResponse.model_validate(approval).model_dump(mode="json")
        request = approval.request
        item["request_number"] = request.request_number
        item["employee_id"] = request.employee_id
        item["employee_name"] = request.employee.full_name if request.employee else None
        item["course_title"] = request.course.title if request.course else None
        item["is_extended_workflow"] = request.is_extended_workflow
        items.append(item)

    logger.info(f"User {ctx.user_id} viewing {len(items)} pending approvals")

    return {
        "success": True,
        "count": len(items),
        "approvals": items
    }


@router.post("/{approval_id}/decision")
async def decide_approval(
    approval_id: int,
    decision: ApprovalDecision,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.get_auth_context)
):
    """
    Approve or reject one approval step

    **Parameters:**
    - request_id: Training request the approval belongs to
    - status: approved | rejected
    - next_approver_id / next_approval_level: route to the next step
    - auto_route: pick the next approver from the chain instead

    **Errors:**
    - 403 when the caller is not the assigned approver
    - 409 when the step was already decided
    """
    request = approval_service.process_decision(db, ctx, approval_id, decision)

    return {
        "success": True,
        "message": f"Approval {decision.status.value}",
        "request": TrainingRequestResponse.model_validate(request).model_dump(mode="json")
    }


@router.post("/{approval_id}/delegate", response_model=ApprovalResponse)
async def delegate_approval(
    approval_id: int,
    payload: ApprovalDelegate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.get_auth_context)
):
    """Hand a pending approval to another user"""
    return approval_service.delegate(db, ctx, approval_id, payload)
