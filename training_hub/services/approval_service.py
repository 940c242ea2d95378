"""
Approval Service
Routes training requests through the approval chain and applies decisions

Chain for abroad or high-cost training:
    Employee -> Manager (1) -> HRBP (2) -> L&D (3) -> CHRO (4)
Local, low-cost training only needs the manager.

A decision is applied in a single transaction: the approval row, the
request row, the next approval and the notifications commit together or
not at all. Both the approval and the request are updated only while still
pending, so two approvers racing on the same step cannot both advance it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List
from sqlalchemy.orm import Session

from training_hub.models.approval import Approval, ApprovalStatus, ApprovalLevel
from training_hub.models.audit_log import AuditLog
from training_hub.models.training_request import TrainingRequest, RequestStatus
from training_hub.models.user import User, UserRoleAssignment, AppRole
from training_hub.schemas.approval import ApprovalDecision, ApprovalDelegate, DecisionStatus
from training_hub.services.auth_service import AuthContext
from training_hub.services.notification_service import notification_service
from training_hub.utils.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    InvalidDecisionError,
    ApprovalConflictError,
)
from training_hub.utils.logger import setup_logger, log_audit

logger = setup_logger()

ROLE_TO_LEVEL = {
    AppRole.EMPLOYEE.value: 0,
    AppRole.MANAGER.value: ApprovalLevel.MANAGER.value,
    AppRole.HRBP.value: ApprovalLevel.HRBP.value,
    AppRole.L_AND_D.value: ApprovalLevel.L_AND_D.value,
    AppRole.CHRO.value: ApprovalLevel.CHRO.value,
    AppRole.ADMIN.value: ApprovalLevel.CHRO.value,
}

LEVEL_TO_ROLE = {
    ApprovalLevel.MANAGER.value: AppRole.MANAGER.value,
    ApprovalLevel.HRBP.value: AppRole.HRBP.value,
    ApprovalLevel.L_AND_D.value: AppRole.L_AND_D.value,
    ApprovalLevel.CHRO.value: AppRole.CHRO.value,
}

DELEGATION_PREFIX = "Delegated: "


@dataclass
class NextStep:
    """Next approver in the chain; approver_id is None past the end of the chain"""
    approver_id: Optional[int]
    level: int
    role: Optional[str]


class ApprovalService:
    """Service for the training request approval workflow"""

    # ============================================
    # CHAIN LOOKUPS
    # ============================================

    def get_user_level(self, user: User) -> int:
        """Highest approval level any of the user's roles maps to"""
        return max((ROLE_TO_LEVEL.get(role.value, 0) for role in user.roles), default=0)

    def _active_role_holders(self, db: Session, role: AppRole):
        return db.query(User).join(UserRoleAssignment).filter(
            UserRoleAssignment.role == role,
            User.is_active == True
        ).order_by(User.id)

    def find_manager(self, db: Session, employee: User) -> Optional[int]:
        return employee.manager_id

    def find_hrbp(self, db: Session, employee: User) -> Optional[int]:
        """HRBP of the employee's entity, falling back to any HRBP"""
        hrbps = self._active_role_holders(db, AppRole.HRBP)
        if employee.entity_id:
            match = hrbps.filter(User.entity_id == employee.entity_id).first()
            if match:
                return match.id
        fallback = hrbps.first()
        return fallback.id if fallback else None

    def find_role_holder(self, db: Session, role: AppRole) -> Optional[int]:
        holder = self._active_role_holders(db, role).first()
        return holder.id if holder else None

    def _find_approver_at(self, db: Session, level: int, employee: User) -> Optional[int]:
        if level == ApprovalLevel.MANAGER:
            return self.find_manager(db, employee)
        if level == ApprovalLevel.HRBP:
            return self.find_hrbp(db, employee)
        if level == ApprovalLevel.L_AND_D:
            return self.find_role_holder(db, AppRole.L_AND_D)
        if level == ApprovalLevel.CHRO:
            return self.find_role_holder(db, AppRole.CHRO)
        return None

    def find_next_approver(self, db: Session, current_level: int, employee: User) -> NextStep:
        """
        Next approver above current_level

        Levels with nobody to approve are skipped, except CHRO: an empty
        CHRO level is returned with approver_id None.
        """
        level = current_level
        while True:
            level += 1
            if level > ApprovalLevel.CHRO:
                return NextStep(approver_id=None, level=level, role=None)

            approver_id = self._find_approver_at(db, level, employee)
            if approver_id or level >= ApprovalLevel.CHRO:
                logger.debug(f"Next approver for employee {employee.id} after level {current_level}: {approver_id} at {level}")
                return NextStep(approver_id=approver_id, level=level, role=LEVEL_TO_ROLE[level])

            logger.info(f"No {LEVEL_TO_ROLE[level]} approver for employee {employee.id}, skipping level {level}")

    # ============================================
    # WORKFLOW INITIALISATION
    # ============================================

    def _route_to(self, db: Session, request: TrainingRequest, step: NextStep) -> Approval:
        request.status = RequestStatus.PENDING
        request.current_approval_level = step.level
        request.current_approver_id = step.approver_id

        approval = Approval(
            request_id=request.id,
            approver_id=step.approver_id,
            approver_role=step.role,
            approval_level=step.level,
            status=ApprovalStatus.PENDING
        )
        db.add(approval)
        notification_service.notify_approval_required(db, request, step.approver_id)
        return approval

    def _finalise(self, db: Session, request: TrainingRequest, level: int):
        request.status = RequestStatus.APPROVED
        request.current_approval_level = level
        request.current_approver_id = None
        request.decided_at = datetime.utcnow()
        notification_service.notify_request_approved(db, request)

    def initialize_workflow(self, db: Session, request: TrainingRequest, nominator: User) -> TrainingRequest:
        """
        Start the approval chain for a freshly created request

        The nominator's own level is recorded as auto-approved when they are
        a manager or above; the request is then routed to the next approver,
        or approved outright when nobody is left.
        """
        employee = request.employee
        nominator_level = self.get_user_level(nominator)
        now = datetime.utcnow()

        logger.info(
            f"Initialising workflow for {request.request_number}: nominator={nominator.id} "
            f"level={nominator_level} extended={request.is_extended_workflow}"
        )

        if not request.is_extended_workflow:
            if nominator_level >= ApprovalLevel.MANAGER:
                db.add(Approval(
                    request_id=request.id,
                    approver_id=nominator.id,
                    approver_role=LEVEL_TO_ROLE[ApprovalLevel.MANAGER.value],
                    approval_level=ApprovalLevel.MANAGER.value,
                    status=ApprovalStatus.APPROVED,
                    decision_date=now,
                    comments="Auto-approved - local/low-cost training"
                ))
                self._finalise(db, request, ApprovalLevel.MANAGER.value)
            else:
                step = self.find_next_approver(db, 0, employee)
                if step.approver_id:
                    self._route_to(db, request, step)
                else:
                    logger.warning(f"No approver found for {request.request_number}; request left pending")
        else:
            if nominator_level >= ApprovalLevel.MANAGER:
                db.add(Approval(
                    request_id=request.id,
                    approver_id=nominator.id,
                    approver_role=LEVEL_TO_ROLE[nominator_level],
                    approval_level=nominator_level,
                    status=ApprovalStatus.APPROVED,
                    decision_date=now,
                    comments=f"Auto-approved by {LEVEL_TO_ROLE[nominator_level]} nomination"
                ))

            step = self.find_next_approver(db, max(nominator_level, 0), employee)
            if step.approver_id and step.level <= ApprovalLevel.CHRO:
                self._route_to(db, request, step)
                if nominator.id != employee.id:
                    notification_service.notify_nomination(db, request, step.role)
            else:
                self._finalise(db, request, ApprovalLevel.CHRO.value)

        db.commit()
        db.refresh(request)
        log_audit(nominator.id, "workflow_initialised", f"request={request.request_number} status={request.status.value}")
        return request

    # ============================================
    # DECISIONS
    # ============================================

    def get_approval(self, db: Session, approval_id: int) -> Approval:
        approval = db.query(Approval).filter(Approval.id == approval_id).first()
        if not approval:
            raise NotFoundError("Approval not found")
        return approval

    def resolve_next_step(self, db: Session, approval: Approval, request: TrainingRequest) -> Optional[NextStep]:
        """Next approver after this approval, or None when approving it finalises the request"""
        if not request.is_extended_workflow or approval.approval_level >= ApprovalLevel.CHRO:
            return None
        step = self.find_next_approver(db, approval.approval_level, request.employee)
        if step.approver_id and step.level <= ApprovalLevel.CHRO:
            return step
        return None

    def _claim_pending(self, db: Session, approval_id: int, values: dict):
        """Update the approval only if it is still pending"""
        updated = db.query(Approval).filter(
            Approval.id == approval_id,
            Approval.status == ApprovalStatus.PENDING
        ).update(values, synchronize_session=False)
        if not updated:
            raise ApprovalConflictError("Approval has already been decided")

    def _advance_request(self, db: Session, request_id: int, values: dict):
        """Update the request only if it is still pending"""
        values["updated_at"] = datetime.utcnow()
        updated = db.query(TrainingRequest).filter(
            TrainingRequest.id == request_id,
            TrainingRequest.status == RequestStatus.PENDING
        ).update(values, synchronize_session=False)
        if not updated:
            raise ApprovalConflictError("Training request is no longer pending")

    def process_decision(
        self,
        db: Session,
        ctx: AuthContext,
        approval_id: int,
        decision: ApprovalDecision
    ) -> TrainingRequest:
        """
        Apply an approver's decision and move the request along the chain

        - rejected: request rejected, current approver cleared, requester notified
        - approved with a next step: request stays pending at the next level,
          one new pending approval is created and its approver notified
        - approved without a next step: request approved, requester notified

        Raises:
            NotFoundError, PermissionDeniedError, InvalidDecisionError,
            ApprovalConflictError
        """
        approval = self.get_approval(db, approval_id)
        if approval.request_id != decision.request_id:
            raise InvalidDecisionError("Approval does not belong to this training request")

        if approval.approver_id != ctx.user_id and not ctx.is_admin:
            raise PermissionDeniedError("You are not the approver for this step")

        request = approval.request
        if decision.requester_id is not None and decision.requester_id != request.employee_id:
            raise InvalidDecisionError("requester_id does not match the training request")

        next_step = None
        if decision.status == DecisionStatus.approved:
            if decision.next_approver_id is not None:
                if decision.next_approval_level <= approval.approval_level:
                    raise InvalidDecisionError("Next approval level must be above the current level")
                if not db.query(User).filter(User.id == decision.next_approver_id).first():
                    raise NotFoundError("Next approver not found")
                next_step = NextStep(
                    approver_id=decision.next_approver_id,
                    level=decision.next_approval_level,
                    role=LEVEL_TO_ROLE.get(decision.next_approval_level)
                )
            elif decision.auto_route:
                next_step = self.resolve_next_step(db, approval, request)

        now = datetime.utcnow()
        try:
            self._claim_pending(db, approval.id, {
                "status": ApprovalStatus(decision.status.value),
                "comments": decision.comments,
                "decision_date": now,
            })

            if decision.status == DecisionStatus.rejected:
                self._advance_request(db, request.id, {
                    "status": RequestStatus.REJECTED,
                    "current_approver_id": None,
                    "decided_at": now,
                })
                notification_service.notify_request_rejected(db, request, decision.comments)
                outcome = "rejected"
            elif next_step is not None:
                self._advance_request(db, request.id, {
                    "status": RequestStatus.PENDING,
                    "current_approval_level": next_step.level,
                    "current_approver_id": next_step.approver_id,
                })
                db.add(Approval(
                    request_id=request.id,
                    approver_id=next_step.approver_id,
                    approver_role=next_step.role,
                    approval_level=next_step.level,
                    status=ApprovalStatus.PENDING
                ))
                notification_service.notify_approval_required(db, request, next_step.approver_id)
                outcome = f"routed to level {next_step.level}"
            else:
                self._advance_request(db, request.id, {
                    "status": RequestStatus.APPROVED,
                    "current_approver_id": None,
                    "decided_at": now,
                })
                notification_service.notify_request_approved(db, request)
                outcome = "approved"

            db.add(AuditLog(
                user_id=ctx.user_id,
                action=f"approval_{decision.status.value}",
                entity_type="approval",
                entity_id=approval.id,
                description=f"Level {approval.approval_level} {decision.status.value}; request {outcome}",
                changes={
                    "request_id": request.id,
                    "next_approver_id": next_step.approver_id if next_step else None,
                    "next_approval_level": next_step.level if next_step else None,
                },
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(request)
        logger.info(f"Approval {approval_id} {decision.status.value} by user {ctx.user_id}: {request.request_number} {outcome}")
        log_audit(ctx.user_id, f"approval_{decision.status.value}", f"approval={approval_id} request={request.request_number} {outcome}")
        return request

    def delegate(
        self,
        db: Session,
        ctx: AuthContext,
        approval_id: int,
        payload: ApprovalDelegate
    ) -> Approval:
        """
        Reassign a pending approval to another user

        Level and status are unchanged; the comment is prefixed with
        "Delegated: " and the delegate is notified.
        """
        approval = self.get_approval(db, approval_id)
        if approval.approver_id != ctx.user_id and not ctx.is_admin:
            raise PermissionDeniedError("You are not the approver for this step")
        if payload.delegate_to_user_id == approval.approver_id:
            raise InvalidDecisionError("Approval is already assigned to this user")

        delegate = db.query(User).filter(User.id == payload.delegate_to_user_id).first()
        if not delegate or not delegate.is_active:
            raise NotFoundError("Delegate not found or inactive")

        previous_approver_id = approval.approver_id
        try:
            self._claim_pending(db, approval.id, {
                "approver_id": delegate.id,
                "delegated_from": ctx.user_id,
                "comments": f"{DELEGATION_PREFIX}{payload.comments}",
            })

            # The request's acting approver follows the delegation
            db.query(TrainingRequest).filter(
                TrainingRequest.id == approval.request_id,
                TrainingRequest.current_approver_id == previous_approver_id
            ).update({"current_approver_id": delegate.id}, synchronize_session=False)

            notification_service.notify_delegation(db, approval.id, delegate.id)
            db.add(AuditLog(
                user_id=ctx.user_id,
                action="approval_delegated",
                entity_type="approval",
                entity_id=approval.id,
                description=f"Delegated from user {previous_approver_id} to user {delegate.id}",
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(approval)
        logger.info(f"Approval {approval.id} delegated from {previous_approver_id} to {delegate.id}")
        return approval

    def pending_for(self, db: Session, user_id: int, skip: int = 0, limit: int = 50) -> List[Approval]:
        """Pending approvals assigned to the user, oldest first"""
        return db.query(Approval).filter(
            Approval.approver_id == user_id,
            Approval.status == ApprovalStatus.PENDING
        ).order_by(Approval.created_at.asc()).offset(skip).limit(limit).all()


# Create singleton instance
approval_service = ApprovalService()
