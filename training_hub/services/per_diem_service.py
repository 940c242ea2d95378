"""
Per Diem Service
Resolves destination and grade rates, applies travel-day proration and
records an auditable calculation.

Formula:
    total_days          = (end - start).days + 1
    full_days           = max(0, total_days - 2)
    travel_days         = 2  (first and last day)
    total_eligible_days = full_days + travel_days * travel_day_rate / 100
    daily_rate          = destination rate * grade multiplier  (0 if accommodation is covered)
    amount              = daily_rate * total_eligible_days
"""

from datetime import date, datetime
from typing import Optional, Dict, Any, List, Tuple
from pydantic import ValidationError
from sqlalchemy.orm import Session

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
from training_hub.schemas.per_diem import (
    PerDiemAction,
    PerDiemPolicy,
    PerDiemRequest,
    PerDiemOverrideCreate,
    PerDiemOverrideDecision,
)
from training_hub.utils.exceptions import NotFoundError, InvalidDecisionError, PolicyConfigurationError
from training_hub.utils.helpers import model_to_dict
from training_hub.utils.logger import setup_logger, log_audit

logger = setup_logger()

TRAVEL_DAYS = 2
DEFAULT_GRADE_MULTIPLIER = 1.0

MISSING_DATES_REASON = "Missing travel dates"
MISSING_DESTINATION_REASON = "No per diem rate configured for destination"


def config_missing_result(reason: str, **extra) -> Dict[str, Any]:
    """Expected configuration gap; rendered by the UI as a "set up rates" prompt"""
    result = {
        "success": False,
        "config_missing": True,
        "config_missing_reason": reason,
    }
    result.update(extra)
    return result


def compute_breakdown(
    start_date: date,
    end_date: date,
    base_daily_rate: float,
    grade_multiplier: float,
    travel_day_percentage: float,
    accommodation_covered: bool,
    currency: str
) -> Dict[str, Any]:
    """
    Day counts and amounts for a trip window

    No special case for trips shorter than two days: a one-day trip still
    counts two travel days.
    """
    total_days = (end_date - start_date).days + 1
    full_days = max(0, total_days - TRAVEL_DAYS)
    total_eligible_days = full_days + (TRAVEL_DAYS * travel_day_percentage / 100)

    daily_rate = base_daily_rate * grade_multiplier
    if accommodation_covered:
        daily_rate = 0

    return {
        "total_days": total_days,
        "full_days": full_days,
        "travel_days": TRAVEL_DAYS,
        "travel_day_rate": f"{travel_day_percentage:g}%",
        "total_eligible_days": total_eligible_days,
        "effective_daily_rate": daily_rate,
        "amount": daily_rate * total_eligible_days,
        "currency": currency,
        "grade_multiplier": grade_multiplier,
    }


def get_effective_amount(calculation: PerDiemCalculation, override: Optional[PerDiemOverride] = None) -> float:
    """Amount payable for a calculation, taking an approved override into account"""
    if override is not None and override.approval_status == OverrideStatus.APPROVED:
        if override.override_amount is not None:
            return override.override_amount
        return calculation.estimated_amount or 0
    if calculation.final_amount is not None:
        return calculation.final_amount
    return calculation.estimated_amount or 0


class PerDiemService:
    """Service for per diem calculation and overrides"""

    # ============================================
    # POLICY AND RATE LOOKUPS
    # ============================================

    def load_policy(self, db: Session) -> PerDiemPolicy:
        """
        Load active policy rows into a typed PerDiemPolicy

        Raises:
            PolicyConfigurationError: If a stored value fails validation
        """
        rows = db.query(PolicyConfig).filter(PolicyConfig.is_active == True).all()

        known = set(PerDiemPolicy.known_keys())
        values = {}
        for row in rows:
            if row.config_key not in known:
                logger.warning(f"Ignoring unknown per diem policy key: {row.config_key}")
                continue
            values[row.config_key] = row.config_value

        return self.validate_policy(values)

    def validate_policy(self, values: Dict[str, Any]) -> PerDiemPolicy:
        try:
            return PerDiemPolicy.model_validate(values)
        except ValidationError as e:
            logger.error(f"Invalid per diem policy configuration: {e}")
            raise PolicyConfigurationError(f"Invalid per diem policy configuration: {e.errors()}")

    def find_destination_band(self, db: Session, country: str, on_date: date) -> Optional[DestinationBand]:
        """Most recent active band for the country that is effective on the given date"""
        return db.query(DestinationBand).filter(
            DestinationBand.country == country,
            DestinationBand.is_active == True,
            DestinationBand.valid_from <= on_date
        ).order_by(DestinationBand.valid_from.desc()).first()

    def find_grade_band(self, db: Session, grade: int) -> Optional[GradeBand]:
        return db.query(GradeBand).filter(
            GradeBand.grade_from <= grade,
            GradeBand.grade_to >= grade,
            GradeBand.is_active == True
        ).first()

    # ============================================
    # CALCULATION
    # ============================================

    def _select_dates(
        self,
        request: PerDiemRequest,
        calculation_type: CalculationType
    ) -> Tuple[Optional[date], Optional[date]]:
        """Final calculations prefer actual travel dates, falling back to planned ones"""
        if calculation_type == CalculationType.FINAL:
            start = request.actual_start_date or request.planned_start_date
            end = request.actual_end_date or request.planned_end_date
        else:
            start = request.planned_start_date
            end = request.planned_end_date
        return start, end

    def calculate(
        self,
        db: Session,
        request: PerDiemRequest,
        policy: PerDiemPolicy,
        calculation_type: CalculationType,
        created_by: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Calculate per diem for one employee and persist a new calculation row

        Args:
            db: Database session
            request: Calculation request
            policy: Typed policy in force
            calculation_type: estimate or final
            created_by: Calling user, if any

        Returns:
            dict: success result with calculation, bands and breakdown, or a
            config_missing result when rates or dates are not set up
        """
        start_date, end_date = self._select_dates(request, calculation_type)
        if not start_date or not end_date:
            return config_missing_result(MISSING_DATES_REASON, error="Start and end dates are required")

        destination_band = self.find_destination_band(db, request.destination_country, start_date)
        if destination_band is None:
            logger.info(
                f"No per diem destination band for {request.destination_country} on {start_date.isoformat()}"
            )
            return config_missing_result(MISSING_DESTINATION_REASON)

        grade_band = None
        grade_multiplier = DEFAULT_GRADE_MULTIPLIER
        if request.employee_grade is not None:
            grade_band = self.find_grade_band(db, request.employee_grade)
            if grade_band is not None:
                grade_multiplier = grade_band.multiplier or DEFAULT_GRADE_MULTIPLIER

        breakdown = compute_breakdown(
            start_date=start_date,
            end_date=end_date,
            base_daily_rate=destination_band.training_daily_rate,
            grade_multiplier=grade_multiplier,
            travel_day_percentage=policy.travel_day_rate.percentage,
            accommodation_covered=request.accommodation_covered,
            currency=destination_band.currency,
        )
        amount = breakdown.pop("amount")
        is_final = calculation_type == CalculationType.FINAL
        now = datetime.utcnow()

        calculation = PerDiemCalculation(
            employee_id=request.employee_id,
            training_request_id=request.training_request_id,
            session_id=request.session_id,
            travel_visa_request_id=request.travel_visa_request_id,
            destination_country=request.destination_country,
            destination_city=request.destination_city,
            destination_band=destination_band.band,
            destination_band_id=destination_band.id,
            is_domestic=request.is_domestic,
            employee_grade=request.employee_grade,
            grade_band_id=grade_band.id if grade_band else None,
            planned_start_date=request.planned_start_date,
            planned_end_date=request.planned_end_date,
            actual_start_date=request.actual_start_date if is_final else None,
            actual_end_date=request.actual_end_date if is_final else None,
            calculation_type=calculation_type,
            daily_rate=breakdown["effective_daily_rate"],
            currency=destination_band.currency,
            full_days=breakdown["full_days"],
            travel_days=breakdown["travel_days"],
            weekend_days=0,
            excluded_days=0,
            total_eligible_days=breakdown["total_eligible_days"],
            estimated_amount=amount,
            final_amount=amount if is_final else None,
            policy_snapshot=policy.model_dump(),
            status=CalculationStatus.CALCULATED if is_final else CalculationStatus.PENDING,
            config_missing=False,
            accommodation_covered=request.accommodation_covered,
            created_by=created_by,
            calculated_at=now,
        )
        db.add(calculation)
        db.commit()
        db.refresh(calculation)

        log_audit(
            created_by,
            "per_diem_calculated",
            f"calculation={calculation.id} employee={request.employee_id} "
            f"type={calculation_type.value} amount={amount} {destination_band.currency}"
        )

        return {
            "success": True,
            "calculation": model_to_dict(calculation),
            "destination_band": model_to_dict(destination_band),
            "grade_band": model_to_dict(grade_band) if grade_band else None,
            "breakdown": breakdown,
        }

    def bulk_calculate(
        self,
        db: Session,
        request: PerDiemRequest,
        policy: PerDiemPolicy,
        created_by: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Estimate per diem for every participant, one result per participant

        Participants are isolated: a configuration gap or an unexpected
        failure for one participant produces a failed result for that
        participant only.
        """
        results = []
        for participant in request.participants or []:
            participant_request = request.for_participant(participant)
            try:
                result = self.calculate(db, participant_request, policy, CalculationType.ESTIMATE, created_by)
            except Exception as e:
                db.rollback()
                logger.exception(f"Bulk per diem calculation failed for employee {participant.employee_id}")
                result = {"success": False, "error": str(e)}
            result["employee_id"] = participant.employee_id
            results.append(result)

        succeeded = sum(1 for r in results if r["success"])
        logger.info(f"Bulk per diem: {succeeded}/{len(results)} participants calculated")
        return results

    def handle(self, db: Session, request: PerDiemRequest, created_by: Optional[int] = None) -> Dict[str, Any]:
        """Dispatch a calculation endpoint action"""
        policy = self.load_policy(db)

        if request.action == PerDiemAction.bulk_calculate:
            results = self.bulk_calculate(db, request, policy, created_by)
            return {"success": True, "results": results}

        calculation_type = (
            CalculationType.ESTIMATE if request.action == PerDiemAction.estimate else CalculationType.FINAL
        )
        return self.calculate(db, request, policy, calculation_type, created_by)

    # ============================================
    # READS
    # ============================================

    def get_calculation(self, db: Session, calculation_id: int) -> PerDiemCalculation:
        calculation = db.query(PerDiemCalculation).filter(PerDiemCalculation.id == calculation_id).first()
        if not calculation:
            raise NotFoundError("Per diem calculation not found")
        return calculation

    def latest_override(self, calculation: PerDiemCalculation) -> Optional[PerDiemOverride]:
        return calculation.overrides[0] if calculation.overrides else None

    # ============================================
    # OVERRIDES
    # ============================================

    def create_override(
        self,
        db: Session,
        calculation_id: int,
        payload: PerDiemOverrideCreate,
        created_by: int
    ) -> PerDiemOverride:
        """
        Record a manual correction of a calculation

        The override is auto-approved when its amount stays within the
        policy's override_approval_threshold of the original amount.
        """
        calculation = self.get_calculation(db, calculation_id)
        policy = self.load_policy(db)

        original_amount = get_effective_amount(calculation)
        override_amount = payload.override_amount
        if override_amount is None:
            days = payload.override_eligible_days
            if days is None:
                days = calculation.total_eligible_days
            rate = payload.override_daily_rate
            if rate is None:
                rate = calculation.daily_rate
            override_amount = days * rate

        if original_amount:
            deviation = abs(override_amount - original_amount) / original_amount * 100
        else:
            deviation = 100.0 if override_amount else 0.0
        requires_approval = deviation > policy.override_approval_threshold.percentage

        override = PerDiemOverride(
            per_diem_calculation_id=calculation.id,
            original_eligible_days=calculation.total_eligible_days,
            original_daily_rate=calculation.daily_rate,
            original_amount=original_amount,
            override_eligible_days=payload.override_eligible_days,
            override_daily_rate=payload.override_daily_rate,
            override_amount=override_amount,
            reason=payload.reason,
            supporting_document_url=payload.supporting_document_url,
            requires_approval=requires_approval,
            approval_status=OverrideStatus.PENDING if requires_approval else OverrideStatus.APPROVED,
            approved_at=None if requires_approval else datetime.utcnow(),
            created_by=created_by,
        )
        db.add(override)
        calculation.has_override = True
        db.flush()

        db.add(AuditLog(
            user_id=created_by,
            action="per_diem_override_created",
            entity_type="per_diem_calculation",
            entity_id=calculation.id,
            description=f"Override {original_amount} -> {override_amount}: {payload.reason}",
            changes={
                "original_amount": original_amount,
                "override_amount": override_amount,
                "deviation_percentage": round(deviation, 2),
                "requires_approval": requires_approval,
            },
        ))
        db.commit()
        db.refresh(override)

        logger.info(
            f"Override {override.id} on calculation {calculation.id}: "
            f"{original_amount} -> {override_amount} (requires approval: {requires_approval})"
        )
        return override

    def decide_override(
        self,
        db: Session,
        override_id: int,
        decision: PerDiemOverrideDecision,
        decided_by: int
    ) -> PerDiemOverride:
        override = db.query(PerDiemOverride).filter(PerDiemOverride.id == override_id).first()
        if not override:
            raise NotFoundError("Per diem override not found")
        if override.approval_status != OverrideStatus.PENDING:
            raise InvalidDecisionError(f"Override already {override.approval_status.value}")

        override.approval_status = OverrideStatus.APPROVED if decision.approved else OverrideStatus.REJECTED
        override.approved_by = decided_by
        override.approved_at = datetime.utcnow()
        if not decision.approved:
            override.rejection_reason = decision.rejection_reason

        db.add(AuditLog(
            user_id=decided_by,
            action=f"per_diem_override_{override.approval_status.value}",
            entity_type="per_diem_override",
            entity_id=override.id,
            description=decision.rejection_reason or f"Override {override.approval_status.value}",
        ))
        db.commit()
        db.refresh(override)

        log_audit(decided_by, "per_diem_override_decided", f"override={override.id} status={override.approval_status.value}")
        return override


# Create singleton instance
per_diem_service = PerDiemService()
