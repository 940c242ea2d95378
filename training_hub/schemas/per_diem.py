"""
Per Diem Schemas
Request payloads, typed policy configuration and admin payloads
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from enum import Enum

from training_hub.config.settings import settings
from training_hub.models.per_diem import OverrideStatus


class PerDiemAction(str, Enum):
    """Actions accepted by the calculation endpoint"""
    estimate = "estimate"
    calculate_final = "calculate_final"
    recalculate = "recalculate"
    bulk_calculate = "bulk_calculate"


# ============================================
# TYPED POLICY
# ============================================

class TravelDayRatePolicy(BaseModel):
    """Share of the daily rate paid on the first and last day of a trip"""
    percentage: float = Field(settings.DEFAULT_TRAVEL_DAY_PERCENTAGE, ge=0, le=100)


class OverrideApprovalThresholdPolicy(BaseModel):
    """Overrides deviating more than this from the calculated amount need approval"""
    percentage: float = Field(settings.DEFAULT_OVERRIDE_APPROVAL_THRESHOLD, ge=0)


class PerDiemPolicy(BaseModel):
    """Closed set of per diem policy options, built from per_diem_policy_config rows"""
    travel_day_rate: TravelDayRatePolicy = Field(default_factory=TravelDayRatePolicy)
    override_approval_threshold: OverrideApprovalThresholdPolicy = Field(default_factory=OverrideApprovalThresholdPolicy)

    model_config = {"extra": "forbid"}

    @classmethod
    def known_keys(cls) -> List[str]:
        return list(cls.model_fields.keys())


# ============================================
# CALCULATION
# ============================================

class PerDiemParticipant(BaseModel):
    """One participant of a bulk calculation; destination defaults to the request's"""
    employee_id: int
    employee_grade: Optional[int] = None
    is_domestic: Optional[bool] = None
    destination_country: Optional[str] = None
    destination_city: Optional[str] = None


class PerDiemRequest(BaseModel):
    """Body of POST /api/per-diem/calculate"""
    action: PerDiemAction
    employee_id: Optional[int] = None
    training_request_id: Optional[int] = None
    session_id: Optional[str] = None
    travel_visa_request_id: Optional[str] = None
    destination_country: str = Field(..., min_length=1)
    destination_city: Optional[str] = None
    employee_grade: Optional[int] = None
    planned_start_date: Optional[date] = None
    planned_end_date: Optional[date] = None
    actual_start_date: Optional[date] = None
    actual_end_date: Optional[date] = None
    is_domestic: bool = False
    accommodation_covered: bool = False
    participants: Optional[List[PerDiemParticipant]] = None

    @model_validator(mode='after')
    def validate_action_fields(self):
        """Bulk needs participants; single calculations need an employee"""
        if self.action == PerDiemAction.bulk_calculate:
            if not self.participants:
                raise ValueError("participants are required for bulk_calculate")
        elif self.employee_id is None:
            raise ValueError("employee_id is required")
        return self

    def for_participant(self, participant: PerDiemParticipant) -> "PerDiemRequest":
        """Copy of this request scoped to a single bulk participant"""
        update = {
            "action": PerDiemAction.estimate,
            "employee_id": participant.employee_id,
            "employee_grade": participant.employee_grade,
            "is_domestic": participant.is_domestic if participant.is_domestic is not None else False,
            "participants": None,
        }
        if participant.destination_country:
            update["destination_country"] = participant.destination_country
            update["destination_city"] = participant.destination_city
        return self.model_copy(update=update)


# ============================================
# OVERRIDES
# ============================================

class PerDiemOverrideCreate(BaseModel):
    """Manual correction of a calculation"""
    override_eligible_days: Optional[float] = Field(None, ge=0)
    override_daily_rate: Optional[float] = Field(None, ge=0)
    override_amount: Optional[float] = Field(None, ge=0)
    reason: str = Field(..., min_length=5, max_length=1000)
    supporting_document_url: Optional[str] = None

    @model_validator(mode='after')
    def validate_has_change(self):
        if (
            self.override_eligible_days is None
            and self.override_daily_rate is None
            and self.override_amount is None
        ):
            raise ValueError("at least one of override_eligible_days, override_daily_rate, override_amount is required")
        return self


class PerDiemOverrideDecision(BaseModel):
    approved: bool
    rejection_reason: Optional[str] = None


class PerDiemOverrideResponse(BaseModel):
    id: int
    per_diem_calculation_id: int
    original_eligible_days: float
    original_daily_rate: float
    original_amount: float
    override_eligible_days: Optional[float] = None
    override_daily_rate: Optional[float] = None
    override_amount: Optional[float] = None
    reason: str
    requires_approval: bool
    approval_status: OverrideStatus
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_by: int
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================
# RATE TABLE ADMIN
# ============================================

class DestinationBandCreate(BaseModel):
    country: str = Field(..., min_length=1)
    city: Optional[str] = None
    band: str = Field(..., min_length=1)
    currency: str = Field(..., min_length=3, max_length=3)
    training_daily_rate: float = Field(..., ge=0)
    business_daily_rate: Optional[float] = Field(None, ge=0)
    is_domestic: bool = False
    valid_from: date
    valid_to: Optional[date] = None
    is_active: bool = True

    @model_validator(mode='after')
    def validate_window(self):
        if self.valid_to and self.valid_to < self.valid_from:
            raise ValueError("valid_to must be on or after valid_from")
        return self


class DestinationBandUpdate(BaseModel):
    city: Optional[str] = None
    band: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    training_daily_rate: Optional[float] = Field(None, ge=0)
    business_daily_rate: Optional[float] = Field(None, ge=0)
    valid_to: Optional[date] = None
    is_active: Optional[bool] = None


class DestinationBandResponse(BaseModel):
    id: int
    country: str
    city: Optional[str] = None
    band: str
    currency: str
    training_daily_rate: float
    business_daily_rate: Optional[float] = None
    is_domestic: bool
    valid_from: date
    valid_to: Optional[date] = None
    is_active: bool

    class Config:
        from_attributes = True


class GradeBandCreate(BaseModel):
    band_name: str = Field(..., min_length=1)
    grade_from: int
    grade_to: int
    multiplier: float = Field(1.0, gt=0)
    fixed_rate_override: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    is_active: bool = True

    @model_validator(mode='after')
    def validate_range(self):
        if self.grade_to < self.grade_from:
            raise ValueError("grade_to must be greater than or equal to grade_from")
        return self


class GradeBandUpdate(BaseModel):
    band_name: Optional[str] = None
    multiplier: Optional[float] = Field(None, gt=0)
    fixed_rate_override: Optional[float] = Field(None, ge=0)
    valid_to: Optional[date] = None
    is_active: Optional[bool] = None


class GradeBandResponse(BaseModel):
    id: int
    band_name: str
    grade_from: int
    grade_to: int
    multiplier: float
    fixed_rate_override: Optional[float] = None
    currency: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


class PolicyConfigUpdate(BaseModel):
    """New value for one policy key; validated against PerDiemPolicy"""
    config_value: Dict[str, Any]
    description: Optional[str] = None
    is_active: bool = True
