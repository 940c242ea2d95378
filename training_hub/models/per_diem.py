"""
Per Diem Models
Rate tables, policy configuration, calculations and manual overrides
"""

from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum, ForeignKey, Text, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from training_hub.config.database import Base, enum_values


class CalculationType(str, enum.Enum):
    ESTIMATE = "estimate"
    FINAL = "final"


class CalculationStatus(str, enum.Enum):
    PENDING = "pending"
    CALCULATED = "calculated"


class OverrideStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DestinationBand(Base):
    """Daily training rate for a country, effective from valid_from"""
    __tablename__ = "per_diem_destination_bands"

    id = Column(Integer, primary_key=True, index=True)
    country = Column(String, nullable=False, index=True)
    city = Column(String, nullable=True)
    band = Column(String, nullable=False)
    currency = Column(String, nullable=False)
    training_daily_rate = Column(Float, nullable=False)
    business_daily_rate = Column(Float, nullable=True)
    is_domestic = Column(Boolean, default=False)
    valid_from = Column(Date, nullable=False)
    valid_to = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<DestinationBand {self.country} {self.band} {self.training_daily_rate} {self.currency}>"


class GradeBand(Base):
    """Range of employee grades sharing a rate multiplier"""
    __tablename__ = "per_diem_grade_bands"

    id = Column(Integer, primary_key=True, index=True)
    band_name = Column(String, nullable=False)
    grade_from = Column(Integer, nullable=False)
    grade_to = Column(Integer, nullable=False)
    multiplier = Column(Float, default=1.0, nullable=False)
    fixed_rate_override = Column(Float, nullable=True)  # recorded for reference, not applied to the formula
    currency = Column(String, nullable=True)
    valid_from = Column(Date, nullable=True)
    valid_to = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<GradeBand {self.band_name} {self.grade_from}-{self.grade_to} x{self.multiplier}>"


class PolicyConfig(Base):
    """Raw per diem policy row; parsed into PerDiemPolicy before use"""
    __tablename__ = "per_diem_policy_config"

    id = Column(Integer, primary_key=True, index=True)
    config_key = Column(String, unique=True, nullable=False, index=True)
    config_value = Column(JSON, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<PolicyConfig {self.config_key}>"


class PerDiemCalculation(Base):
    """Per diem estimate or final calculation; a new row per calculation call"""
    __tablename__ = "per_diem_calculations"

    id = Column(Integer, primary_key=True, index=True)

    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    training_request_id = Column(Integer, ForeignKey("training_requests.id"), nullable=True, index=True)
    session_id = Column(String, nullable=True)
    travel_visa_request_id = Column(String, nullable=True)

    # Destination
    destination_country = Column(String, nullable=False)
    destination_city = Column(String, nullable=True)
    destination_band = Column(String, nullable=True)
    destination_band_id = Column(Integer, ForeignKey("per_diem_destination_bands.id"), nullable=True)
    is_domestic = Column(Boolean, default=False)

    # Grade
    employee_grade = Column(Integer, nullable=True)
    grade_band_id = Column(Integer, ForeignKey("per_diem_grade_bands.id"), nullable=True)

    # Trip window
    planned_start_date = Column(Date, nullable=True)
    planned_end_date = Column(Date, nullable=True)
    actual_start_date = Column(Date, nullable=True)
    actual_end_date = Column(Date, nullable=True)

    # Computation
    calculation_type = Column(Enum(CalculationType, values_callable=enum_values), nullable=False)
    daily_rate = Column(Float, nullable=False)
    currency = Column(String, nullable=False)
    full_days = Column(Integer, nullable=False)
    travel_days = Column(Integer, nullable=False)
    weekend_days = Column(Integer, default=0, nullable=False)
    excluded_days = Column(Integer, default=0, nullable=False)
    total_eligible_days = Column(Float, nullable=False)
    estimated_amount = Column(Float, nullable=True)
    final_amount = Column(Float, nullable=True)

    policy_snapshot = Column(JSON, nullable=True)
    status = Column(Enum(CalculationStatus, values_callable=enum_values), nullable=False)
    accommodation_covered = Column(Boolean, default=False)
    config_missing = Column(Boolean, default=False)
    config_missing_reason = Column(Text, nullable=True)
    has_override = Column(Boolean, default=False)
    notes = Column(Text, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    calculated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    overrides = relationship(
        "PerDiemOverride",
        back_populates="calculation",
        order_by="PerDiemOverride.created_at.desc()"
    )

    def __repr__(self):
        return f"<PerDiemCalculation {self.id} {self.calculation_type.value} {self.estimated_amount} {self.currency}>"


class PerDiemOverride(Base):
    """Manual correction of a calculation, subject to approval above the policy threshold"""
    __tablename__ = "per_diem_overrides"

    id = Column(Integer, primary_key=True, index=True)
    per_diem_calculation_id = Column(Integer, ForeignKey("per_diem_calculations.id"), nullable=False, index=True)

    original_eligible_days = Column(Float, nullable=False)
    original_daily_rate = Column(Float, nullable=False)
    original_amount = Column(Float, nullable=False)

    override_eligible_days = Column(Float, nullable=True)
    override_daily_rate = Column(Float, nullable=True)
    override_amount = Column(Float, nullable=True)

    reason = Column(Text, nullable=False)
    supporting_document_url = Column(String, nullable=True)

    requires_approval = Column(Boolean, default=True, nullable=False)
    approval_status = Column(Enum(OverrideStatus, values_callable=enum_values), default=OverrideStatus.PENDING, nullable=False)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    calculation = relationship("PerDiemCalculation", back_populates="overrides")

    def __repr__(self):
        return f"<PerDiemOverride {self.id} on calc {self.per_diem_calculation_id} - {self.approval_status.value}>"
