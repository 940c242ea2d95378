"""
Course Model
Training catalogue entries
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Float, Text
from datetime import datetime
import enum

from training_hub.config.database import Base, enum_values


class TrainingLocation(str, enum.Enum):
    LOCAL = "local"
    ABROAD = "abroad"


class CostLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Course(Base):
    """Catalogue course"""
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    provider_name = Column(String, nullable=True)

    training_location = Column(Enum(TrainingLocation, values_callable=enum_values), default=TrainingLocation.LOCAL, nullable=False)
    cost_level = Column(Enum(CostLevel, values_callable=enum_values), default=CostLevel.LOW, nullable=False)
    estimated_cost = Column(Float, nullable=True)
    currency = Column(String, nullable=True)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Course {self.code}>"

    @property
    def requires_extended_workflow(self) -> bool:
        """Abroad or high-cost training goes through the full HRBP/L&D/CHRO chain"""
        return self.training_location == TrainingLocation.ABROAD or self.cost_level == CostLevel.HIGH
