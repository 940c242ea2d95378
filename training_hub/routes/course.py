"""
Course Routes
Read-only training catalogue
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from training_hub.config.database import get_db
from training_hub.models.course import Course, TrainingLocation
from training_hub.services.auth_service import auth_service, AuthContext

router = APIRouter()


@router.get("")
async def list_courses(
    location: Optional[TrainingLocation] = None,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.get_auth_context)
):
    query = db.query(Course).filter(Course.is_active == True)
    if location:
        query = query.filter(Course.training_location == location)

    courses = query.order_by(Course.title).all()
    return {
        "success": True,
        "courses": [
            {
                "id": c.id,
                "code": c.code,
                "title": c.title,
                "provider_name": c.provider_name,
                "training_location": c.training_location.value,
                "cost_level": c.cost_level.value,
                "requires_extended_workflow": c.requires_extended_workflow,
            }
            for c in courses
        ]
    }
