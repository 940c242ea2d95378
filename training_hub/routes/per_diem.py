"""
Per Diem Routes
Calculation endpoint, calculation history and overrides
"""

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional

from training_hub.config.database import get_db
from training_hub.models.per_diem import PerDiemCalculation, CalculationStatus
from training_hub.models.user import AppRole
from training_hub.schemas.per_diem import (
    PerDiemRequest,
    PerDiemOverrideCreate,
    PerDiemOverrideDecision,
    PerDiemOverrideResponse,
)
from training_hub.services.auth_service import auth_service, AuthContext
from training_hub.services.per_diem_service import per_diem_service, get_effective_amount
from training_hub.utils.exceptions import PermissionDeniedError
from training_hub.utils.helpers import model_to_dict
from training_hub.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
}

PER_DIEM_MANAGERS = (AppRole.L_AND_D.value, AppRole.HRBP.value, AppRole.CHRO.value)


@router.options("/calculate")
async def calculate_options():
    """CORS preflight for browser clients"""
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post("/calculate")
async def calculate_per_diem(
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.get_auth_context)
):
    """
    Calculate per diem

    **Actions:**
    - estimate: planned dates, status pending
    - calculate_final / recalculate: actual dates when present, status calculated
    - bulk_calculate: estimate for every entry of `participants`

    **Returns:**
    - success result with calculation, destination_band, grade_band, breakdown
    - `config_missing` result when rates or dates are not configured
    - HTTP 500 `{success: false, error}` on unexpected failures
    """
    try:
        body = await request.json()
        payload = PerDiemRequest.model_validate(body)
        logger.info(f"Per diem calculation request: action={payload.action.value} by user {ctx.user_id}")

        result = per_diem_service.handle(db, payload, created_by=ctx.user_id)
        return JSONResponse(content=result, headers=CORS_HEADERS)

    except Exception as e:
        db.rollback()
        logger.exception("Per diem calculation error")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e)},
            headers=CORS_HEADERS
        )


@router.get("/calculations")
async def list_calculations(
    employee_id: Optional[int] = None,
    training_request_id: Optional[int] = None,
    calculation_status: Optional[CalculationStatus] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.get_auth_context)
):
    """
    List per diem calculations, newest first

    Employees only see their own; L&D, HRBP, CHRO and admins see all.
    """
    query = db.query(PerDiemCalculation)

    if not (ctx.is_admin or ctx.has_role(*PER_DIEM_MANAGERS)):
        employee_id = ctx.user_id
    if employee_id:
        query = query.filter(PerDiemCalculation.employee_id == employee_id)
    if training_request_id:
        query = query.filter(PerDiemCalculation.training_request_id == training_request_id)
    if calculation_status:
        query = query.filter(PerDiemCalculation.status == calculation_status)

    total = query.count()
    calculations = query.order_by(
        PerDiemCalculation.created_at.desc(), PerDiemCalculation.id.desc()
    ).offset(skip).limit(limit).all()

    return {
        "success": True,
        "total": total,
        "calculations": [model_to_dict(c) for c in calculations]
    }


@router.get("/calculations/{calculation_id}")
async def get_calculation(
    calculation_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.get_auth_context)
):
    """Calculation detail with overrides and the effective payable amount"""
    calculation = per_diem_service.get_calculation(db, calculation_id)
    if calculation.employee_id != ctx.user_id and not (ctx.is_admin or ctx.has_role(*PER_DIEM_MANAGERS)):
        raise PermissionDeniedError("You can only view your own per diem calculations")

    latest = per_diem_service.latest_override(calculation)
    return {
        "success": True,
        "calculation": model_to_dict(calculation),
        "overrides": [model_to_dict(o) for o in calculation.overrides],
        "effective_amount": get_effective_amount(calculation, latest),
    }


@router.post(
    "/calculations/{calculation_id}/overrides",
    response_model=PerDiemOverrideResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_override(
    calculation_id: int,
    payload: PerDiemOverrideCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.require_role(*PER_DIEM_MANAGERS))
):
    """Record a manual correction; large deviations wait for approval"""
    return per_diem_service.create_override(db, calculation_id, payload, created_by=ctx.user_id)


@router.put("/overrides/{override_id}/decision", response_model=PerDiemOverrideResponse)
async def decide_override(
    override_id: int,
    decision: PerDiemOverrideDecision,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(auth_service.require_role(AppRole.CHRO.value, AppRole.L_AND_D.value))
):
    """Approve or reject a pending override"""
    return per_diem_service.decide_override(db, override_id, decision, decided_by=ctx.user_id)
