"""
Admin Routes
Per diem rate tables, policy configuration and user/role administration
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from training_hub.config.database import get_db
from training_hub.models.audit_log import AuditLog
from training_hub.models.per_diem import DestinationBand, GradeBand, PolicyConfig
from training_hub.models.user import User, UserRoleAssignment, AppRole
from training_hub.schemas.per_diem import (
    DestinationBandCreate,
    DestinationBandUpdate,
    DestinationBandResponse,
    GradeBandCreate,
    GradeBandUpdate,
    GradeBandResponse,
    PerDiemPolicy,
    PolicyConfigUpdate,
)
from training_hub.schemas.user import UserCreate, UserResponse, RoleAssignment
from training_hub.services.auth_service import auth_service, AuthContext
from training_hub.services.per_diem_service import per_diem_service
from training_hub.utils.logger import setup_logger
from training_hub.utils.security import get_password_hash

logger = setup_logger()
router = APIRouter()

require_rate_admin = auth_service.require_role(AppRole.L_AND_D.value)
require_admin = auth_service.require_role(AppRole.ADMIN.value)


def _audit(db: Session, ctx: AuthContext, action: str, entity_type: str, entity_id: int, description: str, changes=None):
    db.add(AuditLog(
        user_id=ctx.user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        changes=changes
    ))


# ============================================
# DESTINATION BANDS
# ============================================

@router.get("/per-diem/destination-bands", response_model=List[DestinationBandResponse])
async def list_destination_bands(
    country: Optional[str] = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_rate_admin)
):
    """List destination bands by country, newest effective date first"""
    query = db.query(DestinationBand)
    if country:
        query = query.filter(DestinationBand.country == country)
    if active_only:
        query = query.filter(DestinationBand.is_active == True)
    return query.order_by(DestinationBand.country, DestinationBand.valid_from.desc()).all()


@router.post("/per-diem/destination-bands", response_model=DestinationBandResponse, status_code=status.HTTP_201_CREATED)
async def create_destination_band(
    payload: DestinationBandCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_rate_admin)
):
    band = DestinationBand(**payload.model_dump(), created_by=ctx.user_id)
    db.add(band)
    db.flush()
    _audit(db, ctx, "destination_band_created", "per_diem_destination_band", band.id,
           f"{band.country} {band.band}: {band.training_daily_rate} {band.currency} from {band.valid_from}")
    db.commit()
    db.refresh(band)

    logger.info(f"User {ctx.user_id} created destination band {band.id} for {band.country}")
    return band


@router.put("/per-diem/destination-bands/{band_id}", response_model=DestinationBandResponse)
async def update_destination_band(
    band_id: int,
    payload: DestinationBandUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_rate_admin)
):
    band = db.query(DestinationBand).filter(DestinationBand.id == band_id).first()
    if not band:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Destination band not found")

    changes = payload.model_dump(exclude_unset=True)
    for key, value in changes.items():
        setattr(band, key, value)

    _audit(db, ctx, "destination_band_updated", "per_diem_destination_band", band.id,
           f"Updated {band.country} {band.band}", changes={k: str(v) for k, v in changes.items()})
    db.commit()
    db.refresh(band)
    return band


# ============================================
# GRADE BANDS
# ============================================

@router.get("/per-diem/grade-bands", response_model=List[GradeBandResponse])
async def list_grade_bands(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_rate_admin)
):
    return db.query(GradeBand).order_by(GradeBand.grade_from).all()


@router.post("/per-diem/grade-bands", response_model=GradeBandResponse, status_code=status.HTTP_201_CREATED)
async def create_grade_band(
    payload: GradeBandCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_rate_admin)
):
    """Create a grade band; active bands must not overlap"""
    overlapping = db.query(GradeBand).filter(
        GradeBand.is_active == True,
        GradeBand.grade_from <= payload.grade_to,
        GradeBand.grade_to >= payload.grade_from
    ).first()
    if payload.is_active and overlapping:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Grade range overlaps active band '{overlapping.band_name}'"
        )

    band = GradeBand(**payload.model_dump(), created_by=ctx.user_id)
    db.add(band)
    db.flush()
    _audit(db, ctx, "grade_band_created", "per_diem_grade_band", band.id,
           f"{band.band_name}: grades {band.grade_from}-{band.grade_to} x{band.multiplier}")
    db.commit()
    db.refresh(band)
    return band


@router.put("/per-diem/grade-bands/{band_id}", response_model=GradeBandResponse)
async def update_grade_band(
    band_id: int,
    payload: GradeBandUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_rate_admin)
):
    band = db.query(GradeBand).filter(GradeBand.id == band_id).first()
    if not band:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Grade band not found")

    changes = payload.model_dump(exclude_unset=True)
    for key, value in changes.items():
        setattr(band, key, value)

    _audit(db, ctx, "grade_band_updated", "per_diem_grade_band", band.id,
           f"Updated {band.band_name}", changes={k: str(v) for k, v in changes.items()})
    db.commit()
    db.refresh(band)
    return band


# ============================================
# POLICY
# ============================================

@router.get("/per-diem/policy")
async def get_policy(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_rate_admin)
):
    """Effective typed policy, defaults filled in"""
    policy = per_diem_service.load_policy(db)
    return {"success": True, "policy": policy.model_dump()}


@router.put("/per-diem/policy/{config_key}")
async def update_policy(
    config_key: str,
    payload: PolicyConfigUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_rate_admin)
):
    """
    Set one policy option

    The value is validated against the typed policy before it is stored.
    """
    if config_key not in PerDiemPolicy.known_keys():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown policy key '{config_key}'. Known keys: {', '.join(PerDiemPolicy.known_keys())}"
        )

    # Raises PolicyConfigurationError on invalid values
    per_diem_service.validate_policy({config_key: payload.config_value})

    row = db.query(PolicyConfig).filter(PolicyConfig.config_key == config_key).first()
    previous = row.config_value if row else None
    if row is None:
        row = PolicyConfig(config_key=config_key, created_by=ctx.user_id)
        db.add(row)
    row.config_value = payload.config_value
    row.is_active = payload.is_active
    if payload.description is not None:
        row.description = payload.description
    db.flush()

    _audit(db, ctx, "policy_updated", "per_diem_policy_config", row.id,
           f"Policy {config_key} updated", changes={"before": previous, "after": payload.config_value})
    db.commit()

    logger.info(f"User {ctx.user_id} set per diem policy {config_key} = {payload.config_value}")
    return {"success": True, "policy": per_diem_service.load_policy(db).model_dump()}


# ============================================
# USERS AND ROLES
# ============================================

@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    """Create a user with an initial set of roles"""
    existing = db.query(User).filter(
        (User.email == payload.email) |
        (User.username == payload.username) |
        (User.employee_number == payload.employee_number)
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A user with this email, username or employee number already exists"
        )

    user = User(
        email=payload.email,
        username=payload.username,
        full_name=payload.full_name,
        employee_number=payload.employee_number,
        hashed_password=get_password_hash(payload.password),
        grade=payload.grade,
        department=payload.department,
        entity_id=payload.entity_id,
        manager_id=payload.manager_id,
        is_active=True
    )
    for role in set(payload.roles) | {AppRole.EMPLOYEE}:
        user.role_assignments.append(UserRoleAssignment(role=role))
    db.add(user)
    db.flush()

    _audit(db, ctx, "user_created", "user", user.id, f"Created user {user.username}",
           changes={"roles": sorted(r.value for r in user.roles)})
    db.commit()
    db.refresh(user)

    logger.info(f"Admin {ctx.user.username} created user {user.username}")
    return user


@router.post("/users/{user_id}/roles", response_model=UserResponse)
async def assign_role(
    user_id: int,
    payload: RoleAssignment,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if payload.role not in user.roles:
        user.role_assignments.append(UserRoleAssignment(role=payload.role))
        _audit(db, ctx, "role_assigned", "user", user.id, f"Assigned {payload.role.value} to {user.username}")
        db.commit()
        db.refresh(user)
    return user


@router.delete("/users/{user_id}/roles/{role}", response_model=UserResponse)
async def remove_role(
    user_id: int,
    role: AppRole,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin)
):
    assignment = db.query(UserRoleAssignment).filter(
        UserRoleAssignment.user_id == user_id,
        UserRoleAssignment.role == role
    ).first()
    if not assignment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role assignment not found")

    db.delete(assignment)
    _audit(db, ctx, "role_removed", "user", user_id, f"Removed {role.value}")
    db.commit()

    return db.query(User).filter(User.id == user_id).first()
