"""
Authentication Routes
Login, token refresh and current user
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from training_hub.config.database import get_db
from training_hub.models.user import User
from training_hub.schemas.auth import Token, RefreshRequest
from training_hub.schemas.user import UserResponse
from training_hub.services.auth_service import auth_service
from training_hub.utils.security import decode_token
from training_hub.utils.logger import setup_logger, log_audit

logger = setup_logger()
router = APIRouter()


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """
    Login endpoint

    OAuth2 compatible token login
    """
    user = auth_service.authenticate_user(db, form_data.username, form_data.password)

    if not user:
        logger.warning(f"Failed login attempt for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    tokens = auth_service.create_tokens(user)
    log_audit(user.id, "login", f"username={user.username}")
    return tokens


@router.post("/refresh", response_model=Token)
async def refresh_token(
    payload: RefreshRequest,
    db: Session = Depends(get_db)
):
    """
    Refresh access token using refresh token
    """
    claims = decode_token(payload.refresh_token)

    if not claims or claims.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token"
        )

    user_id = claims.get("sub")
    user = db.query(User).filter(User.id == int(user_id)).first() if user_id else None

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive"
        )

    return auth_service.create_tokens(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(auth_service.get_current_user)
):
    """Get current user information"""
    return current_user
