"""
Authentication Service
Handles user authentication and builds the per-request auth context
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, FrozenSet
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from training_hub.config.database import get_db
from training_hub.models.user import User, AppRole
from training_hub.utils.security import verify_password, create_access_token, create_refresh_token, decode_token
from training_hub.utils.logger import setup_logger

logger = setup_logger()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


@dataclass(frozen=True)
class AuthContext:
    """
    Authenticated caller for one request

    Built from the bearer token by get_auth_context and passed explicitly to
    services; nothing about the session is kept between requests.
    """
    user: User
    roles: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def user_id(self) -> int:
        return self.user.id

    def has_role(self, *roles) -> bool:
        return any(getattr(role, "value", role) in self.roles for role in roles)

    @property
    def is_admin(self) -> bool:
        return self.has_role(AppRole.ADMIN)


class AuthService:
    """Authentication service"""

    def authenticate_user(self, db: Session, username: str, password: str) -> Optional[User]:
        """
        Authenticate user with username and password

        Args:
            db: Database session
            username: Username or email
            password: Password

        Returns:
            User: Authenticated user or None
        """
        user = db.query(User).filter(
            (User.username == username) | (User.email == username)
        ).first()

        if not user:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        if not user.is_active:
            return None

        user.last_login = datetime.utcnow()
        db.commit()

        logger.info(f"User authenticated: {user.username}")
        return user

    def create_tokens(self, user: User) -> dict:
        """
        Create access and refresh tokens for user

        Args:
            user: User object

        Returns:
            dict: Access and refresh tokens
        """
        access_token = create_access_token(
            data={
                "sub": str(user.id),
                "username": user.username,
                "roles": sorted(role.value for role in user.roles),
            }
        )

        refresh_token = create_refresh_token(
            data={"sub": str(user.id)}
        )

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer"
        }

    def build_context(self, user: User) -> AuthContext:
        """Auth context for a loaded user; roles are read from the store, not the token"""
        return AuthContext(user=user, roles=frozenset(role.value for role in user.roles))

    async def get_current_user(
        self,
        token: str = Depends(oauth2_scheme),
        db: Session = Depends(get_db)
    ) -> User:
        """
        Get current authenticated user from token

        Raises:
            HTTPException: If authentication fails
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        payload = decode_token(token)
        if payload is None or payload.get("type") != "access":
            raise credentials_exception

        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception

        user = db.query(User).filter(User.id == int(user_id)).first()
        if user is None:
            raise credentials_exception

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User account is inactive"
            )

        return user

    async def get_auth_context(self, token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> AuthContext:
        """Dependency yielding the AuthContext for the calling user"""
        user = await self.get_current_user(token=token, db=db)
        return self.build_context(user)

    def require_role(self, *roles: str):
        """
        Dependency factory requiring any of the given roles

        Args:
            roles: Accepted roles (admin is always accepted)
        """
        async def role_checker(ctx: AuthContext = Depends(self.get_auth_context)) -> AuthContext:
            if not (ctx.is_admin or ctx.has_role(*roles)):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Access denied. Required role(s): {', '.join(roles)}"
                )
            return ctx

        return role_checker


# Create singleton instance
auth_service = AuthService()
