"""
User Model
Employee profiles, credentials and role assignments
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from training_hub.config.database import Base, enum_values


class AppRole(str, enum.Enum):
    """Application roles; a user may hold several"""
    EMPLOYEE = "employee"
    MANAGER = "manager"
    HRBP = "hrbp"
    L_AND_D = "l_and_d"
    CHRO = "chro"
    ADMIN = "admin"


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    employee_number = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)

    # Organisation
    grade = Column(Integer, nullable=True)  # numeric pay grade, matched against per diem grade bands
    department = Column(String, nullable=True)
    entity_id = Column(String, nullable=True, index=True)  # legal entity / business unit
    manager_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    manager = relationship("User", remote_side=[id])
    role_assignments = relationship("UserRoleAssignment", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user")

    def __repr__(self):
        return f"<User {self.username}>"

    @property
    def roles(self) -> set:
        return {assignment.role for assignment in self.role_assignments}

    def has_role(self, *roles: str) -> bool:
        """Check if user holds any of the given roles"""
        held = {role.value for role in self.roles}
        return any(getattr(role, "value", role) in held for role in roles)


class UserRoleAssignment(Base):
    """Role held by a user"""
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_role"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(Enum(AppRole, values_callable=enum_values), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="role_assignments")

    def __repr__(self):
        return f"<UserRoleAssignment {self.user_id}:{self.role.value}>"
