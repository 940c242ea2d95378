"""
User Schemas
Pydantic models for user-related requests and responses
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime

from training_hub.models.user import AppRole


class UserBase(BaseModel):
    """Base user schema with common fields"""
    email: str
    username: str = Field(..., min_length=3, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=200)
    employee_number: str = Field(..., min_length=3, max_length=50)
    department: Optional[str] = None
    grade: Optional[int] = Field(None, ge=0)
    entity_id: Optional[str] = None
    manager_id: Optional[int] = None


class UserCreate(UserBase):
    """Schema for creating a new user"""
    email: EmailStr
    password: str = Field(..., min_length=8)
    roles: List[AppRole] = [AppRole.EMPLOYEE]


class RoleAssignment(BaseModel):
    role: AppRole


class UserResponse(UserBase):
    """Schema for user response"""
    id: int
    roles: List[AppRole]
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True
