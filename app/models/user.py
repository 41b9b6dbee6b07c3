"""
User model - registry accounts and their roles.
"""

from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from app.utils.time import utc_now


class UserRole(str, Enum):
    """Roles a registry user may hold."""
    ADMIN = "admin"
    VERIFIER = "verifier"
    PROJECT_DEVELOPER = "project_developer"
    USER = "user"


class UserBase(SQLModel):
    """Base user schema."""
    username: str = Field(..., min_length=1, max_length=64, index=True, unique=True)
    full_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, index=True, unique=True)
    role: UserRole = Field(default=UserRole.USER)
    organization: Optional[str] = Field(default=None)


class User(UserBase, table=True):
    """User database table."""
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utc_now)


class UserCreate(UserBase):
    """Schema for creating a user."""
    pass


class UserRead(UserBase):
    """Schema for reading a user."""
    id: int
    created_at: datetime
