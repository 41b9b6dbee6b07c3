"""
Project model - carbon offset projects identified by a business key.
"""

from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import date, datetime
from enum import Enum

from app.utils.time import utc_now


class ProjectStatus(str, Enum):
    """Project registration lifecycle."""
    DRAFT = "draft"
    REGISTERED = "registered"
    VERIFIED = "verified"
    REJECTED = "rejected"


class ProjectBase(SQLModel):
    """Base project schema."""
    project_id: str = Field(
        ...,
        min_length=1,
        index=True,
        unique=True,
        description="Business key, e.g. KEN-2023-0045"
    )
    name: str = Field(..., min_length=1)
    description: str = Field(default="")
    category: str = Field(..., min_length=1, description="Name of the project category")
    methodology: str = Field(..., min_length=1, description="Name of the methodology")
    developer: str = Field(..., min_length=1, description="Username of the project developer")
    location: str = Field(..., min_length=1)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    start_date: date
    end_date: date
    estimated_reduction: int = Field(..., ge=0, description="Estimated reduction in tCO2e")
    image_url: Optional[str] = Field(default=None)


class Project(ProjectBase, table=True):
    """Project database table."""
    __tablename__ = "projects"

    id: Optional[int] = Field(default=None, primary_key=True)
    status: ProjectStatus = Field(default=ProjectStatus.DRAFT, index=True)
    created_at: datetime = Field(default_factory=utc_now)


class ProjectCreate(ProjectBase):
    """Schema for creating a project."""
    pass


class ProjectUpdate(SQLModel):
    """Schema for a partial project update; project_id may not change."""
    project_id: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1)
    methodology: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = Field(default=None, min_length=1)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    estimated_reduction: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = None


class ProjectRead(ProjectBase):
    """Schema for reading a project."""
    id: int
    status: ProjectStatus
    created_at: datetime
