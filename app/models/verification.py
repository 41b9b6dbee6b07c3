"""
Verification models - the ordered stage sequence and per-project requests.
"""

from sqlmodel import SQLModel, Field, Column, JSON
from typing import Optional, List
from datetime import datetime
from enum import Enum

from app.utils.time import utc_now


class VerificationStatus(str, Enum):
    """Verification request outcome; approved and rejected are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationStageBase(SQLModel):
    """Base verification stage schema."""
    name: str = Field(..., min_length=1, unique=True)
    description: Optional[str] = Field(default=None)
    order: int = Field(..., unique=True, description="Position of the stage in the sequence")
    required_documents: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    icon: Optional[str] = Field(default=None)


class VerificationStage(VerificationStageBase, table=True):
    """Verification stage database table."""
    __tablename__ = "verification_stages"

    id: Optional[int] = Field(default=None, primary_key=True)


class VerificationStageCreate(VerificationStageBase):
    """Schema for creating a verification stage."""
    pass


class VerificationStageRead(VerificationStageBase):
    """Schema for reading a verification stage."""
    id: int


class ProjectVerificationBase(SQLModel):
    """Fields supplied when verification is requested."""
    project_id: str = Field(..., index=True, description="Business key of the project")
    verifier: Optional[str] = Field(default=None, description="Username of the assigned verifier")
    notes: Optional[str] = Field(default=None)
    estimated_completion_date: Optional[datetime] = Field(default=None)
    verification_standard: Optional[str] = Field(default=None, description="e.g. VCS, Gold Standard")
    third_party_verifier: Optional[str] = Field(default=None)
    contact_email: Optional[str] = Field(default=None)


class ProjectVerification(ProjectVerificationBase, table=True):
    """Project verification database table."""
    __tablename__ = "project_verifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    current_stage_id: int = Field(..., foreign_key="verification_stages.id")
    status: VerificationStatus = Field(default=VerificationStatus.PENDING, index=True)
    submitted_date: datetime = Field(default_factory=utc_now)
    completed_date: Optional[datetime] = Field(default=None)
    completed_stages: List[int] = Field(default_factory=list, sa_column=Column(JSON))


class ProjectVerificationCreate(ProjectVerificationBase):
    """Schema for requesting verification of a project."""
    user_id: Optional[int] = Field(default=None, description="Acting user")


class VerificationResolve(SQLModel):
    """Schema for resolving a verification."""
    outcome: VerificationStatus
    user_id: Optional[int] = None


class ProjectVerificationRead(ProjectVerificationBase):
    """Schema for reading a project verification."""
    id: int
    current_stage_id: int
    status: VerificationStatus
    submitted_date: datetime
    completed_date: Optional[datetime] = None
    completed_stages: List[int] = []
    days_remaining: Optional[int] = None
