"""
Statistics model - dashboard aggregates derived from the registry tables.
"""

from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from app.utils.time import utc_now


class Statistics(SQLModel, table=True):
    """Single-row cache of the dashboard aggregates."""
    __tablename__ = "statistics"

    id: Optional[int] = Field(default=None, primary_key=True)
    total_projects: int = Field(default=0)
    verified_projects: int = Field(default=0)
    pending_verification: int = Field(default=0)
    total_credits: int = Field(default=0)
    last_updated: datetime = Field(default_factory=utc_now)
    is_stale: bool = Field(default=True)


class StatisticsRead(SQLModel):
    """Schema for reading the statistics snapshot."""
    total_projects: int
    verified_projects: int
    pending_verification: int
    total_credits: int
    last_updated: datetime
