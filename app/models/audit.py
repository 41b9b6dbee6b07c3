"""
Activity log model - append-only record of state-changing actions.
"""

from sqlmodel import SQLModel, Field
from sqlalchemy import event
from typing import Optional
from datetime import datetime

from app.core.exceptions import InvalidStateError
from app.models.credit import CreditEvent
from app.utils.time import utc_now


class ActivityLogBase(SQLModel):
    """Base activity log schema."""
    action: str = Field(..., description="Action tag (e.g., 'project_created', 'credit_issued')")
    description: str = Field(default="")
    entity_type: str = Field(..., index=True, description="Entity type (e.g., 'project', 'credit')")
    entity_id: str = Field(..., index=True, description="Business key or id of the entity")
    user_id: int = Field(..., description="User who performed the action")


class ActivityLog(ActivityLogBase, table=True):
    """Activity log database table - append-only."""
    __tablename__ = "activity_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: datetime = Field(default_factory=utc_now, index=True)


class ActivityLogCreate(ActivityLogBase):
    """Schema for creating an activity log entry."""
    pass


class ActivityLogRead(ActivityLogBase):
    """Schema for reading an activity log entry."""
    id: int
    timestamp: datetime


def _reject_mutation(mapper, connection, target):
    raise InvalidStateError(f"{type(target).__name__} entries are immutable")


for _append_only in (ActivityLog, CreditEvent):
    event.listen(_append_only, "before_update", _reject_mutation)
    event.listen(_append_only, "before_delete", _reject_mutation)
