"""
Carbon credit models - issued batches and their lifecycle events.
"""

from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from app.utils.time import utc_now


class CreditStatus(str, Enum):
    """Carbon credit lifecycle; retired and transferred are terminal."""
    AVAILABLE = "available"
    RETIRED = "retired"
    TRANSFERRED = "transferred"


class CreditEventType(str, Enum):
    """Kinds of lifecycle event recorded against a credit batch."""
    ISSUED = "issued"
    RETIRED = "retired"
    TRANSFERRED = "transferred"


class CarbonCreditBase(SQLModel):
    """Base carbon credit schema."""
    project_id: str = Field(..., index=True, description="Business key of the issuing project")
    vintage: str = Field(..., description="Year the emission reductions occurred")
    quantity: int = Field(..., description="Number of credits in tCO2e")
    owner: str = Field(..., index=True, description="Username of the current holder")


class CarbonCredit(CarbonCreditBase, table=True):
    """Carbon credit database table."""
    __tablename__ = "carbon_credits"

    id: Optional[int] = Field(default=None, primary_key=True)
    serial_number: str = Field(..., index=True, unique=True)
    status: CreditStatus = Field(default=CreditStatus.AVAILABLE, index=True)
    issuance_date: datetime = Field(default_factory=utc_now)
    retirement_date: Optional[datetime] = Field(default=None)


class CarbonCreditCreate(CarbonCreditBase):
    """Schema for issuing carbon credits."""
    user_id: Optional[int] = Field(default=None, description="Acting user")


class CarbonCreditRead(CarbonCreditBase):
    """Schema for reading a carbon credit."""
    id: int
    serial_number: str
    status: CreditStatus
    issuance_date: datetime
    retirement_date: Optional[datetime] = None


class CreditRetire(SQLModel):
    """Schema for retiring a credit batch."""
    user_id: Optional[int] = None


class CreditTransfer(SQLModel):
    """Schema for transferring a credit batch."""
    new_owner: str
    user_id: Optional[int] = None


class CreditEvent(SQLModel, table=True):
    """Immutable lifecycle event; the credit row holds only the current state."""
    __tablename__ = "credit_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    credit_id: int = Field(..., foreign_key="carbon_credits.id", index=True)
    serial_number: str = Field(..., index=True)
    event: CreditEventType
    from_owner: Optional[str] = Field(default=None)
    to_owner: Optional[str] = Field(default=None)
    quantity: int
    user_id: int
    occurred_at: datetime = Field(default_factory=utc_now)


class CreditEventRead(SQLModel):
    """Schema for reading a credit lifecycle event."""
    id: int
    credit_id: int
    serial_number: str
    event: CreditEventType
    from_owner: Optional[str] = None
    to_owner: Optional[str] = None
    quantity: int
    user_id: int
    occurred_at: datetime
