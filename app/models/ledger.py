"""
Ledger record model - receipts written by the ledger audit sink.
"""

from sqlmodel import SQLModel, Field, Column, JSON
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum

from app.utils.time import utc_now


class LedgerAction(str, Enum):
    """Actions recorded on the ledger."""
    CREATED = "created"
    UPDATED = "updated"
    TRANSFERRED = "transferred"
    RETIRED = "retired"


class LedgerRecordBase(SQLModel):
    """Base ledger record schema."""
    tx_hash: str = Field(..., index=True, unique=True)
    entity_type: str = Field(..., index=True)
    entity_id: str = Field(..., index=True)
    action: LedgerAction
    data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    block_number: int = Field(default=0)
    chain_id: int = Field(default=0)
    network: str = Field(default="mock")
    timestamp: datetime = Field(default_factory=utc_now)


class LedgerRecord(LedgerRecordBase, table=True):
    """Ledger record database table."""
    __tablename__ = "ledger_records"

    id: Optional[int] = Field(default=None, primary_key=True)


class LedgerRecordRead(LedgerRecordBase):
    """Schema for reading a ledger record."""
    id: Optional[int] = None
