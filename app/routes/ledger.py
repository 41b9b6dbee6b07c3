"""
Ledger record endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_session
from app.handlers.ledger import get_recent_records, get_record_by_hash, get_records_for_entity
from app.models.ledger import LedgerRecordRead

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.get("/records", response_model=List[LedgerRecordRead])
async def recent_records_endpoint(
    limit: int = Query(default=10, ge=1, le=500),
    session: AsyncSession = Depends(get_session)
):
    """Most recent ledger records."""
    return await get_recent_records(session, limit)


@router.get("/records/{tx_hash}", response_model=LedgerRecordRead)
async def verify_record_endpoint(
    tx_hash: str,
    session: AsyncSession = Depends(get_session)
):
    """Look up a ledger record by transaction hash."""
    record = await get_record_by_hash(session, tx_hash)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Transaction {tx_hash} not found"
        )
    return record


@router.get("/entities/{entity_type}/{entity_id}", response_model=List[LedgerRecordRead])
async def entity_records_endpoint(
    entity_type: str,
    entity_id: str,
    session: AsyncSession = Depends(get_session)
):
    """All ledger records for one entity."""
    return await get_records_for_entity(session, entity_type, entity_id)
