"""
Carbon credit endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_session
from app.core.deps import get_ledger
from app.handlers.credits import (
    get_credit_by_serial,
    get_credit_history,
    issue_from_request,
    list_credits,
    retire_credit,
    transfer_credit,
)
from app.handlers.ledger import AuditSink
from app.models.credit import (
    CarbonCreditCreate,
    CarbonCreditRead,
    CreditEventRead,
    CreditRetire,
    CreditStatus,
    CreditTransfer,
)

router = APIRouter(prefix="/credits", tags=["credits"])


@router.post("", response_model=CarbonCreditRead, status_code=status.HTTP_201_CREATED)
async def issue_credits_endpoint(
    request: CarbonCreditCreate,
    session: AsyncSession = Depends(get_session),
    ledger: AuditSink = Depends(get_ledger)
):
    """
    Issue a batch of credits for a verified project.

    The serial number is generated as CR-<projectId>-<vintage>-<vintage+1>-<nnnn>.
    """
    return await issue_from_request(session, request, ledger=ledger)


@router.get("", response_model=List[CarbonCreditRead])
async def list_credits_endpoint(
    project_id: Optional[str] = None,
    owner: Optional[str] = None,
    status: Optional[CreditStatus] = None,
    session: AsyncSession = Depends(get_session)
):
    """List credits, optionally filtered by project, owner or status."""
    return await list_credits(session, project_id, owner, status)


@router.get("/serial/{serial_number}", response_model=CarbonCreditRead)
async def get_credit_by_serial_endpoint(
    serial_number: str,
    session: AsyncSession = Depends(get_session)
):
    """Get a credit batch by serial number."""
    credit = await get_credit_by_serial(session, serial_number)
    if not credit:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Credit {serial_number} not found"
        )
    return credit


@router.get("/{credit_id}/history", response_model=List[CreditEventRead])
async def credit_history_endpoint(
    credit_id: int,
    session: AsyncSession = Depends(get_session)
):
    """Lifecycle events of a credit batch, oldest first."""
    return await get_credit_history(session, credit_id)


@router.post("/{credit_id}/retire", response_model=CarbonCreditRead)
async def retire_credit_endpoint(
    credit_id: int,
    request: Optional[CreditRetire] = None,
    session: AsyncSession = Depends(get_session),
    ledger: AuditSink = Depends(get_ledger)
):
    """Retire an available credit batch."""
    user_id = request.user_id if request else None
    return await retire_credit(session, credit_id, user_id=user_id, ledger=ledger)


@router.post("/{credit_id}/transfer", response_model=CarbonCreditRead)
async def transfer_credit_endpoint(
    credit_id: int,
    request: CreditTransfer,
    session: AsyncSession = Depends(get_session),
    ledger: AuditSink = Depends(get_ledger)
):
    """Transfer an available credit batch to another user."""
    return await transfer_credit(
        session,
        credit_id,
        request.new_owner,
        user_id=request.user_id,
        ledger=ledger
    )
