"""
Verification pipeline endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_session
from app.core.deps import get_ledger
from app.handlers.ledger import AuditSink
from app.handlers.verification import (
    advance_stage,
    create_stage,
    create_verification,
    get_latest_verification,
    get_verification,
    list_stages,
    list_verifications,
    resolve_verification,
    to_read,
)
from app.models.verification import (
    ProjectVerificationCreate,
    ProjectVerificationRead,
    VerificationResolve,
    VerificationStageCreate,
    VerificationStageRead,
    VerificationStatus,
)

router = APIRouter(prefix="/verifications", tags=["verifications"])


@router.post("/stages", response_model=VerificationStageRead, status_code=status.HTTP_201_CREATED)
async def create_stage_endpoint(
    stage: VerificationStageCreate,
    session: AsyncSession = Depends(get_session)
):
    """Add a stage to the verification sequence."""
    return await create_stage(session, stage)


@router.get("/stages", response_model=List[VerificationStageRead])
async def list_stages_endpoint(
    session: AsyncSession = Depends(get_session)
):
    """List stages in pipeline order."""
    return await list_stages(session)


@router.post("", response_model=ProjectVerificationRead, status_code=status.HTTP_201_CREATED)
async def create_verification_endpoint(
    request: ProjectVerificationCreate,
    session: AsyncSession = Depends(get_session),
    ledger: AuditSink = Depends(get_ledger)
):
    """
    Request verification of a project.

    The request starts pending at the first stage of the sequence.
    """
    verification = await create_verification(session, request, ledger=ledger)
    return to_read(verification)


@router.get("", response_model=List[ProjectVerificationRead])
async def list_verifications_endpoint(
    status: Optional[VerificationStatus] = None,
    session: AsyncSession = Depends(get_session)
):
    """List verifications, optionally filtered by status."""
    return [to_read(v) for v in await list_verifications(session, status)]


@router.get("/project/{project_id}", response_model=ProjectVerificationRead)
async def get_project_verification_endpoint(
    project_id: str,
    session: AsyncSession = Depends(get_session)
):
    """Latest verification request for a project."""
    verification = await get_latest_verification(session, project_id)
    if not verification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No verification found for project {project_id}"
        )
    return to_read(verification)


@router.get("/{verification_id}", response_model=ProjectVerificationRead)
async def get_verification_endpoint(
    verification_id: int,
    session: AsyncSession = Depends(get_session)
):
    """Get verification by ID."""
    verification = await get_verification(session, verification_id)
    if not verification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Verification {verification_id} not found"
        )
    return to_read(verification)


@router.post("/{verification_id}/advance", response_model=ProjectVerificationRead)
async def advance_stage_endpoint(
    verification_id: int,
    user_id: Optional[int] = None,
    session: AsyncSession = Depends(get_session)
):
    """Move a pending verification to its next stage."""
    verification = await advance_stage(session, verification_id, user_id=user_id)
    return to_read(verification)


@router.post("/{verification_id}/resolve", response_model=ProjectVerificationRead)
async def resolve_verification_endpoint(
    verification_id: int,
    resolution: VerificationResolve,
    session: AsyncSession = Depends(get_session),
    ledger: AuditSink = Depends(get_ledger)
):
    """Approve or reject a pending verification."""
    verification = await resolve_verification(
        session,
        verification_id,
        resolution.outcome,
        user_id=resolution.user_id,
        ledger=ledger
    )
    return to_read(verification)
