"""
Verification pipeline handler.

A verification request walks a project through the configured stages in
ascending ``order``. While pending it can advance one stage at a time;
approval or rejection ends it and nothing may change afterwards.
"""

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from datetime import datetime
from typing import List, Optional

from app.core.exceptions import (
    ConfigurationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.handlers.activity import actor_or_system, record_activity
from app.handlers.ledger import AuditSink
from app.handlers.projects import require_project
from app.handlers.registry import require_user
from app.handlers.statistics import mark_statistics_stale
from app.models.ledger import LedgerAction
from app.models.project import ProjectStatus
from app.models.verification import (
    ProjectVerification,
    ProjectVerificationCreate,
    ProjectVerificationRead,
    VerificationStage,
    VerificationStageCreate,
    VerificationStatus,
)
from app.utils.time import as_utc, days_until, utc_now

logger = structlog.get_logger()

TERMINAL_STATUSES = (VerificationStatus.APPROVED, VerificationStatus.REJECTED)


async def create_stage(
    session: AsyncSession,
    stage_data: VerificationStageCreate
) -> VerificationStage:
    """Add a stage to the verification sequence; name and order must be unused."""
    existing = await session.execute(
        select(VerificationStage).where(
            (VerificationStage.name == stage_data.name)
            | (VerificationStage.order == stage_data.order)
        )
    )
    if existing.scalars().first():
        raise ConflictError(
            f"A stage named '{stage_data.name}' or with order {stage_data.order} already exists"
        )

    stage = VerificationStage(**stage_data.model_dump())
    session.add(stage)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError("Verification stage already exists") from e
    await session.refresh(stage)
    return stage


async def list_stages(session: AsyncSession) -> List[VerificationStage]:
    """All stages in pipeline order."""
    result = await session.execute(select(VerificationStage).order_by(VerificationStage.order))
    return list(result.scalars().all())


async def _first_stage(session: AsyncSession) -> Optional[VerificationStage]:
    result = await session.execute(
        select(VerificationStage).order_by(VerificationStage.order).limit(1)
    )
    return result.scalars().first()


async def _next_stage(session: AsyncSession, stage: VerificationStage) -> Optional[VerificationStage]:
    result = await session.execute(
        select(VerificationStage)
        .where(VerificationStage.order > stage.order)
        .order_by(VerificationStage.order)
        .limit(1)
    )
    return result.scalars().first()


async def get_verification(session: AsyncSession, verification_id: int) -> Optional[ProjectVerification]:
    """Get verification by ID."""
    return await session.get(ProjectVerification, verification_id)


async def _lock_verification(session: AsyncSession, verification_id: int) -> ProjectVerification:
    result = await session.execute(
        select(ProjectVerification)
        .where(ProjectVerification.id == verification_id)
        .with_for_update()
    )
    verification = result.scalars().first()
    if not verification:
        raise NotFoundError(f"Verification {verification_id} not found")
    return verification


def _ensure_pending(verification: ProjectVerification) -> None:
    if verification.status in TERMINAL_STATUSES:
        raise InvalidStateError(
            f"Verification {verification.id} is already {verification.status.value}"
        )


async def create_verification(
    session: AsyncSession,
    request: ProjectVerificationCreate,
    ledger: Optional[AuditSink] = None
) -> ProjectVerification:
    """
    Open a verification request for a project.

    The request starts pending at the lowest-order stage. A project may have
    only one pending request at a time; a draft project becomes registered.

    Raises:
        ValidationError: project_id is empty
        NotFoundError: project or verifier does not exist
        ConfigurationError: no verification stages are configured
        ConflictError: the project already has a pending request
    """
    project_id = (request.project_id or "").strip()
    if not project_id:
        raise ValidationError("project_id is required")

    first_stage = await _first_stage(session)
    if first_stage is None:
        raise ConfigurationError("No verification stages are configured")

    project = await require_project(session, project_id)
    if request.verifier:
        await require_user(session, request.verifier)

    open_request = await session.execute(
        select(ProjectVerification.id).where(
            ProjectVerification.project_id == project_id,
            ProjectVerification.status == VerificationStatus.PENDING
        )
    )
    if open_request.scalars().first() is not None:
        raise ConflictError(f"Project '{project_id}' already has a pending verification")

    fields = request.model_dump(exclude={"user_id", "project_id", "estimated_completion_date"})
    verification = ProjectVerification(
        **fields,
        project_id=project_id,
        current_stage_id=first_stage.id,
        status=VerificationStatus.PENDING,
        submitted_date=utc_now(),
        estimated_completion_date=(
            as_utc(request.estimated_completion_date)
            if request.estimated_completion_date else None
        ),
        completed_stages=[]
    )
    session.add(verification)

    if project.status == ProjectStatus.DRAFT:
        project.status = ProjectStatus.REGISTERED

    await record_activity(
        session,
        action="verification_requested",
        entity_type="verification",
        entity_id=project_id,
        user_id=actor_or_system(request.user_id),
        description=f"Verification requested for project {project_id}",
        commit=False
    )
    if ledger:
        await ledger.record("verification", project_id, LedgerAction.CREATED, {
            "stage": first_stage.name,
        })
    await mark_statistics_stale(session)

    await session.commit()
    await session.refresh(verification)

    logger.info(
        "Verification requested",
        verification_id=verification.id,
        project_id=project_id,
        stage=first_stage.name
    )
    return verification


async def advance_stage(
    session: AsyncSession,
    verification_id: int,
    user_id: Optional[int] = None
) -> ProjectVerification:
    """
    Move a pending verification to the next stage.

    At the last stage this is a no-op; finishing requires resolve_verification.
    """
    verification = await _lock_verification(session, verification_id)
    _ensure_pending(verification)

    current = await session.get(VerificationStage, verification.current_stage_id)
    if current is None:
        raise ConfigurationError(
            f"Stage {verification.current_stage_id} of verification {verification_id} no longer exists"
        )

    following = await _next_stage(session, current)
    if following is None:
        logger.info(
            "Verification already at final stage",
            verification_id=verification_id,
            stage=current.name
        )
        return verification

    verification.completed_stages = list(verification.completed_stages or []) + [current.id]
    verification.current_stage_id = following.id

    await record_activity(
        session,
        action="verification_updated",
        entity_type="verification",
        entity_id=verification.project_id,
        user_id=actor_or_system(user_id),
        description=f"Verification for project {verification.project_id} moved to {following.name}",
        commit=False
    )

    await session.commit()
    await session.refresh(verification)

    logger.info(
        "Verification advanced",
        verification_id=verification_id,
        from_stage=current.name,
        to_stage=following.name
    )
    return verification


async def resolve_verification(
    session: AsyncSession,
    verification_id: int,
    outcome: VerificationStatus,
    user_id: Optional[int] = None,
    ledger: Optional[AuditSink] = None
) -> ProjectVerification:
    """Approve or reject a pending verification and update the project status."""
    if outcome not in TERMINAL_STATUSES:
        raise ValidationError("outcome must be 'approved' or 'rejected'")

    verification = await _lock_verification(session, verification_id)
    _ensure_pending(verification)

    verification.status = outcome
    verification.completed_date = utc_now()
    if outcome == VerificationStatus.APPROVED:
        verification.completed_stages = list(verification.completed_stages or []) + [
            verification.current_stage_id
        ]

    project = await require_project(session, verification.project_id)
    project.status = (
        ProjectStatus.VERIFIED if outcome == VerificationStatus.APPROVED
        else ProjectStatus.REJECTED
    )

    await record_activity(
        session,
        action=f"verification_{outcome.value}",
        entity_type="verification",
        entity_id=verification.project_id,
        user_id=actor_or_system(user_id),
        description=f"Verification {outcome.value} for project {verification.project_id}",
        commit=False
    )
    if ledger:
        await ledger.record("verification", verification.project_id, LedgerAction.UPDATED, {
            "outcome": outcome.value,
        })
    await mark_statistics_stale(session)

    await session.commit()
    await session.refresh(verification)

    logger.info(
        "Verification resolved",
        verification_id=verification_id,
        project_id=verification.project_id,
        outcome=outcome.value
    )
    return verification


async def list_verifications(
    session: AsyncSession,
    status: Optional[VerificationStatus] = None
) -> List[ProjectVerification]:
    """List verifications, newest first."""
    statement = select(ProjectVerification)
    if status:
        statement = statement.where(ProjectVerification.status == status)
    result = await session.execute(statement.order_by(ProjectVerification.id.desc()))
    return list(result.scalars().all())


async def get_latest_verification(
    session: AsyncSession,
    project_id: str
) -> Optional[ProjectVerification]:
    """Most recent verification request for a project."""
    result = await session.execute(
        select(ProjectVerification)
        .where(ProjectVerification.project_id == project_id)
        .order_by(ProjectVerification.id.desc())
        .limit(1)
    )
    return result.scalars().first()


def to_read(verification: ProjectVerification, now: Optional[datetime] = None) -> ProjectVerificationRead:
    """Read schema with days_remaining derived at read time."""
    data = ProjectVerificationRead.model_validate(verification)
    data.days_remaining = days_until(verification.estimated_completion_date, now)
    return data
