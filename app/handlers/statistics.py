"""
Statistics aggregation handler.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func

from app.models.credit import CarbonCredit
from app.models.project import Project, ProjectStatus
from app.models.statistics import Statistics
from app.models.verification import ProjectVerification, VerificationStatus
from app.utils.time import utc_now

logger = structlog.get_logger()


async def _count(session: AsyncSession, statement) -> int:
    result = await session.execute(statement)
    return result.scalar() or 0


async def _load_row(session: AsyncSession) -> Statistics | None:
    result = await session.execute(select(Statistics).order_by(Statistics.id).limit(1))
    return result.scalars().first()


async def recompute_statistics(session: AsyncSession) -> Statistics:
    """
    Recompute the dashboard aggregates from the source tables.

    Returns:
        The persisted statistics row with a fresh ``last_updated``
    """
    total_projects = await _count(session, select(func.count(Project.id)))
    verified_projects = await _count(
        session,
        select(func.count(Project.id)).where(Project.status == ProjectStatus.VERIFIED)
    )
    pending_verification = await _count(
        session,
        select(func.count(ProjectVerification.id)).where(
            ProjectVerification.status == VerificationStatus.PENDING
        )
    )
    total_credits = await _count(session, select(func.sum(CarbonCredit.quantity)))

    stats = await _load_row(session)
    if stats is None:
        stats = Statistics()
        session.add(stats)

    stats.total_projects = total_projects
    stats.verified_projects = verified_projects
    stats.pending_verification = pending_verification
    stats.total_credits = total_credits
    stats.last_updated = utc_now()
    stats.is_stale = False

    await session.commit()
    await session.refresh(stats)

    logger.info(
        "Statistics recomputed",
        total_projects=total_projects,
        verified_projects=verified_projects,
        pending_verification=pending_verification,
        total_credits=total_credits
    )
    return stats


async def get_statistics(session: AsyncSession, refresh: bool = False) -> Statistics:
    """Return the statistics snapshot, recomputing it when missing or stale."""
    stats = await _load_row(session)
    if refresh or stats is None or stats.is_stale:
        return await recompute_statistics(session)
    return stats


async def mark_statistics_stale(session: AsyncSession) -> None:
    """Flag the cached aggregates for recomputation; joins the caller's transaction."""
    stats = await _load_row(session)
    if stats is not None:
        stats.is_stale = True
