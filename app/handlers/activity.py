"""
Activity log handler - append-only audit trail and the dashboard feed.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func
from typing import AsyncIterator, List, Optional

from app.core.config import get_settings
from app.core.exceptions import ValidationError
from app.models.audit import ActivityLog

logger = structlog.get_logger()


def _require_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string")
    return value.strip()


async def record_activity(
    session: AsyncSession,
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: int,
    description: str = "",
    commit: bool = True
) -> ActivityLog:
    """
    Append an activity entry.

    With ``commit=False`` the entry joins the caller's transaction, so it is
    written together with the change it describes.
    """
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise ValidationError("user_id must be an integer")

    entry = ActivityLog(
        action=_require_text(action, "action"),
        entity_type=_require_text(entity_type, "entity_type"),
        entity_id=_require_text(str(entity_id) if entity_id is not None else "", "entity_id"),
        user_id=user_id,
        description=description or ""
    )
    session.add(entry)

    if commit:
        await session.commit()
        await session.refresh(entry)

    logger.debug(
        "Activity recorded",
        action=entry.action,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id
    )
    return entry


def actor_or_system(user_id: Optional[int]) -> int:
    """Acting user for an activity entry, falling back to the system user."""
    return user_id if user_id is not None else get_settings().system_user_id


def _filtered(statement, entity_type: Optional[str], entity_id: Optional[str]):
    if entity_type:
        statement = statement.where(ActivityLog.entity_type == entity_type)
    if entity_id:
        statement = statement.where(ActivityLog.entity_id == entity_id)
    return statement


async def iter_activity(
    session: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    limit: Optional[int] = None,
    page_size: Optional[int] = None
) -> AsyncIterator[ActivityLog]:
    """
    Yield activity entries newest first, fetching them a page at a time.

    The newest id at the time of the first fetch bounds the walk, so entries
    appended while iterating are not picked up. Calling again starts a fresh
    snapshot.
    """
    if limit is not None and limit <= 0:
        return
    page_size = page_size or get_settings().activity_page_size

    snapshot = await session.execute(
        _filtered(select(func.max(ActivityLog.id)), entity_type, entity_id)
    )
    cursor = snapshot.scalar()
    if cursor is None:
        return

    yielded = 0
    upper = cursor + 1
    while True:
        statement = _filtered(
            select(ActivityLog).where(ActivityLog.id < upper),
            entity_type,
            entity_id
        ).order_by(ActivityLog.id.desc()).limit(page_size)

        result = await session.execute(statement)
        page = list(result.scalars().all())
        if not page:
            return

        for entry in page:
            yield entry
            yielded += 1
            if limit is not None and yielded >= limit:
                return

        upper = page[-1].id


async def list_activity(
    session: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    limit: Optional[int] = None
) -> List[ActivityLog]:
    """Materialize the activity feed."""
    return [
        entry async for entry in iter_activity(session, entity_type, entity_id, limit)
    ]
