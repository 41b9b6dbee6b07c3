"""
Activity feed and statistics endpoints.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_session
from app.handlers.activity import list_activity, record_activity
from app.handlers.statistics import get_statistics
from app.models.audit import ActivityLogCreate, ActivityLogRead
from app.models.statistics import StatisticsRead

router = APIRouter(tags=["activity"])


@router.post("/activity", response_model=ActivityLogRead, status_code=status.HTTP_201_CREATED)
async def record_activity_endpoint(
    entry: ActivityLogCreate,
    session: AsyncSession = Depends(get_session)
):
    """Append an entry to the activity log."""
    return await record_activity(
        session,
        action=entry.action,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        user_id=entry.user_id,
        description=entry.description
    )


@router.get("/activity", response_model=List[ActivityLogRead])
async def list_activity_endpoint(
    limit: Optional[int] = Query(default=None, ge=1),
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    session: AsyncSession = Depends(get_session)
):
    """Activity feed, newest first."""
    return await list_activity(session, entity_type, entity_id, limit)


@router.get("/statistics", response_model=StatisticsRead)
async def statistics_endpoint(
    refresh: bool = False,
    session: AsyncSession = Depends(get_session)
):
    """
    Dashboard aggregates.

    Recomputed when any mutation has happened since the last read, or when
    ``refresh`` is set.
    """
    return await get_statistics(session, refresh=refresh)
