"""
Request-scoped dependencies.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.handlers.ledger import AuditSink, make_ledger


async def get_ledger(session: AsyncSession = Depends(get_session)) -> AuditSink:
    """Ledger sink bound to the request's session."""
    return make_ledger(session)
