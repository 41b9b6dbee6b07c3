"""
Ledger audit sink.

Mutations hand a receipt-producing ``record`` call to whichever sink is
configured. No chain is contacted. The database sink stores records with
locally generated transaction hashes. The in-memory sink keeps them in one
process-wide list, which the read endpoints serve from when that backend is
active. The null sink returns an unpersisted receipt.
"""

import random
from functools import lru_cache
from typing import Any, Dict, List, Optional, Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.constants import LEDGER_NETWORKS
from app.models.ledger import LedgerAction, LedgerRecord, LedgerRecordBase, LedgerRecordRead
from app.utils.hashing import transaction_hash
from app.utils.time import utc_now

logger = structlog.get_logger()


def network_name(chain_id: int) -> str:
    """Human-readable network name for a chain id."""
    return LEDGER_NETWORKS.get(chain_id, f"chain-{chain_id}")


def build_record(
    entity_type: str,
    entity_id: str,
    action: LedgerAction,
    payload: Optional[Dict[str, Any]] = None,
    chain_id: int = 0
) -> LedgerRecord:
    """Build an unsaved ledger record with a fresh transaction hash."""
    data = payload or {}
    recorded_at = utc_now()
    tx_hash = transaction_hash({
        "entity_type": entity_type,
        "entity_id": entity_id,
        "action": action.value,
        "data": data,
        "timestamp": recorded_at.isoformat(),
    })
    return LedgerRecord(
        tx_hash=tx_hash,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        data=data,
        block_number=random.randint(1, 1_000_000) if chain_id else 0,
        chain_id=chain_id,
        network=network_name(chain_id),
        timestamp=recorded_at
    )


class AuditSink(Protocol):
    """Anything that can record a ledger entry and hand back a receipt."""

    async def record(
        self,
        entity_type: str,
        entity_id: str,
        action: LedgerAction,
        payload: Optional[Dict[str, Any]] = None
    ) -> LedgerRecordRead:
        ...


class NullLedger:
    """Sink that persists nothing."""

    def __init__(self, chain_id: int = 0):
        self.chain_id = chain_id

    async def record(self, entity_type, entity_id, action, payload=None) -> LedgerRecordRead:
        record = build_record(entity_type, entity_id, action, payload, self.chain_id)
        return LedgerRecordRead.model_validate(record)


class InMemoryLedger:
    """Sink that keeps records in process memory."""

    def __init__(self, chain_id: int = 0):
        self.chain_id = chain_id
        self.records: List[LedgerRecordRead] = []

    async def record(self, entity_type, entity_id, action, payload=None) -> LedgerRecordRead:
        record = build_record(entity_type, entity_id, action, payload, self.chain_id)
        receipt = LedgerRecordRead.model_validate(record)
        self.records.append(receipt)
        return receipt

    def for_entity(self, entity_type: str, entity_id: str) -> List[LedgerRecordRead]:
        return [
            r for r in self.records
            if r.entity_type == entity_type and r.entity_id == entity_id
        ]

    def recent(self, limit: int = 10) -> List[LedgerRecordRead]:
        """Newest receipts first."""
        return list(reversed(self.records))[:limit]

    def by_hash(self, tx_hash: str) -> Optional[LedgerRecordRead]:
        return next((r for r in self.records if r.tx_hash == tx_hash), None)


class DatabaseLedger:
    """Sink that adds ledger rows to the caller's session without committing."""

    def __init__(self, session: AsyncSession, chain_id: int = 0):
        self.session = session
        self.chain_id = chain_id

    async def record(self, entity_type, entity_id, action, payload=None) -> LedgerRecordRead:
        record = build_record(entity_type, entity_id, action, payload, self.chain_id)
        self.session.add(record)
        await self.session.flush()
        logger.debug(
            "Ledger record staged",
            tx_hash=record.tx_hash,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value
        )
        return LedgerRecordRead.model_validate(record)


@lru_cache()
def shared_memory_ledger(chain_id: int = 0) -> InMemoryLedger:
    """Process-wide in-memory sink, one per chain id."""
    return InMemoryLedger(chain_id)


def _memory_backend() -> Optional[InMemoryLedger]:
    settings = get_settings()
    if settings.ledger_backend != "memory":
        return None
    return shared_memory_ledger(settings.ledger_chain_id)


def make_ledger(session: AsyncSession) -> AuditSink:
    """Build the sink selected by LEDGER_BACKEND."""
    settings = get_settings()
    if settings.ledger_backend == "database":
        return DatabaseLedger(session, settings.ledger_chain_id)
    if settings.ledger_backend == "memory":
        return shared_memory_ledger(settings.ledger_chain_id)
    return NullLedger(settings.ledger_chain_id)


async def get_recent_records(session: AsyncSession, limit: int = 10) -> List[LedgerRecordBase]:
    """Most recent ledger records first."""
    memory = _memory_backend()
    if memory is not None:
        return memory.recent(limit)
    statement = select(LedgerRecord).order_by(LedgerRecord.id.desc()).limit(limit)
    result = await session.execute(statement)
    return list(result.scalars().all())


async def get_record_by_hash(session: AsyncSession, tx_hash: str) -> Optional[LedgerRecordBase]:
    """Look up a ledger record by transaction hash."""
    memory = _memory_backend()
    if memory is not None:
        return memory.by_hash(tx_hash)
    result = await session.execute(select(LedgerRecord).where(LedgerRecord.tx_hash == tx_hash))
    return result.scalars().first()


async def get_records_for_entity(
    session: AsyncSession,
    entity_type: str,
    entity_id: str
) -> List[LedgerRecordBase]:
    """All ledger records for an entity, oldest first."""
    memory = _memory_backend()
    if memory is not None:
        return memory.for_entity(entity_type, entity_id)
    statement = select(LedgerRecord).where(
        LedgerRecord.entity_type == entity_type,
        LedgerRecord.entity_id == entity_id
    ).order_by(LedgerRecord.id)
    result = await session.execute(statement)
    return list(result.scalars().all())
