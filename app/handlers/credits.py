"""
Carbon credit lifecycle handler.

Credits are issued as available batches, then either retired or transferred;
both are terminal. Every transition writes an immutable CreditEvent next to
the updated credit row, in the same commit.
"""

import random
import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from typing import List, Optional

from app.core.config import get_settings
from app.core.constants import SERIAL_PREFIX, SERIAL_SUFFIX_DIGITS
from app.core.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from app.handlers.activity import actor_or_system, record_activity
from app.handlers.ledger import AuditSink
from app.handlers.projects import require_project
from app.handlers.registry import require_user
from app.handlers.statistics import mark_statistics_stale
from app.models.credit import (
    CarbonCredit,
    CarbonCreditCreate,
    CreditEvent,
    CreditEventType,
    CreditStatus,
)
from app.models.ledger import LedgerAction
from app.models.project import ProjectStatus
from app.utils.time import utc_now

logger = structlog.get_logger()


def generate_serial_number(project_id: str, vintage: str) -> str:
    """
    Build a serial number: CR-<projectId>-<vintage>-<vintage+1>-<random suffix>.

    The suffix is random, so uniqueness is left to the database constraint.
    """
    year = int(vintage)
    suffix = random.randint(0, 10 ** SERIAL_SUFFIX_DIGITS - 1)
    return f"{SERIAL_PREFIX}-{project_id}-{year}-{year + 1}-{suffix:0{SERIAL_SUFFIX_DIGITS}d}"


def validate_issuance(project_id, vintage, quantity, owner) -> tuple:
    """Check issuance input before anything touches the database."""
    if not isinstance(project_id, str) or not project_id.strip():
        raise ValidationError("project_id is required")
    if not isinstance(vintage, str) or not vintage.strip():
        raise ValidationError("vintage is required")
    if not vintage.strip().isdigit() or len(vintage.strip()) != 4:
        raise ValidationError("vintage must be a four-digit year")
    if not isinstance(owner, str) or not owner.strip():
        raise ValidationError("owner is required")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity <= 0:
        raise ValidationError("quantity must be greater than zero")
    return project_id.strip(), vintage.strip(), quantity, owner.strip()


async def _serial_exists(session: AsyncSession, serial_number: str) -> bool:
    result = await session.execute(
        select(CarbonCredit.id).where(CarbonCredit.serial_number == serial_number)
    )
    return result.scalars().first() is not None


async def issue_credits(
    session: AsyncSession,
    project_id: str,
    vintage: str,
    quantity: int,
    owner: str,
    user_id: Optional[int] = None,
    ledger: Optional[AuditSink] = None
) -> CarbonCredit:
    """
    Issue a batch of credits for a verified project.

    A serial number that is already taken is re-rolled, up to
    SERIAL_MAX_ATTEMPTS times.

    Raises:
        ValidationError: missing fields, bad vintage or quantity <= 0
        NotFoundError: project or owner does not exist
        InvalidStateError: project is not verified
        ConflictError: no free serial number after all attempts
    """
    project_id, vintage, quantity, owner = validate_issuance(project_id, vintage, quantity, owner)

    project = await require_project(session, project_id)
    if project.status != ProjectStatus.VERIFIED:
        raise InvalidStateError(
            f"Project '{project_id}' is {project.status.value}; credits require a verified project"
        )
    await require_user(session, owner)

    actor = actor_or_system(user_id)
    max_attempts = get_settings().serial_max_attempts

    for attempt in range(1, max_attempts + 1):
        serial_number = generate_serial_number(project_id, vintage)
        if await _serial_exists(session, serial_number):
            logger.warning("Serial number collision", serial_number=serial_number, attempt=attempt)
            continue

        credit = CarbonCredit(
            serial_number=serial_number,
            project_id=project_id,
            vintage=vintage,
            quantity=quantity,
            owner=owner,
            status=CreditStatus.AVAILABLE,
            issuance_date=utc_now()
        )
        try:
            session.add(credit)
            await session.flush()

            session.add(CreditEvent(
                credit_id=credit.id,
                serial_number=serial_number,
                event=CreditEventType.ISSUED,
                to_owner=owner,
                quantity=quantity,
                user_id=actor,
                occurred_at=credit.issuance_date
            ))
            await record_activity(
                session,
                action="credit_issued",
                entity_type="credit",
                entity_id=serial_number,
                user_id=actor,
                description=f"{quantity} credits issued for project {project_id}",
                commit=False
            )
            await session.flush()
        except IntegrityError:
            await session.rollback()
            logger.warning("Serial number taken at flush", serial_number=serial_number, attempt=attempt)
            continue

        # Only a batch that made it into the session gets a receipt
        if ledger:
            await ledger.record("credit", serial_number, LedgerAction.CREATED, {
                "project_id": project_id,
                "vintage": vintage,
                "quantity": quantity,
                "owner": owner,
            })
        await mark_statistics_stale(session)
        await session.commit()
        await session.refresh(credit)
        logger.info(
            "Credits issued",
            serial_number=serial_number,
            project_id=project_id,
            quantity=quantity,
            owner=owner
        )
        return credit

    raise ConflictError(
        f"Could not allocate a unique serial number for project '{project_id}' "
        f"after {max_attempts} attempts"
    )


async def _lock_credit(session: AsyncSession, credit_id: int) -> CarbonCredit:
    result = await session.execute(
        select(CarbonCredit).where(CarbonCredit.id == credit_id).with_for_update()
    )
    credit = result.scalars().first()
    if not credit:
        raise NotFoundError(f"Credit {credit_id} not found")
    return credit


def _ensure_available(credit: CarbonCredit, action: str) -> None:
    if credit.status != CreditStatus.AVAILABLE:
        raise InvalidStateError(
            f"Cannot {action} credit {credit.serial_number}: status is {credit.status.value}"
        )


async def retire_credit(
    session: AsyncSession,
    credit_id: int,
    user_id: Optional[int] = None,
    ledger: Optional[AuditSink] = None
) -> CarbonCredit:
    """Permanently retire an available credit batch."""
    credit = await _lock_credit(session, credit_id)
    _ensure_available(credit, "retire")

    actor = actor_or_system(user_id)
    credit.status = CreditStatus.RETIRED
    credit.retirement_date = utc_now()

    session.add(CreditEvent(
        credit_id=credit.id,
        serial_number=credit.serial_number,
        event=CreditEventType.RETIRED,
        from_owner=credit.owner,
        quantity=credit.quantity,
        user_id=actor,
        occurred_at=credit.retirement_date
    ))
    await record_activity(
        session,
        action="credit_retired",
        entity_type="credit",
        entity_id=credit.serial_number,
        user_id=actor,
        description=f"{credit.quantity} credits retired for project {credit.project_id}",
        commit=False
    )
    if ledger:
        await ledger.record("credit", credit.serial_number, LedgerAction.RETIRED, {
            "quantity": credit.quantity,
            "owner": credit.owner,
        })

    await session.commit()
    await session.refresh(credit)

    logger.info("Credits retired", serial_number=credit.serial_number, quantity=credit.quantity)
    return credit


async def transfer_credit(
    session: AsyncSession,
    credit_id: int,
    new_owner: str,
    user_id: Optional[int] = None,
    ledger: Optional[AuditSink] = None
) -> CarbonCredit:
    """Hand an available credit batch to another user."""
    if not isinstance(new_owner, str) or not new_owner.strip():
        raise ValidationError("new_owner is required")
    new_owner = new_owner.strip()

    credit = await _lock_credit(session, credit_id)
    _ensure_available(credit, "transfer")
    if new_owner == credit.owner:
        raise ValidationError(f"Credit {credit.serial_number} is already owned by '{new_owner}'")
    await require_user(session, new_owner)

    actor = actor_or_system(user_id)
    previous_owner = credit.owner
    credit.owner = new_owner
    credit.status = CreditStatus.TRANSFERRED

    session.add(CreditEvent(
        credit_id=credit.id,
        serial_number=credit.serial_number,
        event=CreditEventType.TRANSFERRED,
        from_owner=previous_owner,
        to_owner=new_owner,
        quantity=credit.quantity,
        user_id=actor,
        occurred_at=utc_now()
    ))
    await record_activity(
        session,
        action="credit_transferred",
        entity_type="credit",
        entity_id=credit.serial_number,
        user_id=actor,
        description=f"{credit.quantity} credits transferred from {previous_owner} to {new_owner}",
        commit=False
    )
    if ledger:
        await ledger.record("credit", credit.serial_number, LedgerAction.TRANSFERRED, {
            "quantity": credit.quantity,
            "from_owner": previous_owner,
            "to_owner": new_owner,
        })

    await session.commit()
    await session.refresh(credit)

    logger.info(
        "Credits transferred",
        serial_number=credit.serial_number,
        from_owner=previous_owner,
        to_owner=new_owner
    )
    return credit


async def issue_from_request(
    session: AsyncSession,
    request: CarbonCreditCreate,
    ledger: Optional[AuditSink] = None
) -> CarbonCredit:
    """Issue credits from an API request body."""
    return await issue_credits(
        session,
        request.project_id,
        request.vintage,
        request.quantity,
        request.owner,
        user_id=request.user_id,
        ledger=ledger
    )


async def get_credit(session: AsyncSession, credit_id: int) -> Optional[CarbonCredit]:
    """Get credit by ID."""
    return await session.get(CarbonCredit, credit_id)


async def get_credit_by_serial(session: AsyncSession, serial_number: str) -> Optional[CarbonCredit]:
    """Get credit by serial number."""
    result = await session.execute(
        select(CarbonCredit).where(CarbonCredit.serial_number == serial_number)
    )
    return result.scalars().first()


async def list_credits(
    session: AsyncSession,
    project_id: Optional[str] = None,
    owner: Optional[str] = None,
    status: Optional[CreditStatus] = None
) -> List[CarbonCredit]:
    """List credits, newest issuance first, optionally filtered."""
    statement = select(CarbonCredit)
    if project_id:
        statement = statement.where(CarbonCredit.project_id == project_id)
    if owner:
        statement = statement.where(CarbonCredit.owner == owner)
    if status:
        statement = statement.where(CarbonCredit.status == status)

    result = await session.execute(statement.order_by(CarbonCredit.id.desc()))
    return list(result.scalars().all())


async def get_credit_history(session: AsyncSession, credit_id: int) -> List[CreditEvent]:
    """Lifecycle events of a credit, oldest first."""
    if await get_credit(session, credit_id) is None:
        raise NotFoundError(f"Credit {credit_id} not found")
    result = await session.execute(
        select(CreditEvent).where(CreditEvent.credit_id == credit_id).order_by(CreditEvent.id)
    )
    return list(result.scalars().all())
