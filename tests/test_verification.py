"""Tests for the verification pipeline."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.exceptions import (
    ConfigurationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.handlers.ledger import InMemoryLedger
from app.handlers.verification import (
    advance_stage,
    create_stage,
    create_verification,
    get_latest_verification,
    list_stages,
    list_verifications,
    resolve_verification,
    to_read,
)
from app.models.audit import ActivityLog
from app.models.project import ProjectStatus
from app.models.verification import (
    ProjectVerification,
    ProjectVerificationCreate,
    VerificationStageCreate,
    VerificationStatus,
)
from app.utils.time import as_utc, utc_now


def request_for(project_id: str, **extra) -> ProjectVerificationCreate:
    return ProjectVerificationCreate(project_id=project_id, **extra)


class TestStages:
    """Stage sequence management."""

    @pytest.mark.asyncio
    async def test_stages_listed_in_order(self, test_session: AsyncSession):
        await create_stage(test_session, VerificationStageCreate(name="Final Review", order=3))
        await create_stage(test_session, VerificationStageCreate(name="Data Validation", order=1))
        await create_stage(test_session, VerificationStageCreate(name="Site Inspection", order=2))

        names = [s.name for s in await list_stages(test_session)]

        assert names == ["Data Validation", "Site Inspection", "Final Review"]

    @pytest.mark.asyncio
    async def test_duplicate_order_rejected(self, test_session: AsyncSession):
        await create_stage(test_session, VerificationStageCreate(name="Data Validation", order=1))

        with pytest.raises(ConflictError):
            await create_stage(test_session, VerificationStageCreate(name="Other", order=1))


class TestCreateVerification:
    """Opening verification requests."""

    @pytest.mark.asyncio
    async def test_starts_pending_at_lowest_order_stage(self, test_session, draft_project, stages):
        before = utc_now()

        verification = await create_verification(test_session, request_for(draft_project.project_id))

        assert verification.status == VerificationStatus.PENDING
        assert verification.current_stage_id == stages[0].id
        assert as_utc(verification.submitted_date) >= before - timedelta(seconds=1)
        assert verification.completed_date is None
        assert verification.completed_stages == []

    @pytest.mark.asyncio
    async def test_lowest_order_wins_regardless_of_insert_order(self, test_session, draft_project):
        await create_stage(test_session, VerificationStageCreate(name="Late", order=20))
        early = await create_stage(test_session, VerificationStageCreate(name="Early", order=5))

        verification = await create_verification(test_session, request_for(draft_project.project_id))

        assert verification.current_stage_id == early.id

    @pytest.mark.asyncio
    async def test_no_stages_is_configuration_error(self, test_session, draft_project):
        with pytest.raises(ConfigurationError):
            await create_verification(test_session, request_for(draft_project.project_id))

        result = await test_session.execute(select(ProjectVerification))
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_empty_project_id_is_validation_error(self, test_session, stages):
        with pytest.raises(ValidationError):
            await create_verification(test_session, request_for("  "))

    @pytest.mark.asyncio
    async def test_unknown_project(self, test_session, stages):
        with pytest.raises(NotFoundError):
            await create_verification(test_session, request_for("XXX-0000-0000"))

    @pytest.mark.asyncio
    async def test_unknown_verifier(self, test_session, draft_project, stages):
        with pytest.raises(NotFoundError):
            await create_verification(
                test_session, request_for(draft_project.project_id, verifier="nobody")
            )

    @pytest.mark.asyncio
    async def test_second_pending_request_conflicts(self, test_session, draft_project, stages):
        await create_verification(test_session, request_for(draft_project.project_id))

        with pytest.raises(ConflictError):
            await create_verification(test_session, request_for(draft_project.project_id))

    @pytest.mark.asyncio
    async def test_new_request_allowed_after_rejection(self, test_session, draft_project, stages):
        first = await create_verification(test_session, request_for(draft_project.project_id))
        await resolve_verification(test_session, first.id, VerificationStatus.REJECTED)

        second = await create_verification(test_session, request_for(draft_project.project_id))

        assert second.id != first.id
        latest = await get_latest_verification(test_session, draft_project.project_id)
        assert latest.id == second.id

    @pytest.mark.asyncio
    async def test_draft_project_becomes_registered(self, test_session, draft_project, stages):
        assert draft_project.status == ProjectStatus.DRAFT

        await create_verification(test_session, request_for(draft_project.project_id))
        await test_session.refresh(draft_project)

        assert draft_project.status == ProjectStatus.REGISTERED

    @pytest.mark.asyncio
    async def test_request_is_logged(self, test_session, draft_project, stages):
        await create_verification(
            test_session, request_for(draft_project.project_id, user_id=7)
        )

        result = await test_session.execute(
            select(ActivityLog).where(ActivityLog.action == "verification_requested")
        )
        entry = result.scalars().one()
        assert entry.entity_id == draft_project.project_id
        assert entry.user_id == 7


class TestAdvanceStage:
    """Stage advancement."""

    @pytest.mark.asyncio
    async def test_advances_in_order(self, test_session, draft_project, stages):
        verification = await create_verification(test_session, request_for(draft_project.project_id))

        await advance_stage(test_session, verification.id)
        verification = await advance_stage(test_session, verification.id)

        assert verification.current_stage_id == stages[2].id
        assert verification.completed_stages == [stages[0].id, stages[1].id]
        assert verification.status == VerificationStatus.PENDING

    @pytest.mark.asyncio
    async def test_final_stage_is_noop(self, test_session, draft_project, stages):
        verification = await create_verification(test_session, request_for(draft_project.project_id))
        for _ in range(len(stages) - 1):
            verification = await advance_stage(test_session, verification.id)
        assert verification.current_stage_id == stages[-1].id

        verification = await advance_stage(test_session, verification.id)

        assert verification.current_stage_id == stages[-1].id
        assert verification.status == VerificationStatus.PENDING

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome", [VerificationStatus.APPROVED, VerificationStatus.REJECTED])
    async def test_resolved_verification_cannot_advance(
        self, test_session, draft_project, stages, outcome
    ):
        verification = await create_verification(test_session, request_for(draft_project.project_id))
        await resolve_verification(test_session, verification.id, outcome)

        with pytest.raises(InvalidStateError):
            await advance_stage(test_session, verification.id)

        await test_session.refresh(verification)
        assert verification.current_stage_id == stages[0].id
        assert verification.status == outcome

    @pytest.mark.asyncio
    async def test_unknown_verification(self, test_session, stages):
        with pytest.raises(NotFoundError):
            await advance_stage(test_session, 999)


class TestResolveVerification:
    """Terminal outcomes."""

    @pytest.mark.asyncio
    async def test_approval_scenario(self, test_session, draft_project, stages):
        ledger = InMemoryLedger()
        verification = await create_verification(
            test_session, request_for(draft_project.project_id), ledger=ledger
        )
        assert verification.current_stage_id == stages[0].id
        assert verification.status == VerificationStatus.PENDING

        verification = await resolve_verification(
            test_session, verification.id, VerificationStatus.APPROVED, ledger=ledger
        )

        assert verification.status == VerificationStatus.APPROVED
        assert verification.completed_date is not None
        await test_session.refresh(draft_project)
        assert draft_project.status == ProjectStatus.VERIFIED
        assert [r.action.value for r in ledger.records] == ["created", "updated"]

        with pytest.raises(InvalidStateError):
            await advance_stage(test_session, verification.id)

    @pytest.mark.asyncio
    async def test_rejection_marks_project_rejected(self, test_session, draft_project, stages):
        verification = await create_verification(test_session, request_for(draft_project.project_id))

        await resolve_verification(test_session, verification.id, VerificationStatus.REJECTED)

        await test_session.refresh(draft_project)
        assert draft_project.status == ProjectStatus.REJECTED

    @pytest.mark.asyncio
    async def test_cannot_resolve_twice(self, test_session, draft_project, stages):
        verification = await create_verification(test_session, request_for(draft_project.project_id))
        verification = await resolve_verification(
            test_session, verification.id, VerificationStatus.APPROVED
        )
        completed = verification.completed_date

        with pytest.raises(InvalidStateError):
            await resolve_verification(test_session, verification.id, VerificationStatus.REJECTED)

        await test_session.refresh(verification)
        assert verification.status == VerificationStatus.APPROVED
        assert verification.completed_date == completed

    @pytest.mark.asyncio
    async def test_pending_is_not_an_outcome(self, test_session, draft_project, stages):
        verification = await create_verification(test_session, request_for(draft_project.project_id))

        with pytest.raises(ValidationError):
            await resolve_verification(test_session, verification.id, VerificationStatus.PENDING)

    @pytest.mark.asyncio
    async def test_list_by_status(self, test_session, reference_data, stages, project_payload):
        from app.handlers.projects import create_project
        from app.models.project import ProjectCreate

        for key in ("KEN-2023-0001", "KEN-2023-0002"):
            await create_project(test_session, ProjectCreate(**project_payload(key)))
            await create_verification(test_session, request_for(key))
        first = (await list_verifications(test_session))[-1]
        await resolve_verification(test_session, first.id, VerificationStatus.APPROVED)

        pending = await list_verifications(test_session, VerificationStatus.PENDING)
        approved = await list_verifications(test_session, VerificationStatus.APPROVED)

        assert [v.project_id for v in pending] == ["KEN-2023-0002"]
        assert [v.project_id for v in approved] == ["KEN-2023-0001"]


class TestDaysRemaining:
    """Estimated-completion countdown derived on read."""

    @pytest.mark.asyncio
    async def test_rounds_partial_days_up(self, test_session, draft_project, stages):
        now = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        verification = await create_verification(
            test_session,
            request_for(
                draft_project.project_id,
                estimated_completion_date=now + timedelta(days=2, hours=6),
            ),
        )

        assert to_read(verification, now=now).days_remaining == 3
        assert to_read(verification, now=now + timedelta(days=2)).days_remaining == 1

    @pytest.mark.asyncio
    async def test_none_without_estimate(self, test_session, draft_project, stages):
        verification = await create_verification(test_session, request_for(draft_project.project_id))

        assert to_read(verification).days_remaining is None
