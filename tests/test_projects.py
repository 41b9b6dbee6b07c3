"""Tests for project registration and reference data."""

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlmodel import select

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.handlers.ledger import InMemoryLedger
from app.handlers.projects import create_project, get_project, list_projects, update_project
from app.handlers.registry import (
    create_category,
    create_methodology,
    create_user,
    list_methodologies,
)
from app.models.audit import ActivityLog
from app.models.category import MethodologyCreate, ProjectCategoryCreate
from app.models.project import ProjectCreate, ProjectStatus, ProjectUpdate
from app.models.user import UserCreate


class TestReferenceData:
    """Users, categories and methodologies."""

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, test_session, reference_data):
        with pytest.raises(ConflictError):
            await create_user(test_session, UserCreate(
                username="developer", full_name="Someone Else", email="else@eco.org"
            ))

    @pytest.mark.asyncio
    async def test_duplicate_category_conflicts(self, test_session, reference_data):
        with pytest.raises(ConflictError):
            await create_category(test_session, ProjectCategoryCreate(name="Forestry"))

    @pytest.mark.asyncio
    async def test_methodology_needs_existing_category(self, test_session):
        with pytest.raises(NotFoundError):
            await create_methodology(
                test_session, MethodologyCreate(name="ACM0002", category="Renewable Energy")
            )

    @pytest.mark.asyncio
    async def test_methodologies_filtered_by_category(self, test_session, reference_data):
        await create_category(test_session, ProjectCategoryCreate(name="Renewable Energy"))
        await create_methodology(
            test_session, MethodologyCreate(name="ACM0002", category="Renewable Energy")
        )

        names = [m.name for m in await list_methodologies(test_session, "Renewable Energy")]

        assert names == ["ACM0002"]


class TestCreateProject:
    """Registering projects."""

    @pytest.mark.asyncio
    async def test_created_in_draft(self, test_session, reference_data, project_payload):
        ledger = InMemoryLedger()

        project = await create_project(
            test_session, ProjectCreate(**project_payload()), user_id=3, ledger=ledger
        )

        assert project.id is not None
        assert project.status == ProjectStatus.DRAFT
        assert project.estimated_reduction == 45000
        assert ledger.for_entity("project", "KEN-2023-0045")[0].action.value == "created"

        result = await test_session.execute(
            select(ActivityLog).where(ActivityLog.action == "project_created")
        )
        assert result.scalars().one().entity_id == "KEN-2023-0045"

    @pytest.mark.asyncio
    async def test_duplicate_business_key(self, test_session, draft_project, project_payload):
        with pytest.raises(ConflictError):
            await create_project(test_session, ProjectCreate(**project_payload()))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field, value", [
        ("category", "Space Mining"),
        ("methodology", "XYZ-001"),
        ("developer", "nobody"),
    ])
    async def test_unknown_reference(self, test_session, reference_data, project_payload, field, value):
        with pytest.raises(NotFoundError):
            await create_project(test_session, ProjectCreate(**project_payload(**{field: value})))

        assert await get_project(test_session, "KEN-2023-0045") is None

    @pytest.mark.asyncio
    async def test_methodology_from_other_category(self, test_session, reference_data, project_payload):
        await create_category(test_session, ProjectCategoryCreate(name="Renewable Energy"))
        await create_methodology(
            test_session, MethodologyCreate(name="ACM0002", category="Renewable Energy")
        )

        with pytest.raises(ValidationError):
            await create_project(
                test_session, ProjectCreate(**project_payload(methodology="ACM0002"))
            )

    @pytest.mark.asyncio
    async def test_end_before_start(self, test_session, reference_data, project_payload):
        payload = project_payload(start_date="2030-01-01", end_date="2020-01-01")

        with pytest.raises(ValidationError):
            await create_project(test_session, ProjectCreate(**payload))

    def test_negative_reduction_rejected_by_schema(self, project_payload):
        with pytest.raises(SchemaValidationError):
            ProjectCreate(**project_payload(estimated_reduction=-1))

    @pytest.mark.asyncio
    async def test_list_filters(self, test_session, verified_project, project_payload):
        await create_project(test_session, ProjectCreate(**project_payload("KEN-2023-0046")))

        drafts = await list_projects(test_session, status=ProjectStatus.DRAFT)
        verified = await list_projects(test_session, status=ProjectStatus.VERIFIED)

        assert [p.project_id for p in drafts] == ["KEN-2023-0046"]
        assert [p.project_id for p in verified] == ["KEN-2023-0045"]
        assert len(await list_projects(test_session, developer="developer")) == 2


class TestUpdateProject:
    """Partial updates."""

    @pytest.mark.asyncio
    async def test_update_fields(self, test_session, draft_project):
        project = await update_project(
            test_session, "KEN-2023-0045", ProjectUpdate(name="Rift Valley Restoration")
        )

        assert project.name == "Rift Valley Restoration"
        assert project.status == ProjectStatus.DRAFT

    @pytest.mark.asyncio
    async def test_business_key_is_immutable(self, test_session, draft_project):
        with pytest.raises(ValidationError):
            await update_project(
                test_session, "KEN-2023-0045", ProjectUpdate(project_id="KEN-2023-9999")
            )

        assert await get_project(test_session, "KEN-2023-9999") is None
        assert await get_project(test_session, "KEN-2023-0045") is not None

    @pytest.mark.asyncio
    async def test_same_business_key_is_allowed(self, test_session, draft_project):
        project = await update_project(
            test_session, "KEN-2023-0045",
            ProjectUpdate(project_id="KEN-2023-0045", location="Nakuru, Kenya")
        )

        assert project.location == "Nakuru, Kenya"

    @pytest.mark.asyncio
    async def test_unknown_project(self, test_session, reference_data):
        with pytest.raises(NotFoundError):
            await update_project(test_session, "NOPE", ProjectUpdate(name="x"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["name", "location", "category", "start_date", "end_date"])
    async def test_null_required_field_rejected(self, test_session, draft_project, field):
        with pytest.raises(ValidationError):
            await update_project(test_session, "KEN-2023-0045", ProjectUpdate(**{field: None}))

        await test_session.refresh(draft_project)
        assert getattr(draft_project, field) is not None

    @pytest.mark.asyncio
    async def test_optional_field_can_be_cleared(self, test_session, draft_project):
        project = await update_project(
            test_session, "KEN-2023-0045", ProjectUpdate(latitude=None, image_url=None)
        )

        assert project.latitude is None
        assert project.name == "Kenya Reforestation Program"
