"""Pytest configuration and fixtures."""

import os

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

os.environ.setdefault("LEDGER_BACKEND", "database")

import app.models  # noqa: E402,F401  registers tables on SQLModel.metadata
from app.core.constants import DEFAULT_VERIFICATION_STAGES  # noqa: E402
from app.core.database import enable_sqlite_foreign_keys, get_session  # noqa: E402
from app.handlers.projects import create_project  # noqa: E402
from app.handlers.registry import create_category, create_methodology, create_user  # noqa: E402
from app.handlers.verification import (  # noqa: E402
    create_stage,
    create_verification,
    resolve_verification,
)
from app.models.category import MethodologyCreate, ProjectCategoryCreate  # noqa: E402
from app.models.project import ProjectCreate  # noqa: E402
from app.models.user import UserCreate, UserRole  # noqa: E402
from app.models.verification import (  # noqa: E402
    ProjectVerificationCreate,
    VerificationStageCreate,
    VerificationStatus,
)
from main import create_application  # noqa: E402

# Use SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def test_engine():
    """Create a test engine for each test function."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)

    yield engine

    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def client(test_session):
    """API client with the database dependency pointed at the test session."""
    application = create_application()

    async def override_get_session():
        yield test_session

    application.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    application.dependency_overrides.clear()


@pytest.fixture
async def reference_data(test_session):
    """Users, one category and one methodology."""
    await create_user(test_session, UserCreate(
        username="developer",
        full_name="Project Developer",
        email="developer@eco.org",
        role=UserRole.PROJECT_DEVELOPER,
        organization="Eco Solutions",
    ))
    await create_user(test_session, UserCreate(
        username="buyer",
        full_name="Credit Buyer",
        email="buyer@offsets.com",
    ))
    await create_user(test_session, UserCreate(
        username="verifier",
        full_name="Verification Officer",
        email="verifier@carbonverify.org",
        role=UserRole.VERIFIER,
    ))
    await create_category(test_session, ProjectCategoryCreate(name="Forestry", color="green"))
    await create_methodology(test_session, MethodologyCreate(name="AR-ACM0003", category="Forestry"))
    return test_session


@pytest.fixture
async def stages(test_session):
    """The default five-stage verification sequence."""
    return [
        await create_stage(test_session, VerificationStageCreate(
            name=name, description=description, order=order
        ))
        for name, description, order in DEFAULT_VERIFICATION_STAGES
    ]


@pytest.fixture
def project_payload():
    """Factory for valid project request bodies."""
    def build(project_id: str = "KEN-2023-0045", **overrides) -> dict:
        payload = {
            "project_id": project_id,
            "name": "Kenya Reforestation Program",
            "description": "Restoring degraded land in the Rift Valley",
            "category": "Forestry",
            "methodology": "AR-ACM0003",
            "developer": "developer",
            "location": "Rift Valley, Kenya",
            "latitude": -0.3031,
            "longitude": 36.08,
            "start_date": "2023-01-01",
            "end_date": "2043-12-31",
            "estimated_reduction": 45000,
        }
        payload.update(overrides)
        return payload
    return build


@pytest.fixture
async def draft_project(test_session, reference_data, project_payload):
    """A registered-but-unverified project in draft status."""
    return await create_project(test_session, ProjectCreate(**project_payload()))


@pytest.fixture
async def verified_project(test_session, draft_project, stages):
    """A project whose verification has been approved."""
    verification = await create_verification(
        test_session, ProjectVerificationCreate(project_id=draft_project.project_id)
    )
    await resolve_verification(test_session, verification.id, VerificationStatus.APPROVED)
    await test_session.refresh(draft_project)
    return draft_project
