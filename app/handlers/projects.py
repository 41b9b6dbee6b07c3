"""
Project registration handler.
"""

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from typing import List, Optional

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.handlers.activity import actor_or_system, record_activity
from app.handlers.ledger import AuditSink
from app.handlers.registry import require_category, require_methodology, require_user
from app.handlers.statistics import mark_statistics_stale
from app.models.ledger import LedgerAction
from app.models.project import Project, ProjectCreate, ProjectStatus, ProjectUpdate

logger = structlog.get_logger()

# Optional project columns; everything else in ProjectUpdate must be non-null when sent
NULLABLE_FIELDS = {"latitude", "longitude", "image_url"}


async def _validate_references(
    session: AsyncSession,
    category: str,
    methodology: str
) -> None:
    await require_category(session, category)
    found = await require_methodology(session, methodology)
    if found.category != category:
        raise ValidationError(
            f"Methodology '{methodology}' belongs to category '{found.category}', not '{category}'"
        )


def _check_dates(start_date, end_date) -> None:
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")


async def create_project(
    session: AsyncSession,
    project_data: ProjectCreate,
    user_id: Optional[int] = None,
    ledger: Optional[AuditSink] = None
) -> Project:
    """Register a new project in draft status."""
    project_id = project_data.project_id.strip()
    if not project_id:
        raise ValidationError("project_id is required")
    _check_dates(project_data.start_date, project_data.end_date)
    await _validate_references(session, project_data.category, project_data.methodology)
    await require_user(session, project_data.developer)

    if await get_project(session, project_id):
        raise ConflictError(f"Project '{project_id}' already exists")

    project = Project(**project_data.model_dump(exclude={"project_id"}), project_id=project_id)
    session.add(project)

    await record_activity(
        session,
        action="project_created",
        entity_type="project",
        entity_id=project_id,
        user_id=actor_or_system(user_id),
        description=f"Project {project.name} created",
        commit=False
    )
    if ledger:
        await ledger.record("project", project_id, LedgerAction.CREATED, {
            "name": project.name,
            "category": project.category,
            "estimated_reduction": project.estimated_reduction,
        })
    await mark_statistics_stale(session)

    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError(f"Project '{project_id}' already exists") from e
    await session.refresh(project)

    logger.info("Project created", project_id=project_id, developer=project.developer)
    return project


async def get_project(session: AsyncSession, project_id: str) -> Optional[Project]:
    """Get project by business key."""
    result = await session.execute(select(Project).where(Project.project_id == project_id))
    return result.scalars().first()


async def require_project(session: AsyncSession, project_id: str) -> Project:
    """Resolve a project reference or raise NotFoundError."""
    project = await get_project(session, project_id)
    if not project:
        raise NotFoundError(f"Project '{project_id}' not found")
    return project


async def list_projects(
    session: AsyncSession,
    status: Optional[ProjectStatus] = None,
    developer: Optional[str] = None
) -> List[Project]:
    """List projects, newest first, optionally filtered."""
    statement = select(Project)
    if status:
        statement = statement.where(Project.status == status)
    if developer:
        statement = statement.where(Project.developer == developer)

    result = await session.execute(statement.order_by(Project.created_at.desc(), Project.id.desc()))
    return list(result.scalars().all())


async def update_project(
    session: AsyncSession,
    project_id: str,
    update: ProjectUpdate,
    user_id: Optional[int] = None,
    ledger: Optional[AuditSink] = None
) -> Project:
    """Apply a partial update. The business key and status cannot change here."""
    project = await require_project(session, project_id)
    changes = update.model_dump(exclude_unset=True)

    new_key = changes.pop("project_id", None)
    if new_key is not None and new_key != project.project_id:
        raise ValidationError("project_id cannot be changed once assigned")

    cleared = sorted(
        field for field, value in changes.items()
        if value is None and field not in NULLABLE_FIELDS
    )
    if cleared:
        raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")

    category = changes.get("category", project.category)
    methodology = changes.get("methodology", project.methodology)
    if "category" in changes or "methodology" in changes:
        await _validate_references(session, category, methodology)
    _check_dates(
        changes.get("start_date", project.start_date),
        changes.get("end_date", project.end_date)
    )

    for field, value in changes.items():
        setattr(project, field, value)

    await record_activity(
        session,
        action="project_updated",
        entity_type="project",
        entity_id=project.project_id,
        user_id=actor_or_system(user_id),
        description=f"Project {project.name} updated",
        commit=False
    )
    if ledger and changes:
        await ledger.record("project", project.project_id, LedgerAction.UPDATED, {
            "fields": sorted(changes)
        })

    await session.commit()
    await session.refresh(project)
    return project
