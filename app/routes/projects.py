"""
Project endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_session
from app.core.deps import get_ledger
from app.handlers.ledger import AuditSink
from app.handlers.projects import create_project, get_project, list_projects, update_project
from app.models.project import ProjectCreate, ProjectRead, ProjectStatus, ProjectUpdate

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project_endpoint(
    project: ProjectCreate,
    user_id: Optional[int] = None,
    session: AsyncSession = Depends(get_session),
    ledger: AuditSink = Depends(get_ledger)
):
    """Register a new project. Category, methodology and developer must exist."""
    return await create_project(session, project, user_id=user_id, ledger=ledger)


@router.get("", response_model=List[ProjectRead])
async def list_projects_endpoint(
    status: Optional[ProjectStatus] = None,
    developer: Optional[str] = None,
    session: AsyncSession = Depends(get_session)
):
    """List projects, optionally filtered by status or developer."""
    return await list_projects(session, status, developer)


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project_endpoint(
    project_id: str,
    session: AsyncSession = Depends(get_session)
):
    """Get project by its business key."""
    project = await get_project(session, project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project {project_id} not found"
        )
    return project


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project_endpoint(
    project_id: str,
    update: ProjectUpdate,
    user_id: Optional[int] = None,
    session: AsyncSession = Depends(get_session),
    ledger: AuditSink = Depends(get_ledger)
):
    """Partially update a project. project_id and status are not editable."""
    return await update_project(session, project_id, update, user_id=user_id, ledger=ledger)
