"""
User and reference data endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_session
from app.models.category import (
    MethodologyCreate,
    MethodologyRead,
    ProjectCategoryCreate,
    ProjectCategoryRead,
)
from app.models.user import UserCreate, UserRead
from app.handlers.registry import (
    create_category,
    create_methodology,
    create_user,
    get_user,
    list_categories,
    list_methodologies,
    list_users,
)

router = APIRouter(tags=["registry"])


@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user_endpoint(
    user: UserCreate,
    session: AsyncSession = Depends(get_session)
):
    """Create a new user."""
    return await create_user(session, user)


@router.get("/users", response_model=List[UserRead])
async def list_users_endpoint(
    session: AsyncSession = Depends(get_session)
):
    """List all users."""
    return await list_users(session)


@router.get("/users/{user_id}", response_model=UserRead)
async def get_user_endpoint(
    user_id: int,
    session: AsyncSession = Depends(get_session)
):
    """Get user by ID."""
    user = await get_user(session, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found"
        )
    return user


@router.post("/categories", response_model=ProjectCategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category_endpoint(
    category: ProjectCategoryCreate,
    session: AsyncSession = Depends(get_session)
):
    """Create a project category."""
    return await create_category(session, category)


@router.get("/categories", response_model=List[ProjectCategoryRead])
async def list_categories_endpoint(
    session: AsyncSession = Depends(get_session)
):
    """List project categories."""
    return await list_categories(session)


@router.post("/methodologies", response_model=MethodologyRead, status_code=status.HTTP_201_CREATED)
async def create_methodology_endpoint(
    methodology: MethodologyCreate,
    session: AsyncSession = Depends(get_session)
):
    """Create a methodology under an existing category."""
    return await create_methodology(session, methodology)


@router.get("/methodologies", response_model=List[MethodologyRead])
async def list_methodologies_endpoint(
    category: Optional[str] = None,
    session: AsyncSession = Depends(get_session)
):
    """List methodologies, optionally for one category."""
    return await list_methodologies(session, category)
