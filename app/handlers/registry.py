"""
Reference data handler - users, project categories and methodologies.
"""

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, or_
from typing import List, Optional

from app.core.exceptions import ConflictError, NotFoundError
from app.models.category import (
    Methodology,
    MethodologyCreate,
    ProjectCategory,
    ProjectCategoryCreate,
)
from app.models.user import User, UserCreate

logger = structlog.get_logger()


async def _commit_unique(session: AsyncSession, entity, what: str):
    """Commit a new row, turning a unique-constraint violation into ConflictError."""
    session.add(entity)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError(f"{what} already exists") from e
    await session.refresh(entity)
    return entity


async def create_user(session: AsyncSession, user_data: UserCreate) -> User:
    """Create a user; username and email must be unused."""
    existing = await session.execute(
        select(User).where(
            or_(User.username == user_data.username, User.email == user_data.email)
        )
    )
    if existing.scalars().first():
        raise ConflictError("Username or email already exists")

    user = await _commit_unique(session, User(**user_data.model_dump()), "User")
    logger.info("User created", username=user.username, role=user.role.value)
    return user


async def get_user(session: AsyncSession, user_id: int) -> Optional[User]:
    """Get user by ID."""
    return await session.get(User, user_id)


async def get_user_by_username(session: AsyncSession, username: str) -> Optional[User]:
    """Get user by username."""
    result = await session.execute(select(User).where(User.username == username))
    return result.scalars().first()


async def require_user(session: AsyncSession, username: str) -> User:
    """Resolve a username reference or raise NotFoundError."""
    user = await get_user_by_username(session, username)
    if not user:
        raise NotFoundError(f"User '{username}' not found")
    return user


async def list_users(session: AsyncSession) -> List[User]:
    """Return all users."""
    result = await session.execute(select(User).order_by(User.id))
    return list(result.scalars().all())


async def create_category(
    session: AsyncSession,
    category_data: ProjectCategoryCreate
) -> ProjectCategory:
    """Create a project category."""
    existing = await get_category_by_name(session, category_data.name)
    if existing:
        raise ConflictError(f"Category '{category_data.name}' already exists")
    return await _commit_unique(
        session, ProjectCategory(**category_data.model_dump()), "Category"
    )


async def get_category_by_name(session: AsyncSession, name: str) -> Optional[ProjectCategory]:
    result = await session.execute(select(ProjectCategory).where(ProjectCategory.name == name))
    return result.scalars().first()


async def require_category(session: AsyncSession, name: str) -> ProjectCategory:
    category = await get_category_by_name(session, name)
    if not category:
        raise NotFoundError(f"Project category '{name}' not found")
    return category


async def list_categories(session: AsyncSession) -> List[ProjectCategory]:
    result = await session.execute(select(ProjectCategory).order_by(ProjectCategory.name))
    return list(result.scalars().all())


async def create_methodology(
    session: AsyncSession,
    methodology_data: MethodologyCreate
) -> Methodology:
    """Create a methodology under an existing category."""
    await require_category(session, methodology_data.category)
    existing = await get_methodology_by_name(session, methodology_data.name)
    if existing:
        raise ConflictError(f"Methodology '{methodology_data.name}' already exists")
    return await _commit_unique(
        session, Methodology(**methodology_data.model_dump()), "Methodology"
    )


async def get_methodology_by_name(session: AsyncSession, name: str) -> Optional[Methodology]:
    result = await session.execute(select(Methodology).where(Methodology.name == name))
    return result.scalars().first()


async def require_methodology(session: AsyncSession, name: str) -> Methodology:
    methodology = await get_methodology_by_name(session, name)
    if not methodology:
        raise NotFoundError(f"Methodology '{name}' not found")
    return methodology


async def list_methodologies(
    session: AsyncSession,
    category: Optional[str] = None
) -> List[Methodology]:
    """List methodologies, optionally for one category."""
    statement = select(Methodology)
    if category:
        statement = statement.where(Methodology.category == category)
    result = await session.execute(statement.order_by(Methodology.name))
    return list(result.scalars().all())
