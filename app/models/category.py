"""
Project category and methodology models.

Projects reference both by name; the names are validated against these
tables whenever a project is written.
"""

from sqlmodel import SQLModel, Field
from typing import Optional

from app.core.constants import DEFAULT_CATEGORY_COLOR


class ProjectCategoryBase(SQLModel):
    """Base project category schema."""
    name: str = Field(..., min_length=1, index=True, unique=True)
    description: Optional[str] = Field(default=None)
    color: str = Field(default=DEFAULT_CATEGORY_COLOR, description="Badge color for the category")


class ProjectCategory(ProjectCategoryBase, table=True):
    """Project category database table."""
    __tablename__ = "project_categories"

    id: Optional[int] = Field(default=None, primary_key=True)


class ProjectCategoryCreate(ProjectCategoryBase):
    """Schema for creating a project category."""
    pass


class ProjectCategoryRead(ProjectCategoryBase):
    """Schema for reading a project category."""
    id: int


class MethodologyBase(SQLModel):
    """Base methodology schema."""
    name: str = Field(..., min_length=1, index=True, unique=True)
    description: Optional[str] = Field(default=None)
    category: str = Field(..., min_length=1, description="Name of the project category")
    document_url: Optional[str] = Field(default=None)


class Methodology(MethodologyBase, table=True):
    """Methodology database table."""
    __tablename__ = "methodologies"

    id: Optional[int] = Field(default=None, primary_key=True)


class MethodologyCreate(MethodologyBase):
    """Schema for creating a methodology."""
    pass


class MethodologyRead(MethodologyBase):
    """Schema for reading a methodology."""
    id: int
