"""
Reference data seeding script.

Loads users, project categories, methodologies and the verification stage
sequence. Rows that already exist are left alone, so the script can be
re-run.
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.constants import DEFAULT_VERIFICATION_STAGES
from app.core.database import AsyncSessionLocal, init_db
from app.core.logging import configure_logging
from app.models.category import Methodology, ProjectCategory
from app.models.user import User, UserRole
from app.models.verification import VerificationStage

logger = structlog.get_logger()

USERS = [
    ("admin", "Admin User", "admin@carboncredits.org", UserRole.ADMIN, "Carbon Registry"),
    ("verifier", "Verification Officer", "verifier@carbonverify.org", UserRole.VERIFIER,
     "Carbon Verification Agency"),
    ("developer", "Project Developer", "developer@eco.org", UserRole.PROJECT_DEVELOPER,
     "Eco Solutions"),
]

CATEGORIES = [
    ("Forestry", "Forest conservation, reforestation, and sustainable forest management", "green"),
    ("Renewable Energy", "Solar, wind, hydroelectric, and other clean energy projects", "blue"),
    ("Agriculture", "Sustainable farming practices and soil carbon sequestration", "amber"),
    ("Waste Management", "Methane capture, waste-to-energy, and recycling initiatives", "purple"),
]

METHODOLOGIES = [
    ("AR-ACM0003", "Afforestation and reforestation of lands except wetlands", "Forestry"),
    ("VM0006", "Carbon accounting for mosaic and landscape-scale REDD projects", "Forestry"),
    ("ACM0002", "Grid-connected electricity generation from renewable sources", "Renewable Energy"),
    ("AMS-I.D", "Grid connected renewable electricity generation", "Renewable Energy"),
    ("VM0017", "Adoption of sustainable agricultural land management", "Agriculture"),
    ("AMS-III.F", "Avoidance of methane emissions through composting", "Waste Management"),
]


async def _missing(session: AsyncSession, model, column, value) -> bool:
    result = await session.execute(select(model).where(column == value))
    return result.scalars().first() is None


async def seed_data():
    """Seed database with reference data."""
    await init_db()

    async with AsyncSessionLocal() as session:
        for username, full_name, email, role, organization in USERS:
            if await _missing(session, User, User.username, username):
                session.add(User(
                    username=username,
                    full_name=full_name,
                    email=email,
                    role=role,
                    organization=organization
                ))

        for name, description, color in CATEGORIES:
            if await _missing(session, ProjectCategory, ProjectCategory.name, name):
                session.add(ProjectCategory(name=name, description=description, color=color))

        for name, description, category in METHODOLOGIES:
            if await _missing(session, Methodology, Methodology.name, name):
                session.add(Methodology(name=name, description=description, category=category))

        for name, description, order in DEFAULT_VERIFICATION_STAGES:
            if await _missing(session, VerificationStage, VerificationStage.order, order):
                session.add(VerificationStage(name=name, description=description, order=order))

        await session.commit()

    logger.info(
        "Seed data loaded",
        users=len(USERS),
        categories=len(CATEGORIES),
        methodologies=len(METHODOLOGIES),
        stages=len(DEFAULT_VERIFICATION_STAGES)
    )


if __name__ == "__main__":
    configure_logging(get_settings())
    asyncio.run(seed_data())
