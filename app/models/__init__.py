# SQLModel database models

from app.models.user import User
from app.models.category import ProjectCategory, Methodology
from app.models.project import Project
from app.models.verification import VerificationStage, ProjectVerification
from app.models.credit import CarbonCredit, CreditEvent
from app.models.audit import ActivityLog
from app.models.statistics import Statistics
from app.models.ledger import LedgerRecord

__all__ = [
    "User",
    "ProjectCategory",
    "Methodology",
    "Project",
    "VerificationStage",
    "ProjectVerification",
    "CarbonCredit",
    "CreditEvent",
    "ActivityLog",
    "Statistics",
    "LedgerRecord",
]
