"""ORM models for nom035_db."""

from nom035_db.models.base import Base
from nom035_db.models.enums import AssessmentStage, AssessmentType, RiskLevel
from nom035_db.models.evaluation import CategoryScore, Evaluation, Response
from nom035_db.models.progress import AssessmentProgress
from nom035_db.models.token import AccessToken
from nom035_db.models.worker import Worker

__all__ = [
    "AccessToken",
    "AssessmentProgress",
    "AssessmentStage",
    "AssessmentType",
    "Base",
    "CategoryScore",
    "Evaluation",
    "Response",
    "RiskLevel",
    "Worker",
]
