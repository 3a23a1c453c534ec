"""nom035_db — PostgreSQL persistence layer for NOM-035 assessments.

This package provides the ORM models, async engine factory, and the
repository that the assessment engine uses for tokens, workers,
per-token progress, and committed evaluations.
"""

from nom035_db.engine import get_engine, get_session_factory, session_scope
from nom035_db.models.enums import AssessmentStage, AssessmentType, RiskLevel
from nom035_db.models.evaluation import CategoryScore, Evaluation, Response
from nom035_db.models.progress import AssessmentProgress
from nom035_db.models.token import AccessToken
from nom035_db.models.worker import Worker
from nom035_db.repository import AssessmentRepository

__all__ = [
    "AccessToken",
    "AssessmentProgress",
    "AssessmentRepository",
    "AssessmentStage",
    "AssessmentType",
    "CategoryScore",
    "Evaluation",
    "Response",
    "RiskLevel",
    "Worker",
    "get_engine",
    "get_session_factory",
    "session_scope",
]
