"""Scoring results — a tagged union keyed by ``assessment_type``.

The two questionnaires produce structurally different results, so each has
its own model and callers dispatch on ``result.assessment_type``.
"""

import uuid
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from nom035_db.models.enums import RiskLevel


class TraumaResult(BaseModel):
    """Binary-section classification of a trauma-screening questionnaire."""

    assessment_type: Literal["trauma_screening"] = "trauma_screening"
    requires_attention: bool
    # Section labels with at least one "yes", in catalog order
    positive_sections: list[str]
    advisory: str

    @property
    def requires_action(self) -> bool:
        return self.requires_attention


class PsychosocialResult(BaseModel):
    """Weighted-Likert classification of a psychosocial-risk questionnaire."""

    assessment_type: Literal["psychosocial_risk"] = "psychosocial_risk"
    total_score: int
    risk_level: RiskLevel
    # category id -> summed value, in first-appearance catalog order
    category_scores: dict[str, int]
    requires_action: bool
    advisory: str


ScoringResult = Annotated[
    Union[TraumaResult, PsychosocialResult],
    Field(discriminator="assessment_type"),
]


class EvaluationHandle(BaseModel):
    """Returned by a successful token claim."""

    evaluation_id: uuid.UUID
    token_id: uuid.UUID
    consumed_at: datetime
