"""QuestionSetResolver — the applicable questions for one respondent.

Trauma screening has no conditional questions.  Psychosocial risk drops
each conditional range whose attribute is false.  Output order is always
catalog order, so the same catalog and attributes give the same list.
"""

from __future__ import annotations

from nom035_db.models.enums import AssessmentType
from nom035_engine.catalog import QuestionCatalog
from nom035_engine.models.question import (
    ConditionalAttributes,
    LikertQuestion,
    TraumaQuestion,
)


class QuestionSetResolver:
    """Pure, side-effect-free filtering over a loaded catalog."""

    def __init__(self, catalog: QuestionCatalog) -> None:
        self._catalog = catalog

    def excluded_ids(self, conditions: ConditionalAttributes | None) -> set[int]:
        """Psychosocial question ids hidden by false conditional attributes.

        ``None`` means the respondent has not answered the gating prompts
        yet and is treated as every attribute false.
        """
        conditions = conditions or ConditionalAttributes()
        excluded: set[int] = set()
        for rng in self._catalog.conditional_ranges:
            if not getattr(conditions, rng.attribute):
                excluded.update(range(rng.first, rng.last + 1))
        return excluded

    def resolve(
        self,
        assessment_type: AssessmentType,
        conditions: ConditionalAttributes | None = None,
    ) -> list[TraumaQuestion] | list[LikertQuestion]:
        """Return the ordered applicable question list."""
        questions = self._catalog.questions_for(assessment_type)
        if AssessmentType(assessment_type) == AssessmentType.TRAUMA_SCREENING:
            return questions
        excluded = self.excluded_ids(conditions)
        return [q for q in questions if q.id not in excluded]
