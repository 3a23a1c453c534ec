"""Scoring engine — the two NOM-035 classification algorithms.

Binary-section (trauma screening):
    A section is positive when any of its questions was answered "yes".
    Section I positive plus any of II/III/IV positive requires attention;
    section I alone means exposure without current after-effects.

Weighted-Likert (psychosocial risk):
    Each answer index 0..4 is mapped through the direct or inverted value
    table, summed overall and per category, and the total is classified
    into a risk band.

Everything here is pure: no I/O, deterministic, safe to call repeatedly.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from nom035_db.models.enums import AssessmentType
from nom035_engine.catalog import QuestionCatalog
from nom035_engine.constants import (
    DIRECT_SCALE,
    INVERTED_SCALE,
    TRAUMA_ADVISORIES,
    TRAUMA_EXPOSURE_SECTION,
)
from nom035_engine.errors import IncompleteResponses, InvalidAnswer
from nom035_engine.models.question import LikertQuestion, TraumaQuestion
from nom035_engine.models.result import PsychosocialResult, TraumaResult
from nom035_engine.models.schema import RiskBand


def _missing(questions: Sequence, answers: Mapping) -> list[int]:
    return [q.id for q in questions if q.id not in answers]


# ======================================================================
# Binary-section algorithm
# ======================================================================

def score_trauma(
    questions: Sequence[TraumaQuestion],
    answers: Mapping[int, bool],
    section_order: Sequence[str] | None = None,
) -> TraumaResult:
    """Classify a trauma-screening questionnaire.

    Args:
        questions: the resolved question list (all 20 for this guide).
        answers: question id -> True/False.
        section_order: label order for ``positive_sections``; defaults to
            first appearance in ``questions``.

    Raises:
        IncompleteResponses: if any question has no answer.
    """
    missing = _missing(questions, answers)
    if missing:
        raise IncompleteResponses(missing)

    if section_order is None:
        section_order = list(dict.fromkeys(q.section for q in questions))

    positive = {q.section for q in questions if answers[q.id] is True}
    positive_sections = [s for s in section_order if s in positive]

    exposed = TRAUMA_EXPOSURE_SECTION in positive
    after_effects = any(s != TRAUMA_EXPOSURE_SECTION for s in positive)
    requires_attention = exposed and after_effects

    if not exposed:
        advisory = TRAUMA_ADVISORIES["no_exposure"]
    elif requires_attention:
        advisory = TRAUMA_ADVISORIES["attention"]
    else:
        advisory = TRAUMA_ADVISORIES["follow_up"]

    return TraumaResult(
        requires_attention=requires_attention,
        positive_sections=positive_sections,
        advisory=advisory,
    )


# ======================================================================
# Weighted-Likert algorithm
# ======================================================================

def likert_value(question: LikertQuestion, index: int) -> int:
    """Map an answer index 0..4 to its score for this question."""
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= 4:
        raise InvalidAnswer(f"Question {question.id}: answer must be an integer 0-4")
    table = INVERTED_SCALE if question.inverted else DIRECT_SCALE
    return table[index]


def classify_risk(total: int, bands: Sequence[RiskBand]) -> RiskBand:
    """Closed-range lookup of ``total`` in ``bands``."""
    if total < 0:
        raise ValueError(f"Total score cannot be negative: {total}")
    for band in bands:
        if band.contains(total):
            return band
    raise ValueError(f"No risk band covers total {total}")


def score_psychosocial(
    questions: Sequence[LikertQuestion],
    answers: Mapping[int, int],
    bands: Sequence[RiskBand],
) -> PsychosocialResult:
    """Score and classify a psychosocial-risk questionnaire.

    Only ``questions`` (the resolved set) are scored; answers to other ids
    are ignored.

    Raises:
        IncompleteResponses: if any resolved question has no answer.
    """
    missing = _missing(questions, answers)
    if missing:
        raise IncompleteResponses(missing)

    total = 0
    category_scores: dict[str, int] = {}
    for q in questions:
        value = likert_value(q, answers[q.id])
        total += value
        category_scores[q.category] = category_scores.get(q.category, 0) + value

    band = classify_risk(total, bands)
    return PsychosocialResult(
        total_score=total,
        risk_level=band.id,
        category_scores=category_scores,
        requires_action=band.requires_action,
        advisory=band.description,
    )


# ======================================================================
# Dispatcher
# ======================================================================

class ScoringEngine:
    """Dispatches to the right algorithm using a loaded catalog."""

    def __init__(self, catalog: QuestionCatalog) -> None:
        self._catalog = catalog

    def score(
        self,
        assessment_type: AssessmentType,
        questions: Sequence[TraumaQuestion] | Sequence[LikertQuestion],
        answers: Mapping[int, bool] | Mapping[int, int],
    ) -> TraumaResult | PsychosocialResult:
        if AssessmentType(assessment_type) == AssessmentType.TRAUMA_SCREENING:
            return score_trauma(questions, answers, list(self._catalog.sections))
        return score_psychosocial(questions, answers, self._catalog.risk_bands)
