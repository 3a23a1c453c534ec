"""Response collector — validates answers and enforces completeness.

Draft answers live in the progress row's ``answers`` JSONB, keyed by
``str(question_id)``.  This module converts between that storage shape and
``{int: value}`` maps, validates new answers against the resolved
question set, and refuses to hand an incomplete set to scoring.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from nom035_engine.errors import IncompleteResponses, InvalidAnswer
from nom035_engine.models.question import LikertQuestion, TraumaQuestion

AnswerValue = bool | int


def _coerce_qid(raw: Any) -> int:
    """Question ids arrive as ints or, from JSON object keys, as strings."""
    if isinstance(raw, bool):
        raise InvalidAnswer(f"Invalid question id: {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidAnswer(f"Invalid question id: {raw!r}") from None


def _check_value(question: TraumaQuestion | LikertQuestion, value: Any) -> AnswerValue:
    if isinstance(question, TraumaQuestion):
        if not isinstance(value, bool):
            raise InvalidAnswer(f"Question {question.id}: answer must be true or false")
        return value
    # bool is an int subclass; reject it explicitly for Likert answers
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 4:
        raise InvalidAnswer(f"Question {question.id}: answer must be an integer 0-4")
    return value


class ResponseCollector:
    """Stateless helpers over a resolved question list."""

    def validate(
        self,
        questions: Sequence[TraumaQuestion] | Sequence[LikertQuestion],
        answers: Mapping[Any, Any],
    ) -> dict[int, AnswerValue]:
        """Validate a batch of new answers.

        Raises:
            InvalidAnswer: unknown or non-applicable question id, or a value
                of the wrong type/range.  Nothing is accepted if any fails.
        """
        if not answers:
            raise InvalidAnswer("No answers submitted")
        by_id = {q.id: q for q in questions}
        validated: dict[int, AnswerValue] = {}
        for raw_qid, value in answers.items():
            qid = _coerce_qid(raw_qid)
            question = by_id.get(qid)
            if question is None:
                raise InvalidAnswer(f"Question {qid} is not part of this questionnaire")
            validated[qid] = _check_value(question, value)
        return validated

    @staticmethod
    def from_storage(stored: Mapping[str, Any] | None) -> dict[int, AnswerValue]:
        """Convert the JSONB draft ``{"12": {"value": 3, ...}}`` to ``{12: 3}``."""
        return {int(k): v["value"] for k, v in (stored or {}).items()}

    def applicable(
        self,
        questions: Sequence[TraumaQuestion] | Sequence[LikertQuestion],
        draft: Mapping[int, AnswerValue],
    ) -> dict[int, AnswerValue]:
        """Restrict a draft to the resolved questions, in question order."""
        return {q.id: draft[q.id] for q in questions if q.id in draft}

    def missing(
        self,
        questions: Sequence[TraumaQuestion] | Sequence[LikertQuestion],
        draft: Mapping[int, AnswerValue],
    ) -> list[int]:
        return [q.id for q in questions if q.id not in draft]

    def require_complete(
        self,
        questions: Sequence[TraumaQuestion] | Sequence[LikertQuestion],
        draft: Mapping[int, AnswerValue],
    ) -> dict[int, AnswerValue]:
        """Return the applicable answers, or raise ``IncompleteResponses``.

        Draft answers to questions that are no longer applicable (e.g.
        after a conditional attribute was switched off) are dropped.
        """
        missing = self.missing(questions, draft)
        if missing:
            raise IncompleteResponses(missing)
        return self.applicable(questions, draft)
