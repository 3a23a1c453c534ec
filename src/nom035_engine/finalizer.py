"""Submission finalizer — score, persist, and claim as one atomic unit.

Order inside the transaction boundary::

    create evaluation -> insert responses -> insert category scores
    -> claim token -> delete draft progress

The claim runs last and is itself a conditional UPDATE, so a lost race
raises inside the savepoint and every earlier write is rolled back with
it.  Scoring runs before the boundary; it is pure and cannot leave
partial state.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nom035_db.models.enums import AssessmentType
from nom035_db.models.progress import AssessmentProgress
from nom035_db.models.token import AccessToken
from nom035_db.models.worker import Worker
from nom035_db.repository import AssessmentRepository
from nom035_engine.errors import PersistenceFailure
from nom035_engine.models.question import LikertQuestion, TraumaQuestion
from nom035_engine.models.result import (
    EvaluationHandle,
    PsychosocialResult,
    TraumaResult,
)
from nom035_engine.scoring import ScoringEngine
from nom035_engine.tokens import TokenLifecycle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalizedSubmission:
    handle: EvaluationHandle
    result: TraumaResult | PsychosocialResult


def response_rows(
    questions: Sequence[TraumaQuestion] | Sequence[LikertQuestion],
    answers: Mapping[int, bool | int],
) -> list[dict]:
    """Build Response insert payloads; booleans are stored as 0/1."""
    rows = []
    for q in questions:
        value = answers[q.id]
        if isinstance(q, TraumaQuestion):
            rows.append({"question_id": q.id, "value": int(value), "section": q.section})
        else:
            rows.append({"question_id": q.id, "value": value, "section": q.category})
    return rows


class SubmissionFinalizer:
    """Turns a complete, validated answer set into exactly one evaluation."""

    def __init__(
        self,
        repo: AssessmentRepository,
        scoring: ScoringEngine,
        lifecycle: TokenLifecycle,
        catalog_version: str,
    ) -> None:
        self._repo = repo
        self._scoring = scoring
        self._lifecycle = lifecycle
        self._catalog_version = catalog_version

    async def finalize(
        self,
        db: AsyncSession,
        *,
        token: AccessToken,
        worker: Worker,
        progress: AssessmentProgress,
        questions: Sequence[TraumaQuestion] | Sequence[LikertQuestion],
        answers: Mapping[int, bool | int],
        now: datetime | None = None,
    ) -> FinalizedSubmission:
        """Score and persist the submission, claiming the token last.

        ``answers`` must already be complete for ``questions``.

        Raises:
            TokenAlreadyConsumed / TokenExpired / TokenNotFound: the claim
                lost; nothing was written.
            PersistenceFailure: a storage operation failed; nothing was
                written and the token is untouched.
        """
        now = now or datetime.now(timezone.utc)
        assessment_type = AssessmentType(token.assessment_type)
        result = self._scoring.score(assessment_type, questions, answers)

        try:
            async with self._repo.transaction(db):
                evaluation = await self._repo.create_evaluation(
                    db,
                    worker_id=worker.id,
                    company_id=token.company_id,
                    assessment_type=assessment_type,
                    catalog_version=self._catalog_version,
                    started_at=progress.consent_accepted_at or now,
                    completed_at=now,
                    requires_action=result.requires_action,
                    advisory=result.advisory,
                    **self._result_columns(result),
                )
                await self._repo.insert_responses(
                    db, evaluation.id, response_rows(questions, answers)
                )
                if isinstance(result, PsychosocialResult):
                    await self._repo.insert_category_scores(
                        db, evaluation.id, result.category_scores
                    )
                handle = await self._lifecycle.claim(
                    db, token.token, evaluation_id=evaluation.id, now=now
                )
                await self._repo.delete_progress(db, progress)
        except SQLAlchemyError as exc:
            logger.error("Finalizing token %s failed: %s", token.id, exc)
            raise PersistenceFailure("Could not save the evaluation; please retry") from exc

        logger.info(
            "Evaluation %s created (%s, %d responses)",
            handle.evaluation_id,
            assessment_type.value,
            len(questions),
        )
        return FinalizedSubmission(handle=handle, result=result)

    @staticmethod
    def _result_columns(result: TraumaResult | PsychosocialResult) -> dict:
        if isinstance(result, TraumaResult):
            return {
                "requires_attention": result.requires_attention,
                "positive_sections": list(result.positive_sections),
            }
        return {"total_score": result.total_score, "risk_level": result.risk_level}
