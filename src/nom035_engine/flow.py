"""AssessmentFlow — the respondent-facing state machine for ``/assessment/{token}``.

Stateless engine pattern: each call inspects the token, loads the worker
and the draft progress row, applies one transition, flushes, and returns
the next step.  No in-memory state is kept between calls.

The flow accepts an ``AsyncSession`` from the caller so that the caller
(typically a FastAPI endpoint) controls transaction boundaries.

State machine::

    Loading -> Invalid | Expired | AlreadyUsed          (terminal)
    Loading -> Identity -> Consent -> Questionnaire -> Completed
                   ^          |  ^          |
                   +-declined-+  +-restart--+

Terminal token states are resolved first, by every operation, and never
reach the scoring or finalizing code.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nom035_db.models.enums import AssessmentStage, AssessmentType
from nom035_db.models.progress import AssessmentProgress
from nom035_db.models.token import AccessToken
from nom035_db.models.worker import Worker
from nom035_db.repository import AssessmentRepository
from nom035_engine.catalog import QuestionCatalog
from nom035_engine.collector import ResponseCollector
from nom035_engine.consent import ConsentGate
from nom035_engine.constants import TERMINAL_MESSAGES
from nom035_engine.errors import InvalidTransition, PersistenceFailure
from nom035_engine.finalizer import SubmissionFinalizer
from nom035_engine.identity import IdentityVerifier
from nom035_engine.models.question import (
    ConditionalAttributes,
    LikertQuestion,
    TraumaQuestion,
)
from nom035_engine.models.session import (
    AssessmentStep,
    ConditionalPrompt,
    ConsentStep,
    IdentityClaim,
    IdentityStep,
    QuestionnaireStep,
    QuestionPayload,
    TerminalStep,
    TokenStatus,
)
from nom035_engine.notice import NoticeRenderer
from nom035_engine.resolver import QuestionSetResolver
from nom035_engine.scoring import ScoringEngine
from nom035_engine.tokens import TokenLifecycle

logger = logging.getLogger(__name__)

# Token status -> terminal step type
_TERMINAL_FOR_STATUS: dict[TokenStatus, str] = {
    TokenStatus.NOT_FOUND: "invalid",
    TokenStatus.EXPIRED: "expired",
    TokenStatus.CONSUMED: "already_used",
}


def terminal_step(kind: str, **extra) -> TerminalStep:
    title, message = TERMINAL_MESSAGES[kind]
    return TerminalStep(type=kind, title=title, message=message, **extra)


@asynccontextmanager
async def _persistence_guard(token_id) -> AsyncIterator[None]:
    """Translate storage errors raised by the enclosed writes."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Storage failure for token %s: %s", token_id, exc)
        raise PersistenceFailure("Could not save your progress; please retry") from exc


@dataclass
class _TokenContext:
    """Everything one request needs about a valid token."""

    token: AccessToken
    worker: Worker
    progress: AssessmentProgress | None

    @property
    def assessment_type(self) -> AssessmentType:
        return AssessmentType(self.token.assessment_type)

    @property
    def stage(self) -> AssessmentStage:
        if self.progress is None:
            return AssessmentStage.IDENTITY
        return AssessmentStage(self.progress.stage)


class AssessmentFlow:
    """Drives one respondent from the link to a committed evaluation.

    Args:
        catalog: a loaded :class:`QuestionCatalog`
        repo: repository collaborator; defaults to :class:`AssessmentRepository`
        renderer: optional notice renderer override
    """

    def __init__(
        self,
        catalog: QuestionCatalog,
        *,
        repo: AssessmentRepository | None = None,
        renderer: NoticeRenderer | None = None,
    ) -> None:
        self._catalog = catalog
        self._repo = repo or AssessmentRepository()
        self._resolver = QuestionSetResolver(catalog)
        self._scoring = ScoringEngine(catalog)
        self._lifecycle = TokenLifecycle(self._repo)
        self._verifier = IdentityVerifier()
        self._consent = ConsentGate(self._repo, renderer)
        self._collector = ResponseCollector()
        self._finalizer = SubmissionFinalizer(
            self._repo, self._scoring, self._lifecycle, catalog.version
        )

    # ==================================================================
    # Read
    # ==================================================================

    async def get_current_step(self, db: AsyncSession, token: str) -> AssessmentStep:
        """Return the step the respondent is on.  Read-only."""
        ctx = await self._load(db, token)
        if isinstance(ctx, TerminalStep):
            return ctx
        return self._step_for(ctx)

    # ==================================================================
    # Identity
    # ==================================================================

    async def verify_identity(
        self, db: AsyncSession, token: str, claim: IdentityClaim
    ) -> AssessmentStep:
        """Run the identity challenge; on success move to the consent stage.

        On success the worker's privacy-notice flag is set (first time
        only).  On failure nothing changes and ``IdentityMismatch`` is
        raised; retries are unlimited.
        """
        ctx = await self._load(db, token, lock=True)
        if isinstance(ctx, TerminalStep):
            return ctx
        self._require_stage(ctx, AssessmentStage.IDENTITY, AssessmentStage.CONSENT)

        self._verifier.verify(claim, ctx.worker)

        now = datetime.now(timezone.utc)
        async with _persistence_guard(ctx.token.id):
            await self._repo.mark_worker_consented(db, ctx.worker, now)
            ctx.progress = await self._repo.start_progress(
                db, ctx.token.id, verified_at=now
            )
        logger.info("Identity verified for token %s", ctx.token.id)
        return self._step_for(ctx)

    # ==================================================================
    # Consent
    # ==================================================================

    async def accept_consent(self, db: AsyncSession, token: str) -> AssessmentStep:
        ctx = await self._load(db, token, lock=True)
        if isinstance(ctx, TerminalStep):
            return ctx
        self._require_stage(ctx, AssessmentStage.CONSENT, AssessmentStage.QUESTIONNAIRE)
        async with _persistence_guard(ctx.token.id):
            ctx.progress = await self._consent.accept(db, ctx.progress)
        return self._step_for(ctx)

    async def decline_consent(self, db: AsyncSession, token: str) -> AssessmentStep:
        """Back to the identity stage without consuming the token."""
        ctx = await self._load(db, token, lock=True)
        if isinstance(ctx, TerminalStep):
            return ctx
        self._require_stage(ctx, AssessmentStage.CONSENT)
        async with _persistence_guard(ctx.token.id):
            ctx.progress = await self._consent.decline(db, ctx.progress)
        return self._step_for(ctx)

    # ==================================================================
    # Questionnaire
    # ==================================================================

    async def set_conditions(
        self, db: AsyncSession, token: str, conditions: ConditionalAttributes
    ) -> AssessmentStep:
        """Store the gating attributes (psychosocial risk only).

        Changing them later is allowed; answers to questions that drop out
        stay in the draft but are ignored at submission.
        """
        ctx = await self._load(db, token, lock=True)
        if isinstance(ctx, TerminalStep):
            return ctx
        self._require_stage(ctx, AssessmentStage.QUESTIONNAIRE)
        if ctx.assessment_type != AssessmentType.PSYCHOSOCIAL_RISK:
            raise InvalidTransition("This questionnaire has no conditional questions")
        async with _persistence_guard(ctx.token.id):
            ctx.progress = await self._repo.save_conditions(
                db, ctx.progress, conditions.model_dump()
            )
        return self._step_for(ctx)

    async def record_answers(
        self, db: AsyncSession, token: str, answers: Mapping[Any, Any]
    ) -> AssessmentStep:
        """Validate and merge a batch of answers into the draft."""
        ctx = await self._load(db, token, lock=True)
        if isinstance(ctx, TerminalStep):
            return ctx
        self._require_stage(ctx, AssessmentStage.QUESTIONNAIRE)
        self._require_conditions(ctx)

        validated = self._collector.validate(self._questions(ctx), answers)
        async with _persistence_guard(ctx.token.id):
            ctx.progress = await self._repo.record_answers(db, ctx.progress, validated)
        return self._step_for(ctx)

    async def restart_questionnaire(self, db: AsyncSession, token: str) -> AssessmentStep:
        """Discard the draft and show the confidentiality notice again."""
        ctx = await self._load(db, token, lock=True)
        if isinstance(ctx, TerminalStep):
            return ctx
        self._require_stage(ctx, AssessmentStage.QUESTIONNAIRE)
        async with _persistence_guard(ctx.token.id):
            await self._repo.clear_answers(db, ctx.progress)
            ctx.progress = await self._repo.set_stage(
                db, ctx.progress, AssessmentStage.CONSENT
            )
        return self._step_for(ctx)

    # ==================================================================
    # Submission
    # ==================================================================

    async def submit(self, db: AsyncSession, token: str) -> AssessmentStep:
        """Score and commit the evaluation; the token is consumed.

        Raises:
            IncompleteResponses: applicable questions are unanswered.
            TokenAlreadyConsumed / TokenExpired: the claim lost a race.
            PersistenceFailure: storage failed; nothing was written.
        """
        ctx = await self._load(db, token, lock=True)
        if isinstance(ctx, TerminalStep):
            return ctx
        self._require_stage(ctx, AssessmentStage.QUESTIONNAIRE)
        self._require_conditions(ctx)
        progress = ctx.progress
        if progress.identity_verified_at is None or progress.consent_accepted_at is None:
            raise InvalidTransition("Identity and consent are required before submitting")

        questions = self._questions(ctx)
        draft = self._collector.from_storage(progress.answers)
        answers = self._collector.require_complete(questions, draft)

        finalized = await self._finalizer.finalize(
            db,
            token=ctx.token,
            worker=ctx.worker,
            progress=progress,
            questions=questions,
            answers=answers,
        )
        return terminal_step("completed", evaluation_id=finalized.handle.evaluation_id)

    # ==================================================================
    # Internal helpers
    # ==================================================================

    async def _load(
        self, db: AsyncSession, token: str, *, lock: bool = False
    ) -> _TokenContext | TerminalStep:
        """Inspect the token and load the worker and draft progress.

        Returns a terminal step for any token that cannot be used, including
        one whose bound worker no longer exists.  ``lock`` row-locks the
        draft for operations that write it.
        """
        try:
            inspection = await self._lifecycle.inspect(db, token)
            if inspection.status != TokenStatus.VALID:
                return terminal_step(_TERMINAL_FOR_STATUS[inspection.status])
            row = inspection.row
            worker = await self._repo.find_worker(db, row.worker_id)
            if worker is None:
                logger.warning("Token %s is bound to a missing worker", row.id)
                return terminal_step("invalid")
            progress = await self._repo.get_progress(db, row.id, for_update=lock)
        except SQLAlchemyError as exc:
            logger.error("Loading assessment token failed: %s", exc)
            raise PersistenceFailure("Could not load the assessment; please retry") from exc
        return _TokenContext(token=row, worker=worker, progress=progress)

    @staticmethod
    def _require_stage(ctx: _TokenContext, *allowed: AssessmentStage) -> None:
        if ctx.stage not in allowed:
            raise InvalidTransition(
                f"Operation not allowed at stage '{ctx.stage.value}'"
            )

    @staticmethod
    def _require_conditions(ctx: _TokenContext) -> None:
        if (
            ctx.assessment_type == AssessmentType.PSYCHOSOCIAL_RISK
            and ctx.progress.conditions is None
        ):
            raise InvalidTransition("Conditional questions must be answered first")

    def _conditions(self, ctx: _TokenContext) -> ConditionalAttributes | None:
        if ctx.progress is None or ctx.progress.conditions is None:
            return None
        return ConditionalAttributes(**ctx.progress.conditions)

    def _questions(
        self, ctx: _TokenContext
    ) -> list[TraumaQuestion] | list[LikertQuestion]:
        return self._resolver.resolve(ctx.assessment_type, self._conditions(ctx))

    def _step_for(self, ctx: _TokenContext) -> AssessmentStep:
        """Build the step for the context's current stage."""
        assessment_type = ctx.assessment_type
        title = self._catalog.title_for(assessment_type)
        stage = ctx.stage

        if stage == AssessmentStage.IDENTITY:
            return IdentityStep(assessment_type=assessment_type, assessment_title=title)

        if stage == AssessmentStage.CONSENT:
            return ConsentStep(
                assessment_type=assessment_type,
                assessment_title=title,
                notice=self._consent.notice(
                    worker_name=ctx.worker.full_name, assessment_title=title
                ),
            )

        return self._questionnaire_step(ctx, title)

    def _questionnaire_step(self, ctx: _TokenContext, title: str) -> QuestionnaireStep:
        assessment_type = ctx.assessment_type
        draft = self._collector.from_storage(ctx.progress.answers)

        if assessment_type == AssessmentType.TRAUMA_SCREENING:
            questions = self._questions(ctx)
            return QuestionnaireStep(
                assessment_type=assessment_type,
                assessment_title=title,
                answer_labels=["no", "yes"],
                questions=[
                    QuestionPayload(
                        id=q.id, text=q.text, answer_kind=q.answer_kind, section=q.section
                    )
                    for q in questions
                ],
                answers=self._collector.applicable(questions, draft),
                missing=self._collector.missing(questions, draft),
            )

        prompts = [
            ConditionalPrompt(attribute=rng.attribute, prompt=rng.prompt_es)
            for rng in self._catalog.conditional_ranges
        ]
        conditions = self._conditions(ctx)
        if conditions is None:
            # The gating prompts come before any Likert question
            return QuestionnaireStep(
                assessment_type=assessment_type,
                assessment_title=title,
                conditional_prompts=prompts,
                answer_labels=list(self._catalog.likert_labels),
                questions=[],
                answers={},
                missing=[],
            )

        questions = self._questions(ctx)
        return QuestionnaireStep(
            assessment_type=assessment_type,
            assessment_title=title,
            conditional_prompts=prompts,
            conditions=conditions,
            answer_labels=list(self._catalog.likert_labels),
            questions=[
                QuestionPayload(
                    id=q.id, text=q.text, answer_kind=q.answer_kind, category=q.category
                )
                for q in questions
            ],
            answers=self._collector.applicable(questions, draft),
            missing=self._collector.missing(questions, draft),
        )
