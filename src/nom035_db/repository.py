"""Async repository for tokens, workers, progress, and evaluations.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries.  Methods ``flush()`` but never ``commit()``; the
FastAPI ``get_db`` dependency (or the cleanup CLI) commits.

The repository avoids business-logic validation; that belongs in
``nom035_engine``.  It *does* provide the two guarantees the engine cannot
provide on its own:

  - ``claim_token`` is a single conditional UPDATE evaluated by the
    database, so concurrent claims on one token yield exactly one winner.
  - ``transaction`` opens a SAVEPOINT so a group of writes is visible
    all-or-nothing.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nom035_db.models.enums import AssessmentStage, AssessmentType, RiskLevel
from nom035_db.models.evaluation import CategoryScore, Evaluation, Response
from nom035_db.models.progress import AssessmentProgress
from nom035_db.models.token import AccessToken
from nom035_db.models.worker import Worker


class AssessmentRepository:
    """Async read/write operations backing the assessment flow."""

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self, db: AsyncSession) -> AsyncIterator[None]:
        """Run the enclosed writes inside a SAVEPOINT.

        On any exception the savepoint is rolled back and the exception
        propagates; the outer transaction is left untouched.
        """
        async with db.begin_nested():
            yield

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    async def issue_token(
        self,
        db: AsyncSession,
        *,
        token: str,
        worker_id: uuid.UUID,
        company_id: uuid.UUID,
        assessment_type: AssessmentType,
        expires_at: datetime,
    ) -> AccessToken:
        """Insert a new, unconsumed token row and return it."""
        row = AccessToken(
            token=token,
            worker_id=worker_id,
            company_id=company_id,
            assessment_type=assessment_type,
            expires_at=expires_at,
            consumed=False,
        )
        db.add(row)
        await db.flush()
        return row

    async def find_token(self, db: AsyncSession, token: str) -> AccessToken | None:
        """Fetch a token row by its opaque link string.

        Always reloads from the database so a claim made by a concurrent
        transaction is visible on an already-loaded row.
        """
        stmt = (
            select(AccessToken)
            .where(AccessToken.token == token)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def claim_token(
        self,
        db: AsyncSession,
        token_id: uuid.UUID,
        *,
        evaluation_id: uuid.UUID,
        now: datetime,
    ) -> bool:
        """Consume the token iff it is currently valid.

        Issued as ``UPDATE ... WHERE NOT consumed AND expires_at > now
        RETURNING id`` so the check and the write are one statement.
        Returns True if this call consumed the token, False otherwise.
        """
        stmt = (
            update(AccessToken)
            .where(
                AccessToken.id == token_id,
                AccessToken.consumed.is_(False),
                AccessToken.expires_at > now,
            )
            .values(consumed=True, consumed_at=now, evaluation_id=evaluation_id)
            .returning(AccessToken.id)
            .execution_options(synchronize_session="fetch")
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    async def find_worker(self, db: AsyncSession, worker_id: uuid.UUID) -> Worker | None:
        """Fetch a worker by primary key."""
        return await db.get(Worker, worker_id)

    async def mark_worker_consented(
        self, db: AsyncSession, worker: Worker, timestamp: datetime
    ) -> Worker:
        """Set the privacy-notice flag the first time; later calls are no-ops."""
        if not worker.accepted_privacy_notice:
            worker.accepted_privacy_notice = True
            worker.privacy_notice_accepted_at = timestamp
            await db.flush()
        return worker

    # ------------------------------------------------------------------
    # Progress (draft state between requests)
    # ------------------------------------------------------------------

    async def get_progress(
        self, db: AsyncSession, token_id: uuid.UUID, *, for_update: bool = False
    ) -> AssessmentProgress | None:
        """Fetch the draft progress row for a token, if one exists.

        ``for_update`` takes a row lock (``SELECT ... FOR UPDATE``) held until
        the request transaction ends, so concurrent writes to one draft
        apply one after another instead of overwriting each other.
        """
        if not for_update:
            return await db.get(AssessmentProgress, token_id)
        return await db.get(
            AssessmentProgress, token_id, with_for_update=True, populate_existing=True
        )

    async def start_progress(
        self, db: AsyncSession, token_id: uuid.UUID, *, verified_at: datetime
    ) -> AssessmentProgress:
        """Create (or re-open) the progress row after a successful identity check.

        Draft answers survive a re-verification; the stage always moves
        to ``consent`` so the notice is shown again.
        """
        row = await self.get_progress(db, token_id, for_update=True)
        if row is None:
            row = AssessmentProgress(token_id=token_id, answers={})
            db.add(row)
        row.stage = AssessmentStage.CONSENT
        row.identity_verified_at = verified_at
        row.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return row

    async def set_stage(
        self,
        db: AsyncSession,
        progress: AssessmentProgress,
        stage: AssessmentStage,
        *,
        consent_accepted_at: datetime | None = None,
    ) -> AssessmentProgress:
        """Move the progress row to ``stage``.

        ``consent_accepted_at`` is written when given; moving back to the
        identity stage clears it so the notice must be accepted again.
        """
        progress.stage = stage
        if consent_accepted_at is not None:
            progress.consent_accepted_at = consent_accepted_at
        elif stage == AssessmentStage.IDENTITY:
            progress.consent_accepted_at = None
        progress.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return progress

    async def save_conditions(
        self, db: AsyncSession, progress: AssessmentProgress, conditions: dict[str, bool]
    ) -> AssessmentProgress:
        """Store the respondent's conditional attributes."""
        progress.conditions = dict(conditions)
        progress.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return progress

    async def record_answers(
        self, db: AsyncSession, progress: AssessmentProgress, answers: dict[int, Any]
    ) -> AssessmentProgress:
        """Merge answers keyed by question id into the draft.

        Each entry stores the value and a timestamp.  JSONB keys are
        strings, so question ids are stored as ``str(qid)``.
        """
        now = datetime.now(timezone.utc).isoformat()
        # Shallow-copy to ensure SQLAlchemy detects the mutation
        updated = dict(progress.answers or {})
        for qid, value in answers.items():
            updated[str(qid)] = {"value": value, "answered_at": now}
        progress.answers = updated
        progress.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return progress

    async def clear_answers(
        self, db: AsyncSession, progress: AssessmentProgress
    ) -> AssessmentProgress:
        """Discard all draft answers and conditional attributes."""
        progress.answers = {}
        progress.conditions = None
        progress.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return progress

    async def delete_progress(self, db: AsyncSession, progress: AssessmentProgress) -> None:
        """Remove the draft row (called once its evaluation is committed)."""
        await db.delete(progress)
        await db.flush()

    async def purge_stale_progress(
        self, db: AsyncSession, *, older_than_days: int = 0
    ) -> int:
        """Delete draft rows whose token is consumed or expired.

        ``older_than_days`` additionally restricts to rows not touched for
        that many days; 0 means no age filter.  Returns the row count.
        """
        now = datetime.now(timezone.utc)
        dead_tokens = select(AccessToken.id).where(
            or_(AccessToken.consumed.is_(True), AccessToken.expires_at <= now)
        )
        stmt = delete(AssessmentProgress).where(
            AssessmentProgress.token_id.in_(dead_tokens)
        )
        if older_than_days > 0:
            cutoff = now - timedelta(days=older_than_days)
            stmt = stmt.where(AssessmentProgress.updated_at < cutoff)
        result = await db.execute(stmt)
        await db.flush()
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Evaluations
    # ------------------------------------------------------------------

    async def create_evaluation(
        self,
        db: AsyncSession,
        *,
        worker_id: uuid.UUID,
        company_id: uuid.UUID,
        assessment_type: AssessmentType,
        catalog_version: str,
        started_at: datetime,
        completed_at: datetime,
        requires_action: bool,
        advisory: str,
        total_score: int | None = None,
        risk_level: RiskLevel | None = None,
        requires_attention: bool | None = None,
        positive_sections: list[str] | None = None,
    ) -> Evaluation:
        """Insert an evaluation row and return it with its id populated."""
        row = Evaluation(
            worker_id=worker_id,
            company_id=company_id,
            assessment_type=assessment_type,
            catalog_version=catalog_version,
            evaluation_period=str(completed_at.year),
            started_at=started_at,
            completed_at=completed_at,
            requires_action=requires_action,
            advisory=advisory,
            total_score=total_score,
            risk_level=risk_level,
            requires_attention=requires_attention,
            positive_sections=positive_sections,
        )
        db.add(row)
        await db.flush()
        return row

    async def insert_responses(
        self, db: AsyncSession, evaluation_id: uuid.UUID, responses: list[dict[str, Any]]
    ) -> list[Response]:
        """Insert raw answers; each dict has ``question_id``, ``value``, ``section``."""
        rows = [Response(evaluation_id=evaluation_id, **r) for r in responses]
        db.add_all(rows)
        await db.flush()
        return rows

    async def insert_category_scores(
        self, db: AsyncSession, evaluation_id: uuid.UUID, scores: dict[str, int]
    ) -> list[CategoryScore]:
        """Insert one CategoryScore row per category."""
        rows = [
            CategoryScore(evaluation_id=evaluation_id, category=category, score=score)
            for category, score in scores.items()
        ]
        db.add_all(rows)
        await db.flush()
        return rows

    async def get_evaluation(
        self, db: AsyncSession, evaluation_id: uuid.UUID
    ) -> Evaluation | None:
        """Fetch an evaluation by primary key."""
        return await db.get(Evaluation, evaluation_id)

    async def list_responses(
        self, db: AsyncSession, evaluation_id: uuid.UUID
    ) -> list[Response]:
        """Raw answers of an evaluation, by question id."""
        stmt = (
            select(Response)
            .where(Response.evaluation_id == evaluation_id)
            .order_by(Response.question_id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_category_scores(
        self, db: AsyncSession, evaluation_id: uuid.UUID
    ) -> list[CategoryScore]:
        """Per-category sums of an evaluation (empty for trauma screening)."""
        stmt = select(CategoryScore).where(CategoryScore.evaluation_id == evaluation_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())
