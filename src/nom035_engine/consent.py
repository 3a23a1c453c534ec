"""Consent gate — the confidentiality notice must be accepted before any question.

Accepting is idempotent and the notice can be shown again: backing out of
the questionnaire returns the respondent to the consent stage, and
declining returns them to the identity stage.  Neither touches the token.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from nom035_db.models.enums import AssessmentStage
from nom035_db.models.progress import AssessmentProgress
from nom035_db.repository import AssessmentRepository
from nom035_engine.notice import NoticeRenderer

logger = logging.getLogger(__name__)


class ConsentGate:
    """Renders the notice and records acceptance on the progress row."""

    def __init__(
        self, repo: AssessmentRepository, renderer: NoticeRenderer | None = None
    ) -> None:
        self._repo = repo
        self._renderer = renderer or NoticeRenderer()

    def notice(self, *, worker_name: str, assessment_title: str) -> str:
        return self._renderer.render_notice(
            worker_name=worker_name, assessment_title=assessment_title
        )

    async def accept(
        self,
        db: AsyncSession,
        progress: AssessmentProgress,
        *,
        now: datetime | None = None,
    ) -> AssessmentProgress:
        """Move to the questionnaire stage, stamping the acceptance time.

        A repeated accept while already in the questionnaire is a no-op.
        """
        if progress.stage == AssessmentStage.QUESTIONNAIRE:
            return progress
        now = now or datetime.now(timezone.utc)
        logger.info("Consent accepted for token %s", progress.token_id)
        return await self._repo.set_stage(
            db, progress, AssessmentStage.QUESTIONNAIRE, consent_accepted_at=now
        )

    async def decline(
        self, db: AsyncSession, progress: AssessmentProgress
    ) -> AssessmentProgress:
        """Return to the identity stage; the token stays valid."""
        logger.info("Consent declined for token %s", progress.token_id)
        return await self._repo.set_stage(db, progress, AssessmentStage.IDENTITY)
