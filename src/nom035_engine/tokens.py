"""Token lifecycle — inspect, claim, and issue one-time assessment links.

States::

    Issued -> Valid     while now < expires_at and not consumed
    Valid  -> Consumed  via claim (terminal)
    Valid  -> Expired   once now >= expires_at (terminal)

A consumed token reports Consumed even after its expiry.  ``claim`` is a
single conditional UPDATE in the repository, so concurrent claims on the
same token produce exactly one success.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from nom035_db.models.enums import AssessmentType
from nom035_db.models.token import AccessToken
from nom035_db.repository import AssessmentRepository
from nom035_engine.constants import TOKEN_TTL_DAYS
from nom035_engine.errors import (
    TokenAlreadyConsumed,
    TokenExpired,
    TokenNotFound,
    WorkerNotFound,
)
from nom035_engine.models.result import EvaluationHandle
from nom035_engine.models.session import TokenStatus

logger = logging.getLogger(__name__)

# Bytes of entropy in a generated token string
_TOKEN_BYTES = 32


def token_status(row: AccessToken | None, now: datetime) -> TokenStatus:
    """Classify a token row at ``now``; pure."""
    if row is None:
        return TokenStatus.NOT_FOUND
    if row.consumed:
        return TokenStatus.CONSUMED
    if now >= row.expires_at:
        return TokenStatus.EXPIRED
    return TokenStatus.VALID


def raise_for_status(status: TokenStatus) -> None:
    """Raise the token error matching a non-valid status."""
    if status == TokenStatus.NOT_FOUND:
        raise TokenNotFound("Assessment link not found")
    if status == TokenStatus.CONSUMED:
        raise TokenAlreadyConsumed("Assessment link already used")
    if status == TokenStatus.EXPIRED:
        raise TokenExpired("Assessment link expired")


@dataclass(frozen=True)
class TokenInspection:
    status: TokenStatus
    row: AccessToken | None


class TokenLifecycle:
    """Read and claim access tokens through the repository."""

    def __init__(self, repo: AssessmentRepository) -> None:
        self._repo = repo

    async def inspect(
        self, db: AsyncSession, token: str, *, now: datetime | None = None
    ) -> TokenInspection:
        """Pure read: look the token up and classify it."""
        now = now or datetime.now(timezone.utc)
        row = await self._repo.find_token(db, token)
        return TokenInspection(status=token_status(row, now), row=row)

    async def claim(
        self,
        db: AsyncSession,
        token: str,
        *,
        evaluation_id: uuid.UUID,
        now: datetime | None = None,
    ) -> EvaluationHandle:
        """Consume the token for ``evaluation_id``.

        Raises:
            TokenNotFound / TokenExpired / TokenAlreadyConsumed: the claim
                lost; the specific error is chosen by re-reading the row.
        """
        now = now or datetime.now(timezone.utc)
        inspection = await self.inspect(db, token, now=now)
        raise_for_status(inspection.status)

        row = inspection.row
        won = await self._repo.claim_token(
            db, row.id, evaluation_id=evaluation_id, now=now
        )
        if not won:
            # Someone else changed the row between our read and the update
            after = await self.inspect(db, token, now=now)
            logger.info("Token %s claim lost (now %s)", row.id, after.status.value)
            raise_for_status(after.status)
            raise TokenAlreadyConsumed("Assessment link already used")

        logger.info("Token %s claimed by evaluation %s", row.id, evaluation_id)
        return EvaluationHandle(evaluation_id=evaluation_id, token_id=row.id, consumed_at=now)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    token_id: uuid.UUID
    worker_id: uuid.UUID
    assessment_type: AssessmentType
    expires_at: datetime

    @property
    def link(self) -> str:
        return f"/assessment/{self.token}"


class AccessTokenService:
    """Issues new assessment links for workers."""

    def __init__(self, repo: AssessmentRepository | None = None) -> None:
        self._repo = repo or AssessmentRepository()

    async def issue(
        self,
        db: AsyncSession,
        *,
        worker_id: uuid.UUID,
        assessment_type: AssessmentType,
        ttl_days: int | None = None,
        now: datetime | None = None,
    ) -> IssuedToken:
        """Create an unconsumed token bound to the worker and their company.

        The caller must ``await db.commit()`` to persist.
        """
        worker = await self._repo.find_worker(db, worker_id)
        if worker is None:
            raise WorkerNotFound(f"Worker {worker_id} not found")

        now = now or datetime.now(timezone.utc)
        days = TOKEN_TTL_DAYS if ttl_days is None else ttl_days
        if days <= 0:
            raise ValueError("ttl_days must be positive")
        row = await self._repo.issue_token(
            db,
            token=secrets.token_urlsafe(_TOKEN_BYTES),
            worker_id=worker.id,
            company_id=worker.company_id,
            assessment_type=AssessmentType(assessment_type),
            expires_at=now + timedelta(days=days),
        )
        logger.info(
            "Issued %s token %s for worker %s (expires %s)",
            AssessmentType(assessment_type).value,
            row.id,
            worker.id,
            row.expires_at.isoformat(),
        )
        return IssuedToken(
            token=row.token,
            token_id=row.id,
            worker_id=worker.id,
            assessment_type=AssessmentType(assessment_type),
            expires_at=row.expires_at,
        )
