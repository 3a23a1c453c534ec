"""Admin endpoints — token issuance, evaluation read-back and draft cleanup.

Protected by the ``ADMIN_API_KEY`` environment variable.  Every request
must include an ``X-Admin-Key`` header whose value matches the configured
key.  Returns 401 if missing, 403 if wrong.
"""

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from nom035_db.models.enums import AssessmentType, RiskLevel
from nom035_db.repository import AssessmentRepository
from nom035_engine.tokens import AccessTokenService

from nom035_server.dependencies import get_db, get_token_service, require_admin_key

router = APIRouter(prefix="/admin", tags=["admin"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class IssueTokenRequest(BaseModel):
    """Body for POST /admin/tokens."""
    worker_id: uuid.UUID
    assessment_type: AssessmentType
    # None → TOKEN_TTL_DAYS
    ttl_days: int | None = Field(None, gt=0)


class IssuedTokenResponse(BaseModel):
    token: str
    token_id: uuid.UUID
    worker_id: uuid.UUID
    assessment_type: AssessmentType
    expires_at: datetime
    link: str


class ResponseRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: int
    value: int
    section: str


class CategoryScoreRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: str
    score: int


class EvaluationDetail(BaseModel):
    """An evaluation with its raw answers and per-category sums."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    worker_id: uuid.UUID
    company_id: uuid.UUID
    assessment_type: AssessmentType
    catalog_version: str
    evaluation_period: str
    started_at: datetime
    completed_at: datetime
    requires_action: bool
    advisory: str
    total_score: int | None = None
    risk_level: RiskLevel | None = None
    requires_attention: bool | None = None
    positive_sections: list[str] | None = None
    responses: list[ResponseRow] = []
    category_scores: list[CategoryScoreRow] = []


class CleanupResult(BaseModel):
    """Response body for cleanup operations."""
    affected_rows: int
    action: str


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

_repo = AssessmentRepository()


@router.post("/tokens", status_code=201)
async def issue_token(
    body: IssueTokenRequest,
    db: AsyncSession = Depends(get_db),
    service: AccessTokenService = Depends(get_token_service),
    _admin: str = Depends(require_admin_key),
) -> IssuedTokenResponse:
    """Issue a one-time assessment link for a worker.  404 if the worker is unknown."""
    issued = await service.issue(
        db,
        worker_id=body.worker_id,
        assessment_type=body.assessment_type,
        ttl_days=body.ttl_days,
    )
    return IssuedTokenResponse(
        token=issued.token,
        token_id=issued.token_id,
        worker_id=issued.worker_id,
        assessment_type=issued.assessment_type,
        expires_at=issued.expires_at,
        link=issued.link,
    )


@router.post("/cleanup/progress")
async def cleanup_progress(
    request: Request,
    older_than_days: int | None = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    _admin: str = Depends(require_admin_key),
) -> CleanupResult:
    """Delete draft progress rows whose token is consumed or expired.

    Args:
        older_than_days: only rows not updated for this many days; 0 = all.
            Defaults to the server's PROGRESS_TTL_DAYS.
    """
    if older_than_days is None:
        older_than_days = request.app.state.settings.progress_ttl_days
    affected = await _repo.purge_stale_progress(db, older_than_days=older_than_days)
    return CleanupResult(affected_rows=affected, action="purge_stale_progress")


@router.get("/evaluations/{evaluation_id}")
async def get_evaluation(
    evaluation_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: str = Depends(require_admin_key),
) -> EvaluationDetail:
    """Read back a completed evaluation.  404 if it does not exist."""
    evaluation = await _repo.get_evaluation(db, evaluation_id)
    if evaluation is None:
        raise ValueError(f"Evaluation not found: {evaluation_id}")
    detail = EvaluationDetail.model_validate(evaluation)
    detail.responses = [
        ResponseRow.model_validate(r) for r in await _repo.list_responses(db, evaluation_id)
    ]
    detail.category_scores = [
        CategoryScoreRow.model_validate(r)
        for r in await _repo.list_category_scores(db, evaluation_id)
    ]
    return detail
