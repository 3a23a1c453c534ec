"""Assessment endpoints — the public, token-gated respondent flow.

Every endpoint is addressed by the opaque token from the link and returns
the next step of the state machine (``identity``, ``consent``,
``questionnaire``, or a terminal ``invalid``/``expired``/``already_used``/
``completed`` step).  No other authentication is involved: holding the
token and passing the identity challenge is the credential.
"""

from typing import Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from nom035_engine.flow import AssessmentFlow
from nom035_engine.models.question import ConditionalAttributes
from nom035_engine.models.session import AssessmentStep, IdentityClaim

from nom035_server.dependencies import get_db, get_flow

router = APIRouter(prefix="/assessment", tags=["assessment"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class ConsentRequest(BaseModel):
    """Body for POST /assessment/{token}/consent."""
    accepted: bool


class AnswersRequest(BaseModel):
    """Body for POST /assessment/{token}/answers.

    ``answers`` maps question id to ``true``/``false`` (trauma screening)
    or an answer index 0-4 (psychosocial risk).
    """
    answers: dict[int, Union[bool, int]]


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/{token}")
async def get_current_step(
    token: str,
    db: AsyncSession = Depends(get_db),
    flow: AssessmentFlow = Depends(get_flow),
) -> AssessmentStep:
    """Return the respondent's current step.  Read-only."""
    return await flow.get_current_step(db, token)


@router.post("/{token}/identity")
async def verify_identity(
    token: str,
    body: IdentityClaim,
    db: AsyncSession = Depends(get_db),
    flow: AssessmentFlow = Depends(get_flow),
) -> AssessmentStep:
    """Submit name, email, and phone.  401 on mismatch; retry is allowed."""
    return await flow.verify_identity(db, token, body)


@router.post("/{token}/consent")
async def answer_consent(
    token: str,
    body: ConsentRequest,
    db: AsyncSession = Depends(get_db),
    flow: AssessmentFlow = Depends(get_flow),
) -> AssessmentStep:
    """Accept the confidentiality notice, or decline and return to identity."""
    if body.accepted:
        return await flow.accept_consent(db, token)
    return await flow.decline_consent(db, token)


@router.post("/{token}/conditions")
async def set_conditions(
    token: str,
    body: ConditionalAttributes,
    db: AsyncSession = Depends(get_db),
    flow: AssessmentFlow = Depends(get_flow),
) -> AssessmentStep:
    """Answer the gating prompts (psychosocial risk only)."""
    return await flow.set_conditions(db, token, body)


@router.post("/{token}/answers")
async def record_answers(
    token: str,
    body: AnswersRequest,
    db: AsyncSession = Depends(get_db),
    flow: AssessmentFlow = Depends(get_flow),
) -> AssessmentStep:
    """Save a batch of draft answers; may be called any number of times."""
    return await flow.record_answers(db, token, body.answers)


@router.post("/{token}/restart")
async def restart_questionnaire(
    token: str,
    db: AsyncSession = Depends(get_db),
    flow: AssessmentFlow = Depends(get_flow),
) -> AssessmentStep:
    """Discard draft answers and show the confidentiality notice again."""
    return await flow.restart_questionnaire(db, token)


@router.post("/{token}/submit")
async def submit(
    token: str,
    db: AsyncSession = Depends(get_db),
    flow: AssessmentFlow = Depends(get_flow),
) -> AssessmentStep:
    """Score and commit the evaluation.

    422 lists unanswered questions; 409 means the link was used by a
    concurrent submission; 503 means nothing was saved and retry is safe.
    """
    return await flow.submit(db, token)
