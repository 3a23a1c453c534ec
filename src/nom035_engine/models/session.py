"""Step models — the contract between the assessment flow and API callers.

These are what ``AssessmentFlow`` returns for every operation.  They are
decoupled from the ORM models in ``nom035_db`` so that respondents never
see database internals.

Step types (the respondent-facing state machine):
  - IdentityStep: ask for name, email, and phone
  - ConsentStep: show the confidentiality notice
  - QuestionnaireStep: show the applicable questions and draft answers
  - TerminalStep: invalid / expired / already_used / completed

The ``AssessmentStep`` union covers all of them so callers can dispatch
on ``type``.
"""

import enum
import uuid
from typing import Literal, Optional, Union

from pydantic import BaseModel

from nom035_db.models.enums import AssessmentType
from nom035_engine.models.question import ConditionalAttributes


class TokenStatus(str, enum.Enum):
    """Result of inspecting an access token."""

    VALID = "valid"
    EXPIRED = "expired"
    CONSUMED = "consumed"
    NOT_FOUND = "not_found"


class IdentityClaim(BaseModel):
    """What the respondent types into the identity challenge."""

    name: str
    email: str
    phone: str


class QuestionPayload(BaseModel):
    """Flattened question for API consumers."""

    id: int
    text: str
    answer_kind: Literal["boolean", "likert"]
    # Trauma-screening section label
    section: Optional[str] = None
    # Psychosocial-risk category id
    category: Optional[str] = None


class ConditionalPrompt(BaseModel):
    """A yes/no prompt that sets one ConditionalAttributes flag."""

    attribute: str
    prompt: str


class IdentityStep(BaseModel):
    type: Literal["identity"] = "identity"
    assessment_type: AssessmentType
    assessment_title: str


class ConsentStep(BaseModel):
    type: Literal["consent"] = "consent"
    assessment_type: AssessmentType
    assessment_title: str
    # Rendered confidentiality notice
    notice: str


class QuestionnaireStep(BaseModel):
    """Flow step: answer the applicable questions.

    For psychosocial-risk, ``conditions`` is None until the respondent
    answers ``conditional_prompts``; ``questions`` is empty until then.
    """

    type: Literal["questionnaire"] = "questionnaire"
    assessment_type: AssessmentType
    assessment_title: str
    conditional_prompts: list[ConditionalPrompt] = []
    conditions: Optional[ConditionalAttributes] = None
    answer_labels: list[str] = []
    questions: list[QuestionPayload]
    answers: dict[int, Union[bool, int]]
    missing: list[int]


class TerminalStep(BaseModel):
    """Flow step: read-only end state; no further transitions for the token."""

    type: Literal["invalid", "expired", "already_used", "completed"]
    title: str
    message: str
    evaluation_id: Optional[uuid.UUID] = None


AssessmentStep = IdentityStep | ConsentStep | QuestionnaireStep | TerminalStep
