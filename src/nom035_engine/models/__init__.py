"""Typed models for the assessment engine.

Re-exports the question, reference-data, result, and step models so that
callers can import from ``nom035_engine.models`` directly.
"""

from .question import (
    BaseQuestion,
    ConditionalAttributes,
    LikertQuestion,
    Question,
    TraumaQuestion,
)
from .result import (
    EvaluationHandle,
    PsychosocialResult,
    ScoringResult,
    TraumaResult,
)
from .schema import Category, ConditionalRange, Domain, RiskBand, Section
from .session import (
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

__all__ = [
    # Questions
    "BaseQuestion",
    "ConditionalAttributes",
    "LikertQuestion",
    "Question",
    "TraumaQuestion",
    # Reference data
    "Category",
    "ConditionalRange",
    "Domain",
    "RiskBand",
    "Section",
    # Results
    "EvaluationHandle",
    "PsychosocialResult",
    "ScoringResult",
    "TraumaResult",
    # Steps
    "AssessmentStep",
    "ConditionalPrompt",
    "ConsentStep",
    "IdentityClaim",
    "IdentityStep",
    "QuestionnaireStep",
    "QuestionPayload",
    "TerminalStep",
    "TokenStatus",
]
