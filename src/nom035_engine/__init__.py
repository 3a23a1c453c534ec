"""nom035_engine — NOM-035 psychosocial-risk assessment engine.

Public API:
    AssessmentFlow       — stateless state machine behind /assessment/{token}
    QuestionCatalog      — loads the versioned questionnaires from v1/
    QuestionSetResolver  — applicable questions for given conditional attributes
    ScoringEngine        — binary-section and weighted-Likert algorithms
    TokenLifecycle       — inspect / atomic claim of access tokens
    AccessTokenService   — issues new assessment links
    IdentityVerifier     — lenient name/email/phone matching
    ConsentGate          — confidentiality notice acceptance
    SubmissionFinalizer  — atomic evaluation + responses + claim

Step models:
    AssessmentStep       — union of the step types below
    IdentityStep, ConsentStep, QuestionnaireStep, TerminalStep
"""

from nom035_engine.catalog import QuestionCatalog
from nom035_engine.consent import ConsentGate
from nom035_engine.finalizer import SubmissionFinalizer
from nom035_engine.flow import AssessmentFlow
from nom035_engine.identity import IdentityVerifier
from nom035_engine.models.question import ConditionalAttributes
from nom035_engine.models.result import (
    EvaluationHandle,
    PsychosocialResult,
    ScoringResult,
    TraumaResult,
)
from nom035_engine.models.session import (
    AssessmentStep,
    ConsentStep,
    IdentityClaim,
    IdentityStep,
    QuestionnaireStep,
    TerminalStep,
    TokenStatus,
)
from nom035_engine.resolver import QuestionSetResolver
from nom035_engine.scoring import ScoringEngine
from nom035_engine.tokens import AccessTokenService, TokenLifecycle

__all__ = [
    # Flow & catalog
    "AssessmentFlow",
    "QuestionCatalog",
    # Components
    "AccessTokenService",
    "ConsentGate",
    "IdentityVerifier",
    "QuestionSetResolver",
    "ScoringEngine",
    "SubmissionFinalizer",
    "TokenLifecycle",
    # Inputs
    "ConditionalAttributes",
    "IdentityClaim",
    # Steps
    "AssessmentStep",
    "ConsentStep",
    "IdentityStep",
    "QuestionnaireStep",
    "TerminalStep",
    "TokenStatus",
    # Results
    "EvaluationHandle",
    "PsychosocialResult",
    "ScoringResult",
    "TraumaResult",
]
