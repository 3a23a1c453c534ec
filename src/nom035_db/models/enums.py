"""Database-level enumerations for NOM-035 assessments."""

import enum


class AssessmentType(str, enum.Enum):
    """Which questionnaire a token grants.

    ``trauma_screening`` is the 20-question binary-section guide;
    ``psychosocial_risk`` is the 72-question weighted-Likert guide.
    """

    TRAUMA_SCREENING = "trauma_screening"
    PSYCHOSOCIAL_RISK = "psychosocial_risk"


class RiskLevel(str, enum.Enum):
    """Risk bands for the psychosocial-risk total, least to most severe."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class AssessmentStage(str, enum.Enum):
    """Respondent progress stored per token between stateless requests.

    Transitions:
        identity -> consent        (identity challenge passed)
        consent -> identity        (notice declined)
        consent -> questionnaire   (notice accepted)
        questionnaire -> consent   (respondent backs out and restarts)
    """

    IDENTITY = "identity"
    CONSENT = "consent"
    QUESTIONNAIRE = "questionnaire"
