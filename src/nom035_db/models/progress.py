"""AssessmentProgress ORM model — draft state of one respondent session.

Handlers are stateless, so everything the respondent has done between
requests (identity passed, notice accepted, conditional attributes, draft
answers) lives here, keyed by the token.  None of it is an evaluation:
the row can be discarded at any point without consequence, and the
cleanup job deletes rows whose token is no longer usable.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, ForeignKey, String, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from nom035_db.models.base import Base
from nom035_db.models.enums import AssessmentStage


class AssessmentProgress(Base):
    """One row per token that has passed the identity challenge."""

    __tablename__ = "assessment_progress"

    token_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("access_tokens.id", ondelete="CASCADE"),
        primary_key=True,
    )
    stage: Mapped[AssessmentStage] = mapped_column(
        String(20),
        nullable=False,
        default=AssessmentStage.CONSENT,
    )
    identity_verified_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    consent_accepted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # {"serves_customers": bool, "supervises_others": bool}; null until set
    conditions: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    # Dict keyed by str(question_id) -> {"value": ..., "answered_at": "ISO8601"}
    answers: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "stage IN ('identity', 'consent', 'questionnaire')",
            name="ck_progress_stage",
        ),
        CheckConstraint(
            "stage != 'questionnaire' OR consent_accepted_at IS NOT NULL",
            name="ck_questionnaire_has_consent",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<AssessmentProgress(token={self.token_id!s}, stage={self.stage!r}, "
            f"answered={len(self.answers or {})})>"
        )
