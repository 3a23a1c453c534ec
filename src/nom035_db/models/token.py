"""AccessToken ORM model — a one-time, expiring assessment grant.

A token binds exactly one worker, company, and assessment type.  The
``consumed`` flag flips false -> true exactly once, through the
repository's conditional ``claim_token`` update, and the claiming
evaluation is recorded alongside it.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from nom035_db.models.base import Base
from nom035_db.models.enums import AssessmentType


class AccessToken(Base):
    """One row per issued assessment link."""

    __tablename__ = "access_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Opaque string embedded in the link: /assessment/{token}
    token: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    # --- Binding ---
    worker_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("workers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    assessment_type: Mapped[AssessmentType] = mapped_column(String(30), nullable=False)

    # --- Lifecycle ---
    expires_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False
    )
    consumed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    consumed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    # The evaluation that claimed this token; unique so one evaluation
    # can never be attached to two grants.
    evaluation_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("evaluations.id", ondelete="RESTRICT"),
        nullable=True,
        unique=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "assessment_type IN ('trauma_screening', 'psychosocial_risk')",
            name="ck_token_assessment_type",
        ),
        # A consumed token always records when and by which evaluation
        CheckConstraint(
            "NOT consumed OR (consumed_at IS NOT NULL AND evaluation_id IS NOT NULL)",
            name="ck_consumed_has_evaluation",
        ),
        # Cleanup scans for unconsumed tokens past expiry
        Index(
            "ix_token_open_expiry",
            "expires_at",
            postgresql_where=text("NOT consumed"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<AccessToken(id={self.id!s}, worker={self.worker_id!s}, "
            f"type={self.assessment_type!r}, consumed={self.consumed})>"
        )
