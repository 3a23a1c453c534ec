"""Evaluation, Response, and CategoryScore ORM models.

An evaluation is written once, by the submission finalizer, in the same
transaction that claims the token.  Nothing here is updated afterwards:
re-evaluating a worker means issuing a new token and creating a new row.

Result columns differ by assessment type:
  - trauma_screening: ``requires_attention`` + ``positive_sections``
  - psychosocial_risk: ``total_score`` + ``risk_level`` (+ category scores)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from nom035_db.models.base import Base
from nom035_db.models.enums import AssessmentType, RiskLevel


class Evaluation(Base):
    """One row per completed questionnaire."""

    __tablename__ = "evaluations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Identity ---
    worker_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("workers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    assessment_type: Mapped[AssessmentType] = mapped_column(String(30), nullable=False)
    # Catalog directory the questions and constants came from (e.g. "v1")
    catalog_version: Mapped[str] = mapped_column(Text, nullable=False)
    # Calendar year the evaluation counts toward, e.g. "2026"
    evaluation_period: Mapped[str] = mapped_column(String(4), nullable=False)

    # --- Result: psychosocial_risk ---
    total_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    risk_level: Mapped[RiskLevel | None] = mapped_column(String(20), nullable=True)

    # --- Result: trauma_screening ---
    requires_attention: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    positive_sections: Mapped[list[str] | None] = mapped_column(
        ARRAY(Text), nullable=True
    )

    # --- Shared result fields ---
    requires_action: Mapped[bool] = mapped_column(Boolean, nullable=False)
    advisory: Mapped[str] = mapped_column(Text, nullable=False)

    # --- Timestamps ---
    # started_at is when the respondent accepted the confidentiality notice
    started_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False
    )
    completed_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "assessment_type != 'psychosocial_risk' "
            "OR (total_score IS NOT NULL AND risk_level IS NOT NULL)",
            name="ck_psychosocial_has_score",
        ),
        CheckConstraint(
            "assessment_type != 'trauma_screening' "
            "OR (requires_attention IS NOT NULL AND positive_sections IS NOT NULL)",
            name="ck_trauma_has_sections",
        ),
        CheckConstraint(
            "risk_level IS NULL OR risk_level IN "
            "('none', 'low', 'medium', 'high', 'very_high')",
            name="ck_risk_level_values",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Evaluation(id={self.id!s}, worker={self.worker_id!s}, "
            f"type={self.assessment_type!r}, risk={self.risk_level!r})>"
        )


class Response(Base):
    """A single raw answer belonging to an evaluation.

    ``value`` is 0/1 for trauma-screening booleans and the 0-4 answer
    index for psychosocial-risk questions (not the scored value).
    """

    __tablename__ = "responses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    evaluation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("evaluations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    # Section label (trauma) or category id (psychosocial) at answer time
    section: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("evaluation_id", "question_id", name="uq_response_question"),
        CheckConstraint("value BETWEEN 0 AND 4", name="ck_response_value_range"),
    )


class CategoryScore(Base):
    """Summed psychosocial-risk value for one category of one evaluation."""

    __tablename__ = "category_scores"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    evaluation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("evaluations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category: Mapped[str] = mapped_column(Text, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("evaluation_id", "category", name="uq_category_score"),
        CheckConstraint("score >= 0", name="ck_category_score_non_negative"),
    )
