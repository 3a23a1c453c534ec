"""Create workers, evaluations, access_tokens, progress, and result tables.

Table order follows foreign keys: workers -> evaluations -> access_tokens
-> assessment_progress, with responses and category_scores hanging off
evaluations.

Revision ID: 20261016_initial
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261016_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- workers ---
    op.create_table(
        "workers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("company_id", UUID(as_uuid=True), nullable=False),
        sa.Column("full_name", sa.Text, nullable=False),
        sa.Column("email", sa.Text, nullable=True),
        sa.Column("phone", sa.Text, nullable=True),
        sa.Column(
            "accepted_privacy_notice",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("privacy_notice_accepted_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            "NOT accepted_privacy_notice OR privacy_notice_accepted_at IS NOT NULL",
            name="ck_worker_consent_has_timestamp",
        ),
    )
    op.create_index("ix_workers_company_id", "workers", ["company_id"])

    # --- evaluations ---
    op.create_table(
        "evaluations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "worker_id",
            UUID(as_uuid=True),
            sa.ForeignKey("workers.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("company_id", UUID(as_uuid=True), nullable=False),
        sa.Column("assessment_type", sa.String(30), nullable=False),
        sa.Column("catalog_version", sa.Text, nullable=False),
        sa.Column("evaluation_period", sa.String(4), nullable=False),
        # Psychosocial-risk result
        sa.Column("total_score", sa.Integer, nullable=True),
        sa.Column("risk_level", sa.String(20), nullable=True),
        # Trauma-screening result
        sa.Column("requires_attention", sa.Boolean, nullable=True),
        sa.Column("positive_sections", ARRAY(sa.Text), nullable=True),
        # Shared
        sa.Column("requires_action", sa.Boolean, nullable=False),
        sa.Column("advisory", sa.Text, nullable=False),
        sa.Column("started_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "completed_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            "assessment_type != 'psychosocial_risk' "
            "OR (total_score IS NOT NULL AND risk_level IS NOT NULL)",
            name="ck_psychosocial_has_score",
        ),
        sa.CheckConstraint(
            "assessment_type != 'trauma_screening' "
            "OR (requires_attention IS NOT NULL AND positive_sections IS NOT NULL)",
            name="ck_trauma_has_sections",
        ),
        sa.CheckConstraint(
            "risk_level IS NULL OR risk_level IN "
            "('none', 'low', 'medium', 'high', 'very_high')",
            name="ck_risk_level_values",
        ),
    )
    op.create_index("ix_evaluations_worker_id", "evaluations", ["worker_id"])
    op.create_index("ix_evaluations_company_id", "evaluations", ["company_id"])

    # --- access_tokens ---
    op.create_table(
        "access_tokens",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("token", sa.Text, nullable=False, unique=True),
        sa.Column(
            "worker_id",
            UUID(as_uuid=True),
            sa.ForeignKey("workers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("company_id", UUID(as_uuid=True), nullable=False),
        sa.Column("assessment_type", sa.String(30), nullable=False),
        sa.Column("expires_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "consumed",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("consumed_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "evaluation_id",
            UUID(as_uuid=True),
            sa.ForeignKey("evaluations.id", ondelete="RESTRICT"),
            nullable=True,
            unique=True,
        ),
        sa.Column(
            "created_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            "assessment_type IN ('trauma_screening', 'psychosocial_risk')",
            name="ck_token_assessment_type",
        ),
        sa.CheckConstraint(
            "NOT consumed OR (consumed_at IS NOT NULL AND evaluation_id IS NOT NULL)",
            name="ck_consumed_has_evaluation",
        ),
    )
    op.create_index("ix_access_tokens_worker_id", "access_tokens", ["worker_id"])
    op.create_index(
        "ix_token_open_expiry",
        "access_tokens",
        ["expires_at"],
        postgresql_where=sa.text("NOT consumed"),
    )

    # --- assessment_progress ---
    op.create_table(
        "assessment_progress",
        sa.Column(
            "token_id",
            UUID(as_uuid=True),
            sa.ForeignKey("access_tokens.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "stage",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'consent'"),
        ),
        sa.Column("identity_verified_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column("consent_accepted_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column("conditions", JSONB, nullable=True),
        sa.Column(
            "answers",
            JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "created_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            "stage IN ('identity', 'consent', 'questionnaire')",
            name="ck_progress_stage",
        ),
        sa.CheckConstraint(
            "stage != 'questionnaire' OR consent_accepted_at IS NOT NULL",
            name="ck_questionnaire_has_consent",
        ),
    )

    # --- responses ---
    op.create_table(
        "responses",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "evaluation_id",
            UUID(as_uuid=True),
            sa.ForeignKey("evaluations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("question_id", sa.SmallInteger, nullable=False),
        sa.Column("value", sa.SmallInteger, nullable=False),
        sa.Column("section", sa.Text, nullable=False),
        sa.UniqueConstraint("evaluation_id", "question_id", name="uq_response_question"),
        sa.CheckConstraint("value BETWEEN 0 AND 4", name="ck_response_value_range"),
    )
    op.create_index("ix_responses_evaluation_id", "responses", ["evaluation_id"])

    # --- category_scores ---
    op.create_table(
        "category_scores",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "evaluation_id",
            UUID(as_uuid=True),
            sa.ForeignKey("evaluations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("category", sa.Text, nullable=False),
        sa.Column("score", sa.Integer, nullable=False),
        sa.UniqueConstraint("evaluation_id", "category", name="uq_category_score"),
        sa.CheckConstraint("score >= 0", name="ck_category_score_non_negative"),
    )
    op.create_index("ix_category_scores_evaluation_id", "category_scores", ["evaluation_id"])


def downgrade() -> None:
    op.drop_table("category_scores")
    op.drop_table("responses")
    op.drop_table("assessment_progress")
    op.drop_table("access_tokens")
    op.drop_table("evaluations")
    op.drop_table("workers")
