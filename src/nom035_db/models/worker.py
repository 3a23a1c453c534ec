"""Worker ORM model — the person a token is issued for.

Workers are owned by company administration, which lives outside this
package.  The assessment flow only reads them and flips the privacy-notice
flag the first time identity verification succeeds.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from nom035_db.models.base import Base


class Worker(Base):
    """One row per registered worker of a company."""

    __tablename__ = "workers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )

    # --- Identity challenge reference data ---
    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Consent flags (set once, on first successful verification) ---
    accepted_privacy_notice: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    privacy_notice_accepted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "NOT accepted_privacy_notice OR privacy_notice_accepted_at IS NOT NULL",
            name="ck_worker_consent_has_timestamp",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Worker(id={self.id!s}, company={self.company_id!s}, "
            f"consented={self.accepted_privacy_notice})>"
        )
