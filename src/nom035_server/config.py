"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS — comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Catalog directory (None → QuestionCatalog default, v1/ inside nom035_engine)
    catalog_dir: str | None = None

    # Logging
    log_level: str = "INFO"

    # Drafts of consumed/expired tokens untouched for this many days are
    # purged by cleanup.  0 means purge them regardless of age.
    progress_ttl_days: int = 0

    # Admin API key — shared secret for admin endpoints (None = disabled)
    admin_api_key: str | None = None


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        catalog_dir=os.getenv("SERVER_CATALOG_DIR") or None,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        progress_ttl_days=int(os.getenv("PROGRESS_TTL_DAYS", "0")),
        admin_api_key=os.getenv("ADMIN_API_KEY") or None,
    )
