"""Database configuration — connection URLs from the environment.

``DATABASE_URL`` wins when set; otherwise the URL is assembled from
``PG_HOST``, ``PG_PORT``, ``PG_USER``, ``PG_PASSWORD`` and ``PG_DATABASE``.

Two flavours of the same URL are needed: Alembic migrates through
psycopg2 (``get_sync_url``) while the application talks to PostgreSQL
through asyncpg (``get_async_url``).
"""

import os

_SYNC_SCHEME = "postgresql://"
_ASYNC_SCHEME = "postgresql+asyncpg://"
# Accepted spellings of the scheme in DATABASE_URL
_KNOWN_SCHEMES = ("postgresql+asyncpg://", "postgresql+psycopg2://", "postgresql://", "postgres://")


def _base_url() -> str:
    """The configured URL with its scheme stripped to ``host/db`` form."""
    url = os.getenv("DATABASE_URL")
    if not url:
        return (
            f"{os.getenv('PG_USER', 'nom035')}:{os.getenv('PG_PASSWORD', 'nom035')}"
            f"@{os.getenv('PG_HOST', 'localhost')}:{os.getenv('PG_PORT', '5432')}"
            f"/{os.getenv('PG_DATABASE', 'nom035')}"
        )
    for scheme in _KNOWN_SCHEMES:
        if url.startswith(scheme):
            return url[len(scheme):]
    raise ValueError("DATABASE_URL must be a PostgreSQL URL")


def get_sync_url() -> str:
    """psycopg2 URL, used by Alembic."""
    return _SYNC_SCHEME + _base_url()


def get_async_url() -> str:
    """asyncpg URL, used by the runtime engine."""
    return _ASYNC_SCHEME + _base_url()
