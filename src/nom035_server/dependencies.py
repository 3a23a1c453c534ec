"""FastAPI dependency injection — provides DB sessions, the flow, and the catalog.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``.  The session is committed on success and rolled back on error,
matching the engine convention where flow/repository call ``flush()`` but
never ``commit()``.
"""

import hmac
from typing import AsyncGenerator

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from nom035_db.engine import session_scope
from nom035_engine.catalog import QuestionCatalog
from nom035_engine.flow import AssessmentFlow
from nom035_engine.tokens import AccessTokenService


# ------------------------------------------------------------------
# Database session — transaction boundary lives here
# ------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; commit on success, rollback on error.

    The repository methods call ``flush()`` but never ``commit()``, so
    this dependency is the single place where transactions are finalised.
    """
    async with session_scope() as session:
        yield session


# ------------------------------------------------------------------
# Flow, catalog & token service — stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_flow(request: Request) -> AssessmentFlow:
    """Return the AssessmentFlow singleton from ``app.state``."""
    return request.app.state.flow


def get_catalog(request: Request) -> QuestionCatalog:
    """Return the QuestionCatalog singleton from ``app.state``."""
    return request.app.state.catalog


def get_token_service(request: Request) -> AccessTokenService:
    """Return the AccessTokenService singleton from ``app.state``."""
    return request.app.state.token_service


# ------------------------------------------------------------------
# Admin auth — X-Admin-Key header
# ------------------------------------------------------------------

async def require_admin_key(
    request: Request,
    x_admin_key: str | None = Header(None, alias="X-Admin-Key"),
) -> str:
    """Validate the ``X-Admin-Key`` header against ``ADMIN_API_KEY``.

    Raises 403 if admin endpoints are disabled (no key configured) or the
    key does not match, 401 if the header is missing.
    """
    expected: str | None = request.app.state.settings.admin_api_key
    if not expected:
        raise HTTPException(
            status_code=403,
            detail="Admin endpoints are disabled (ADMIN_API_KEY not configured)",
        )
    if not x_admin_key:
        raise HTTPException(status_code=401, detail="X-Admin-Key header is required")
    # Constant-time comparison to prevent timing side-channels.
    if not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Invalid admin key")
    return x_admin_key
