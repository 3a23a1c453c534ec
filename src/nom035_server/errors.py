"""Global exception handlers — map engine exceptions to HTTP status codes.

The engine raises subclasses of ``AssessmentError`` (a ``ValueError``).
Rather than catching these in every route, global handlers map each class
to a status code.  Any other ``ValueError`` falls back to keyword matching
on its message, and everything else becomes a 500.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from nom035_engine.errors import (
    AssessmentError,
    IdentityMismatch,
    IncompleteResponses,
    InvalidAnswer,
    InvalidTransition,
    PersistenceFailure,
    TokenAlreadyConsumed,
    TokenExpired,
    TokenNotFound,
    WorkerNotFound,
)

logger = logging.getLogger(__name__)

# --- Engine exception classes and their HTTP status codes ---
# Checked in order with isinstance(); first match wins.
_ERROR_STATUS: list[tuple[type[AssessmentError], int]] = [
    (TokenNotFound, 404),
    (TokenExpired, 410),
    (TokenAlreadyConsumed, 409),
    (IdentityMismatch, 401),
    (IncompleteResponses, 422),
    (InvalidAnswer, 400),
    (InvalidTransition, 400),
    (WorkerNotFound, 404),
    (PersistenceFailure, 503),
]

# --- Keyword patterns in other ValueError messages ---
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    ("already exists", 409),
    ("not found", 404),
]

# --- Client-safe messages keyed by HTTP status code ---
# Internal details (token ids, stage names) stay in the server log; the
# client receives only a generic description.
_SAFE_MESSAGES: dict[int, str] = {
    400: "Invalid request",
    401: "The details entered do not match our records",
    404: "Resource not found",
    409: "This assessment link has already been used",
    410: "This assessment link has expired",
    422: "Some questions have not been answered",
    503: "The evaluation could not be saved; please try again",
}


def _where(request: Request) -> str:
    """Route template (e.g. ``/api/v1/assessment/{token}``) so tokens stay out of logs."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _status_for(exc: ValueError) -> int:
    for cls, code in _ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    msg = str(exc).lower()
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg:
            return code
    return 400


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map engine errors (and any other ``ValueError``) to an HTTP response.

    The raw exception message is logged server-side but **never** sent
    to the client.  ``IncompleteResponses`` additionally returns the
    unanswered question ids so the respondent can complete them.
    """
    status = _status_for(exc)
    logger.warning(
        "%s [%d] at %s: %s", type(exc).__name__, status, _where(request), exc
    )
    content: dict = {"detail": _SAFE_MESSAGES.get(status, "Invalid request")}
    if isinstance(exc, IncompleteResponses):
        content["missing"] = exc.missing
    return JSONResponse(status_code=status, content=content)


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", _where(request))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
