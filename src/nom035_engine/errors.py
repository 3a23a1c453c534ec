"""Exception taxonomy for the assessment flow.

Every error derives from ``AssessmentError`` (itself a ``ValueError``) so
that callers which only know about ``ValueError`` still treat them as
client-side failures.  The server maps each subclass to an HTTP status in
``nom035_server.errors``.
"""


class AssessmentError(ValueError):
    """Base class for all assessment-flow errors."""


# --- Token lifecycle (terminal: a new token must be issued) ---

class TokenError(AssessmentError):
    """The access token cannot be used."""


class TokenNotFound(TokenError):
    """No token with the given string exists."""


class TokenExpired(TokenError):
    """The token's expiry has passed."""


class TokenAlreadyConsumed(TokenError):
    """The token was already claimed by a submitted evaluation."""


# --- Recoverable respondent errors ---

class IdentityMismatch(AssessmentError):
    """Submitted name/email/phone do not match the bound worker."""


class IncompleteResponses(AssessmentError):
    """Scoring was requested before every applicable question was answered.

    ``missing`` lists the unanswered question ids in catalog order.
    """

    def __init__(self, missing: list[int]) -> None:
        self.missing = list(missing)
        super().__init__(f"{len(self.missing)} applicable question(s) not answered")


class InvalidAnswer(AssessmentError):
    """An answer references an unknown question or has the wrong type/range."""


class InvalidTransition(AssessmentError):
    """The operation is not allowed at the respondent's current stage."""


# --- Administration ---

class WorkerNotFound(AssessmentError):
    """The worker a token should be issued for does not exist."""


# --- Storage ---

class PersistenceFailure(AssessmentError):
    """A storage operation failed; nothing was committed and retry is safe."""
