"""Identity challenge — does the respondent match the worker bound to the token?

The rules tolerate formatting differences:

  - name: lower-cased, trimmed, accents folded; either string may contain
    the other ("Juan" matches "Juan Pérez García")
  - email: lower-cased and trimmed; must be equal
  - phone: digits only; equal, or equal once both are cut to their last
    N digits (tolerates country-code prefixes)

All three must match.  An empty name never matches; an email or phone
missing from the worker record matches an empty entry.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass

from nom035_db.models.worker import Worker
from nom035_engine.constants import PHONE_MATCH_DIGITS
from nom035_engine.errors import IdentityMismatch
from nom035_engine.models.session import IdentityClaim

logger = logging.getLogger(__name__)

_NON_DIGIT = re.compile(r"\D")
_WHITESPACE = re.compile(r"\s+")


def normalize_name(value: str | None) -> str:
    """Lower-case, trim, collapse whitespace, and strip diacritics."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", folded).strip().lower()


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def normalize_phone(value: str | None) -> str:
    return _NON_DIGIT.sub("", value or "")


def names_match(entered: str | None, registered: str | None) -> bool:
    a, b = normalize_name(entered), normalize_name(registered)
    if not a or not b:
        return False
    return a in b or b in a


def emails_match(entered: str | None, registered: str | None) -> bool:
    a, b = normalize_email(entered), normalize_email(registered)
    return a == b


def phones_match(
    entered: str | None,
    registered: str | None,
    digits: int = PHONE_MATCH_DIGITS,
) -> bool:
    a, b = normalize_phone(entered), normalize_phone(registered)
    return a == b or a[-digits:] == b[-digits:]


@dataclass(frozen=True)
class IdentityCheck:
    """Per-field outcome of one identity challenge."""

    name: bool
    email: bool
    phone: bool

    @property
    def passed(self) -> bool:
        return self.name and self.email and self.phone


class IdentityVerifier:
    """Matches an :class:`IdentityClaim` against a :class:`Worker` record.

    Args:
        phone_digits: trailing digits compared when phones differ in prefix.
    """

    def __init__(self, phone_digits: int = PHONE_MATCH_DIGITS) -> None:
        self._phone_digits = phone_digits

    def check(self, claim: IdentityClaim, worker: Worker) -> IdentityCheck:
        return IdentityCheck(
            name=names_match(claim.name, worker.full_name),
            email=emails_match(claim.email, worker.email),
            phone=phones_match(claim.phone, worker.phone, self._phone_digits),
        )

    def verify(self, claim: IdentityClaim, worker: Worker) -> IdentityCheck:
        """Return the check on success; raise ``IdentityMismatch`` otherwise.

        Only which fields failed is logged, never the submitted values.
        """
        result = self.check(claim, worker)
        if not result.passed:
            failed = [f for f in ("name", "email", "phone") if not getattr(result, f)]
            logger.warning(
                "Identity mismatch for worker %s (fields: %s)",
                worker.id,
                ",".join(failed),
            )
            raise IdentityMismatch(
                "The details entered do not match our records. Please check and try again."
            )
        return result
