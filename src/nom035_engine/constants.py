"""Assessment constants shared across the engine.

Scoring tables and advisory texts are fixed domain knowledge from
NOM-035-STPS-2018 and are not configurable.  Only the
operational values (token lifetime, phone matching width) can be
overridden via environment variables.
"""

import os

# Likert value tables, keyed by answer index 0..4
# (always, almost always, sometimes, almost never, never).
# Direct questions are negatively worded, so "always" scores highest.
DIRECT_SCALE: tuple[int, ...] = (4, 3, 2, 1, 0)
# Inverted questions are positively worded, so "always" scores zero.
INVERTED_SCALE: tuple[int, ...] = (0, 1, 2, 3, 4)

# Trauma-screening section whose positives mean "exposure to an event";
# the remaining sections describe after-effects.
TRAUMA_EXPOSURE_SECTION = "I"

TRAUMA_ADVISORIES: dict[str, str] = {
    "no_exposure": "No severe traumatic events related to work were identified.",
    "attention": (
        "Exposure to a severe traumatic event with possible after-effects was "
        "identified. Referral for specialised clinical assessment is recommended."
    ),
    "follow_up": (
        "Exposure to a severe traumatic event was identified without evidence "
        "of current after-effects. Follow-up is recommended."
    ),
}

# Lifetime of a newly issued assessment link.
# Overridable via TOKEN_TTL_DAYS env var.
TOKEN_TTL_DAYS = int(os.getenv("TOKEN_TTL_DAYS", "7"))

# Phones also match when their last N digits are equal, which
# tolerates country-code prefixes.  Overridable via PHONE_MATCH_DIGITS.
PHONE_MATCH_DIGITS = int(os.getenv("PHONE_MATCH_DIGITS", "10"))

# Respondent-facing terminal states: (title, message)
TERMINAL_MESSAGES: dict[str, tuple[str, str]] = {
    "invalid": (
        "Invalid link",
        "The link you are trying to open is not valid or does not exist. "
        "Please request a new link from your Human Resources department.",
    ),
    "expired": (
        "Link expired",
        "This link has expired and can no longer be used. Please request a "
        "new link from your Human Resources department.",
    ),
    "already_used": (
        "Questionnaire already completed",
        "This questionnaire has already been answered. If you need to take "
        "another evaluation, request a new link from your Human Resources "
        "department.",
    ),
    "completed": (
        "Thank you for taking part",
        "Your evaluation has been recorded. Your answers are stored "
        "confidentially and results are analysed in aggregate to improve "
        "working conditions. You may close this window.",
    ),
}
