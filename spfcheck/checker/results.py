"""
SPF results, qualifiers and the per-directive evaluation outcome.

The Result values have meaning outside this package: they are the exact
tokens used in Received-SPF and Authentication-Results headers
(RFC 7208 section 8), so they must never be altered.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Result(str, enum.Enum):
    """The seven SPF verdicts."""

    # Not able to reach any conclusion.
    NONE = "none"
    # No definite assertion (positive or negative).
    NEUTRAL = "neutral"
    # Client is authorized to inject mail.
    PASS = "pass"
    # Client is *not* authorized to use the domain.
    FAIL = "fail"
    # Not authorized, but unwilling to make a strong policy statement.
    SOFTFAIL = "softfail"
    # Transient error while performing the check.
    TEMPERROR = "temperror"
    # Records could not be correctly interpreted.
    PERMERROR = "permerror"

    def __str__(self) -> str:
        return self.value


QUALIFIERS: dict[str, Result] = {
    "+": Result.PASS,
    "-": Result.FAIL,
    "~": Result.SOFTFAIL,
    "?": Result.NEUTRAL,
}

# Advisory diagnostics. Callers must branch on the Result, never on these.
LOOKUP_LIMIT_REACHED = "lookup limit reached"
MACROS_NOT_SUPPORTED = "macros not supported"
EXISTS_NOT_SUPPORTED = "'exists' not supported"
UNKNOWN_FIELD = "unknown field"
INVALID_IP = "invalid ipX value"
INVALID_MASK = "invalid mask"
INVALID_DOMAIN = "invalid domain"
NO_RESULT = "lookup yielded no result"
NO_RECORD = "no SPF record found"
QUALIFIED_MODIFIER = "modifiers take no qualifier"


def matched(directive: str) -> str:
    return f"matched '{directive}'"


# ---------------------------------------------------------------------------
# Directive handler results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoMatch:
    """The directive did not match; evaluation moves on to the next one."""

    diagnostic: str | None = None


@dataclass(frozen=True)
class Matched:
    """The directive matched; *result* comes from its qualifier."""

    result: Result
    diagnostic: str


@dataclass(frozen=True)
class Terminal:
    """Evaluation stops with *result* regardless of the qualifier."""

    result: Result
    diagnostic: str | None


DirectiveOutcome = NoMatch | Matched | Terminal
