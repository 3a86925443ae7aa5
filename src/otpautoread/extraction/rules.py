"""Ordered pattern rules used to locate a one-time code inside an SMS body."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Tuple

from pydantic import BaseModel, ConfigDict, field_validator


LENGTH_TOKEN = "{n}"


class ExtractionRule(BaseModel):
    """A single pattern plus the policy for picking the candidate out of a match.

    ``pattern`` is a regex template; every ``{n}`` is replaced with the
    expected digit count before compiling. When ``captures`` is true the
    candidate is group 1, otherwise it is the whole match.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    pattern: str
    captures: bool = True
    ignore_case: bool = False

    @field_validator("pattern")
    @classmethod
    def require_length_token(cls, value: str) -> str:
        if LENGTH_TOKEN not in value:
            raise ValueError(f"pattern must contain the {LENGTH_TOKEN} length token")
        return value

    def compile(self, length: int) -> re.Pattern[str]:
        return _compile(self.pattern, length, self.ignore_case)


@lru_cache(maxsize=256)
def _compile(template: str, length: int, ignore_case: bool) -> re.Pattern[str]:
    flags = re.ASCII
    if ignore_case:
        flags |= re.IGNORECASE
    return re.compile(template.replace(LENGTH_TOKEN, "{%d}" % length), flags)


# Separator allowed between a keyword and the code: "OTP: 1234", "pin-1234", "code #1234".
_SEP = r"[\s:#.\-]*"

DEFAULT_RULES: Tuple[ExtractionRule, ...] = (
    ExtractionRule(name="bare_token", pattern=r"\b(\d{n})\b"),
    ExtractionRule(
        name="keyword",
        pattern=r"(?:otp|code|pin|verification|verify)" + _SEP + r"(\d{n})(?!\d)",
        ignore_case=True,
    ),
    ExtractionRule(
        name="verification_code",
        pattern=r"verification\s+code" + _SEP + r"(?:is\s*:?\s*)?(\d{n})(?!\d)",
        ignore_case=True,
    ),
    ExtractionRule(
        name="otp_is",
        pattern=r"otp\s+is\s*:?\s*(\d{n})(?!\d)",
        ignore_case=True,
    ),
    ExtractionRule(
        name="code",
        pattern=r"code" + _SEP + r"(?:is\s*:?\s*)?(\d{n})(?!\d)",
        ignore_case=True,
    ),
    # Unanchored fallback; bounded by non-digits so longer runs never yield a code.
    ExtractionRule(name="digit_run", pattern=r"(?<!\d)\d{n}(?!\d)", captures=False),
    ExtractionRule(name="square_brackets", pattern=r"\[(\d{n})\]"),
    ExtractionRule(name="parentheses", pattern=r"\((\d{n})\)"),
)
