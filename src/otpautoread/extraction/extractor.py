"""Turn an arbitrary SMS body into a single validated numeric code."""

from __future__ import annotations

import logging
import re
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from otpautoread.extraction.rules import DEFAULT_RULES, ExtractionRule


DEFAULT_CODE_LENGTH = 4
MIN_CODE_LENGTH = 4
MAX_CODE_LENGTH = 6

_DIGITS = re.compile(r"[0-9]+", re.ASCII)

logger = logging.getLogger(__name__)


class ExtractorConfig(BaseModel):
    """Immutable extraction settings handed to every extractor instance."""

    model_config = ConfigDict(frozen=True)

    expected_length: int = Field(default=DEFAULT_CODE_LENGTH, ge=MIN_CODE_LENGTH, le=MAX_CODE_LENGTH)
    rules: Tuple[ExtractionRule, ...] = DEFAULT_RULES

    @field_validator("rules")
    @classmethod
    def require_rules(cls, value: Tuple[ExtractionRule, ...]) -> Tuple[ExtractionRule, ...]:
        if not value:
            raise ValueError("at least one extraction rule is required")
        return value


class ExtractionMatch(BaseModel):
    """A validated code together with the rule that produced it."""

    model_config = ConfigDict(frozen=True)

    code: str
    rule: str
    position: int


def normalize(text: str) -> str:
    """Trim and collapse every whitespace run to a single space."""
    return " ".join(text.split())


def is_valid_code(candidate: str, length: int) -> bool:
    return len(candidate) == length and _DIGITS.fullmatch(candidate) is not None


class OtpExtractor:
    """First-match-wins extractor over an ordered rule list.

    Rules are tried in order against the normalized message. For each rule
    only its leftmost match is considered; a candidate that is not exactly
    ``expected_length`` digits is discarded and the next rule is tried.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None) -> None:
        self.config = config or ExtractorConfig()

    @property
    def expected_length(self) -> int:
        return self.config.expected_length

    def match(self, text: Optional[str]) -> Optional[ExtractionMatch]:
        message = normalize(text or "")
        if not message:
            return None

        length = self.config.expected_length
        for rule in self.config.rules:
            found = rule.compile(length).search(message)
            if found is None:
                continue
            group = 1 if rule.captures and found.re.groups else 0
            candidate = found.group(group)
            if candidate is None or not is_valid_code(candidate, length):
                logger.debug("Rule %s produced malformed candidate %r", rule.name, candidate)
                continue
            logger.debug("Rule %s matched code at offset %d", rule.name, found.start(group))
            return ExtractionMatch(code=candidate, rule=rule.name, position=found.start(group))

        logger.debug("No rule produced a %d-digit code", length)
        return None

    def extract(self, text: Optional[str]) -> Optional[str]:
        """Return the code, or ``None`` when the message holds no valid code."""
        result = self.match(text)
        return result.code if result else None


def extract(raw_message: Optional[str], expected_length: int = DEFAULT_CODE_LENGTH) -> Optional[str]:
    """Extract an ``expected_length``-digit code from ``raw_message``.

    Returns ``None`` (NotFound) when no rule yields a valid code. Raises
    ``ValueError`` only when ``expected_length`` itself is out of bounds.
    """
    return OtpExtractor(ExtractorConfig(expected_length=expected_length)).extract(raw_message)
