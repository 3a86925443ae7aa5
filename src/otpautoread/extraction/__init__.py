"""OTP extraction engine."""

from .extractor import (
    DEFAULT_CODE_LENGTH,
    ExtractionMatch,
    ExtractorConfig,
    OtpExtractor,
    extract,
    is_valid_code,
    normalize,
)
from .rules import DEFAULT_RULES, ExtractionRule

__all__ = [
    "DEFAULT_CODE_LENGTH",
    "DEFAULT_RULES",
    "ExtractionMatch",
    "ExtractionRule",
    "ExtractorConfig",
    "OtpExtractor",
    "extract",
    "is_valid_code",
    "normalize",
]
