"""Read one-time codes from verification SMS messages."""

from .extraction import ExtractorConfig, OtpExtractor, extract

__all__ = ["__version__", "ExtractorConfig", "OtpExtractor", "extract"]

__version__ = "0.1.0"
