"""Core runtime primitives: delivery events, the message bus and settings."""

from .message_bus import MessageBus
from .models import ExtractionOutcome, OtpState, SmsEnvelope, SmsStatus
from .settings import RuntimeSettings

__all__ = [
    "MessageBus",
    "ExtractionOutcome",
    "OtpState",
    "SmsEnvelope",
    "SmsStatus",
    "RuntimeSettings",
]
