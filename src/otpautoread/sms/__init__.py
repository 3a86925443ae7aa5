"""Adapter between the platform SMS delivery stream and the extractor."""

from .app_hash import format_sms, generate_app_hash
from .receiver import SmsBroadcastReceiver
from .retriever import SmsRetriever

__all__ = ["SmsBroadcastReceiver", "SmsRetriever", "format_sms", "generate_app_hash"]
