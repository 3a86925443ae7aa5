"""Data models shared by the SMS adapter and the verification session."""

from __future__ import annotations

import datetime as dt
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SmsStatus(str, Enum):
    """Delivery status reported by the platform SMS source."""

    SUCCESS = "success"
    TIMEOUT = "timeout"
    ERROR = "error"


class SmsEnvelope(BaseModel):
    """One delivery event: a captured message body or a terminal failure."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
    session_id: str
    status: SmsStatus = SmsStatus.SUCCESS
    message: Optional[str] = None
    detail: Optional[str] = None
    closed: bool = False


class ExtractionOutcome(BaseModel):
    """Result forwarded to the caller once a listen finishes."""

    session_id: str
    code: Optional[str] = None
    error: Optional[str] = None
    rule: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.code is not None


class OtpState(BaseModel):
    """Observable state of one verification screen."""

    otp_value: str = ""
    is_loading: bool = False
    error_message: Optional[str] = None
    is_verified: bool = False
    app_hash: str = ""
