"""Turns a delivery event into a code or an error for the listening screen."""

from __future__ import annotations

from typing import Callable, Optional

from otpautoread.core.models import ExtractionOutcome, SmsEnvelope, SmsStatus
from otpautoread.extraction.extractor import OtpExtractor
from otpautoread.utils.logging import get_logger


CodeCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]

EMPTY_MESSAGE_ERROR = "Received empty SMS message"
NO_CODE_ERROR = "Could not find OTP in the received message"
TIMEOUT_ERROR = "SMS verification timed out. Please try again."
CLOSED_ERROR = "SMS listener closed"


class SmsBroadcastReceiver:
    """Handles a single SMS delivery event and reports the outcome."""

    def __init__(
        self,
        extractor: OtpExtractor,
        *,
        on_code: Optional[CodeCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._extractor = extractor
        self._on_code = on_code
        self._on_error = on_error
        self.logger = get_logger("SmsBroadcastReceiver")

    def set_on_code(self, listener: CodeCallback) -> None:
        self._on_code = listener

    def set_on_error(self, listener: ErrorCallback) -> None:
        self._on_error = listener

    def on_receive(self, envelope: SmsEnvelope) -> ExtractionOutcome:
        outcome = self._evaluate(envelope)
        if outcome.code is not None:
            self.logger.info("Extracted OTP for session %s using rule %s", envelope.session_id, outcome.rule)
            if self._on_code:
                self._on_code(outcome.code)
        else:
            self.logger.warning("SMS delivery for session %s failed: %s", envelope.session_id, outcome.error)
            if self._on_error:
                self._on_error(outcome.error or NO_CODE_ERROR)
        return outcome

    def report_error(self, message: str) -> None:
        if self._on_error:
            self._on_error(message)

    def _evaluate(self, envelope: SmsEnvelope) -> ExtractionOutcome:
        session_id = envelope.session_id
        if envelope.closed:
            return ExtractionOutcome(session_id=session_id, error=CLOSED_ERROR)
        if envelope.status is SmsStatus.TIMEOUT:
            return ExtractionOutcome(session_id=session_id, error=TIMEOUT_ERROR)
        if envelope.status is not SmsStatus.SUCCESS:
            detail = envelope.detail or envelope.status.value
            return ExtractionOutcome(session_id=session_id, error=f"SMS Retriever failed with status: {detail}")
        if not envelope.message:
            return ExtractionOutcome(session_id=session_id, error=EMPTY_MESSAGE_ERROR)

        match = self._extractor.match(envelope.message)
        if match is None:
            self.logger.debug("No code in message of %d characters", len(envelope.message))
            return ExtractionOutcome(session_id=session_id, error=NO_CODE_ERROR)
        return ExtractionOutcome(session_id=session_id, code=match.code, rule=match.rule)

    def cleanup(self) -> None:
        """Detach both listeners so a stale receiver cannot update the screen."""
        self._on_code = None
        self._on_error = None
