"""Verification screen state: auto-filled from SMS, with manual entry as fallback."""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol, Set

from otpautoread.core.message_bus import MessageBus
from otpautoread.core.models import OtpState
from otpautoread.core.settings import RuntimeSettings
from otpautoread.extraction.extractor import OtpExtractor, is_valid_code
from otpautoread.sms.app_hash import generate_app_hash
from otpautoread.sms.retriever import SmsRetriever
from otpautoread.utils.logging import get_logger


VERIFICATION_FAILED_ERROR = "Verification failed. Please try again."
REJECTED_ERROR = "Invalid OTP. Please try again."


class OtpVerifier(Protocol):
    """Backend check for a code the user entered or that was read from SMS."""

    async def verify(self, code: str) -> bool:
        ...


class SimulatedVerifier:
    """Accepts every well-formed code after a short delay."""

    def __init__(self, delay_seconds: float = 1.0) -> None:
        self.delay_seconds = delay_seconds

    async def verify(self, code: str) -> bool:
        await asyncio.sleep(self.delay_seconds)
        return True


class OtpSession:
    """Holds the observable state of one verification screen."""

    def __init__(
        self,
        retriever: SmsRetriever,
        *,
        verifier: Optional[OtpVerifier] = None,
        app_hash: str = "",
    ) -> None:
        self.retriever = retriever
        self.verifier: OtpVerifier = verifier or SimulatedVerifier()
        self.state = OtpState(app_hash=app_hash)
        self.logger = get_logger("OtpSession")
        self._pending: Set[asyncio.Task[bool]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: RuntimeSettings,
        *,
        message_bus: MessageBus,
        session_id: str,
        verifier: Optional[OtpVerifier] = None,
    ) -> "OtpSession":
        extractor = OtpExtractor(settings.extractor.to_config())
        retriever = SmsRetriever(
            message_bus,
            session_id=session_id,
            extractor=extractor,
            timeout_seconds=settings.retriever.timeout_seconds,
        )
        app_hash = ""
        if settings.app.package_name and settings.app.signature:
            app_hash = generate_app_hash(settings.app.package_name, settings.app.signature)
        return cls(retriever, verifier=verifier, app_hash=app_hash)

    @property
    def code_length(self) -> int:
        return self.retriever.extractor.expected_length

    async def start_listening(self) -> None:
        self.logger.info("Starting SMS listener for session %s", self.retriever.session_id)
        self.state = self.state.model_copy(
            update={"is_loading": True, "error_message": None, "is_verified": False, "otp_value": ""}
        )
        try:
            await self.retriever.start(on_code=self._handle_code, on_error=self._handle_error)
        except RuntimeError:
            self.state.is_loading = False
            raise

    async def stop_listening(self) -> None:
        await self.retriever.stop()
        self.state.is_loading = False

    async def update_otp(self, value: str) -> bool:
        """Apply manual input; returns False when the input is rejected."""
        if len(value) > self.code_length or not (value == "" or is_valid_code(value, len(value))):
            return False
        self.state.otp_value = value
        self.clear_error()
        if len(value) == self.code_length:
            await self.verify_otp(value)
        return True

    async def verify_otp(self, code: str) -> bool:
        if not is_valid_code(code, self.code_length):
            self.state.error_message = f"Please enter a valid {self.code_length}-digit OTP"
            return False

        self.state.is_loading = True
        self.clear_error()
        try:
            accepted = await self.verifier.verify(code)
        except Exception as exc:
            self.logger.exception("Error verifying OTP: %s", exc)
            self.state.is_loading = False
            self.state.error_message = VERIFICATION_FAILED_ERROR
            return False

        self.state.is_loading = False
        self.state.is_verified = accepted
        if accepted:
            self.logger.info("OTP verified for session %s", self.retriever.session_id)
        else:
            self.state.error_message = REJECTED_ERROR
        return accepted

    async def resend_otp(self) -> None:
        await self._cancel_pending()
        self.state.otp_value = ""
        self.state.is_verified = False
        self.clear_error()
        await self.start_listening()

    def clear_error(self) -> None:
        self.state.error_message = None

    async def reset(self) -> None:
        await self._cancel_pending()
        self.state = OtpState(app_hash=self.state.app_hash)
        await self.stop_listening()

    async def wait_idle(self) -> None:
        """Wait for verifications triggered by received SMS to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.stop_listening()
        await self._cancel_pending()

    async def _cancel_pending(self) -> None:
        """Drop verifications started for a code that is no longer on screen."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _handle_code(self, code: str) -> None:
        self.state.otp_value = code
        self.state.is_loading = False
        self.state.error_message = None
        task = asyncio.get_running_loop().create_task(self.verify_otp(code))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _handle_error(self, message: str) -> None:
        self.state.is_loading = False
        self.state.error_message = message
