"""Listens on the message bus for one verification SMS at a time."""

from __future__ import annotations

import asyncio
from typing import Optional

from otpautoread.core.message_bus import MessageBus, Subscription
from otpautoread.core.models import ExtractionOutcome, SmsEnvelope, SmsStatus
from otpautoread.core.settings import SMS_TIMEOUT_SECONDS
from otpautoread.extraction.extractor import OtpExtractor
from otpautoread.sms.receiver import CodeCallback, ErrorCallback, SmsBroadcastReceiver
from otpautoread.utils.logging import get_logger


STOPPED_ERROR = "SMS listener stopped"


class SmsRetriever:
    """Adapter between the SMS delivery stream and the pure extractor.

    At most one listen is active per retriever; starting again replaces the
    previous listen. A listen ends after the first delivered event or when
    the window of ``timeout_seconds`` elapses, which is reported as a timeout.
    """

    def __init__(
        self,
        message_bus: MessageBus,
        *,
        session_id: str,
        extractor: Optional[OtpExtractor] = None,
        timeout_seconds: float = SMS_TIMEOUT_SECONDS,
    ) -> None:
        self.message_bus = message_bus
        self.session_id = session_id
        self.extractor = extractor or OtpExtractor()
        self.timeout_seconds = timeout_seconds
        self.logger = get_logger("SmsRetriever")
        self._task: Optional[asyncio.Task[None]] = None
        self._receiver: Optional[SmsBroadcastReceiver] = None
        self._subscription: Optional[Subscription] = None
        self._outcome: Optional["asyncio.Future[ExtractionOutcome]"] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(
        self,
        *,
        on_code: Optional[CodeCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """Begin a listening window and register the receiver callbacks."""
        if self.active:
            self.logger.info("Replacing active SMS listener for session %s", self.session_id)
            await self.stop()

        try:
            subscription = await self.message_bus.attach(session_id=self.session_id)
        except RuntimeError as exc:
            self.logger.error("Failed to start SMS retriever: %s", exc)
            if on_error:
                on_error(f"Failed to start SMS Retriever: {exc}")
            raise

        self._subscription = subscription
        self._receiver = SmsBroadcastReceiver(self.extractor, on_code=on_code, on_error=on_error)
        self._outcome = asyncio.get_running_loop().create_future()
        self._task = asyncio.create_task(
            self._listen(subscription, self._receiver, self._outcome),
            name=f"SmsRetriever-{self.session_id}",
        )
        self.logger.info(
            "Listening for SMS on session %s for %.0f seconds", self.session_id, self.timeout_seconds
        )

    async def wait_for_code(self) -> ExtractionOutcome:
        """Await the outcome of the current listen."""
        if self._outcome is None:
            raise RuntimeError("SMS retriever has not been started")
        return await asyncio.shield(self._outcome)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task and not task.done():
            self.logger.info("Stopping SMS retriever for session %s", self.session_id)
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._outcome is not None and not self._outcome.done():
            self._outcome.set_result(ExtractionOutcome(session_id=self.session_id, error=STOPPED_ERROR))
        await self._release()

    async def _listen(
        self,
        subscription: Subscription,
        receiver: SmsBroadcastReceiver,
        outcome: "asyncio.Future[ExtractionOutcome]",
    ) -> None:
        try:
            try:
                envelope = await asyncio.wait_for(subscription.get(), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                envelope = SmsEnvelope(session_id=self.session_id, status=SmsStatus.TIMEOUT)
            result = receiver.on_receive(envelope)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.logger.exception("Error processing SMS: %s", exc)
            result = ExtractionOutcome(session_id=self.session_id, error=f"Error processing SMS: {exc}")
            try:
                receiver.report_error(result.error)
            except Exception:
                self.logger.exception("Error listener failed for session %s", self.session_id)
        finally:
            await self.message_bus.detach(subscription)
            receiver.cleanup()
        if not outcome.done():
            outcome.set_result(result)

    async def _release(self) -> None:
        if self._subscription is not None:
            await self.message_bus.detach(self._subscription)
            self._subscription = None
        if self._receiver is not None:
            self._receiver.cleanup()
            self._receiver = None
