from __future__ import annotations

import asyncio

import pytest

from otpautoread.core.message_bus import MessageBus
from otpautoread.core.models import SmsEnvelope
from otpautoread.core.settings import RuntimeSettings
from otpautoread.session import (
    REJECTED_ERROR,
    VERIFICATION_FAILED_ERROR,
    OtpSession,
    SimulatedVerifier,
)
from otpautoread.sms.app_hash import generate_app_hash
from otpautoread.sms.receiver import NO_CODE_ERROR
from otpautoread.sms.retriever import SmsRetriever


class RejectingVerifier:
    async def verify(self, code: str) -> bool:
        return False


class BrokenVerifier:
    async def verify(self, code: str) -> bool:
        raise ConnectionError("backend unavailable")


def _session(bus: MessageBus, verifier=None) -> OtpSession:
    retriever = SmsRetriever(bus, session_id="s-1")
    return OtpSession(retriever, verifier=verifier or SimulatedVerifier(delay_seconds=0))


@pytest.mark.asyncio
async def test_sms_code_fills_and_verifies():
    bus = MessageBus()
    session = _session(bus)

    await session.start_listening()
    assert session.state.is_loading

    await bus.publish(SmsEnvelope(session_id="s-1", message="Your OTP is 1234 FA+9qCX9VSu"))
    await asyncio.wait_for(session.retriever.wait_for_code(), timeout=5)
    await session.wait_idle()

    assert session.state.otp_value == "1234"
    assert session.state.is_verified
    assert not session.state.is_loading
    assert session.state.error_message is None
    await session.close()
    await bus.close()


@pytest.mark.asyncio
async def test_message_without_code_falls_back_to_manual_entry():
    bus = MessageBus()
    session = _session(bus)

    await session.start_listening()
    await bus.publish(SmsEnvelope(session_id="s-1", message="Thanks for using our service"))
    await asyncio.wait_for(session.retriever.wait_for_code(), timeout=5)

    assert session.state.error_message == NO_CODE_ERROR
    assert not session.state.is_loading
    assert session.state.otp_value == ""

    assert await session.update_otp("98")
    assert session.state.error_message is None
    assert await session.update_otp("9876")
    assert session.state.is_verified
    await session.close()
    await bus.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["12a", "12345", "١٢"])
async def test_manual_entry_rejects_bad_input(value):
    session = _session(MessageBus())
    assert not await session.update_otp(value)
    assert session.state.otp_value == ""


@pytest.mark.asyncio
async def test_manual_entry_accepts_clearing():
    session = _session(MessageBus())
    assert await session.update_otp("12")
    assert await session.update_otp("")
    assert session.state.otp_value == ""


@pytest.mark.asyncio
async def test_verify_rejects_short_code():
    session = _session(MessageBus())
    assert not await session.verify_otp("12")
    assert session.state.error_message == "Please enter a valid 4-digit OTP"


@pytest.mark.asyncio
async def test_backend_rejection_sets_error():
    session = _session(MessageBus(), verifier=RejectingVerifier())
    assert not await session.verify_otp("1234")
    assert session.state.error_message == REJECTED_ERROR
    assert not session.state.is_verified
    assert not session.state.is_loading


@pytest.mark.asyncio
async def test_backend_failure_is_recoverable():
    session = _session(MessageBus(), verifier=BrokenVerifier())
    assert not await session.verify_otp("1234")
    assert session.state.error_message == VERIFICATION_FAILED_ERROR
    assert not session.state.is_loading


@pytest.mark.asyncio
async def test_resend_and_reset():
    bus = MessageBus()
    session = OtpSession(
        SmsRetriever(bus, session_id="s-1"),
        verifier=SimulatedVerifier(delay_seconds=0),
        app_hash="FA+9qCX9VSu",
    )
    await session.update_otp("1234")
    assert session.state.is_verified

    await session.resend_otp()
    assert session.state.otp_value == ""
    assert not session.state.is_verified
    assert session.state.is_loading
    assert session.retriever.active

    await session.reset()
    assert not session.retriever.active
    assert not session.state.is_loading
    assert session.state.app_hash == "FA+9qCX9VSu"
    await bus.close()


@pytest.mark.asyncio
async def test_from_settings_wires_length_and_app_hash():
    settings = RuntimeSettings.from_mapping(
        {
            "extractor": {"expected_length": 6},
            "retriever": {"timeout_seconds": 30},
            "app": {"package_name": "com.example.otpautoread", "signature": "abcdef"},
        }
    )
    session = OtpSession.from_settings(settings, message_bus=MessageBus(), session_id="s-1")

    assert session.code_length == 6
    assert session.retriever.timeout_seconds == 30
    assert session.state.app_hash == generate_app_hash("com.example.otpautoread", "abcdef")


@pytest.mark.asyncio
async def test_resend_drops_verification_of_previous_code():
    bus = MessageBus()
    session = _session(bus, verifier=SimulatedVerifier(delay_seconds=0.05))

    await session.start_listening()
    await bus.publish(SmsEnvelope(session_id="s-1", message="Your OTP is 1234"))
    await asyncio.wait_for(session.retriever.wait_for_code(), timeout=5)
    await session.resend_otp()
    await asyncio.sleep(0.1)

    assert session.state.otp_value == ""
    assert not session.state.is_verified
    assert session.state.is_loading
    assert session.retriever.active
    await session.close()
    await bus.close()


@pytest.mark.asyncio
async def test_reset_drops_verification_of_previous_code():
    bus = MessageBus()
    session = _session(bus, verifier=SimulatedVerifier(delay_seconds=0.05))

    await session.start_listening()
    await bus.publish(SmsEnvelope(session_id="s-1", message="Your OTP is 1234"))
    await asyncio.wait_for(session.retriever.wait_for_code(), timeout=5)
    await session.reset()
    await asyncio.sleep(0.1)

    assert session.state.otp_value == ""
    assert not session.state.is_verified
    assert not session.state.is_loading
    await bus.close()
