"""Feed stdin lines through the SMS listener as if each were a delivered message."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from otpautoread.core.message_bus import MessageBus
from otpautoread.core.models import SmsEnvelope
from otpautoread.core.settings import RuntimeSettings
from otpautoread.session import OtpSession, SimulatedVerifier
from otpautoread.utils.logging import get_logger, set_log_level


logger = get_logger("ListenerCLI")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Extract OTP codes from SMS bodies read on stdin.")
    parser.add_argument("--config", type=Path, default=Path("config/runtime.example.yml"), help="Path to runtime YAML")
    parser.add_argument("--session-id", default="cli")
    args = parser.parse_args()

    settings = RuntimeSettings.from_file(args.config) if args.config.exists() else RuntimeSettings()
    set_log_level(settings.log_level)
    message_bus = MessageBus()
    session = OtpSession.from_settings(
        settings,
        message_bus=message_bus,
        session_id=args.session_id,
        verifier=SimulatedVerifier(delay_seconds=0),
    )
    if session.state.app_hash:
        logger.info("App hash: %s", session.state.app_hash)

    try:
        for line in sys.stdin:
            body = line.rstrip("\n").replace("\\n", "\n")
            await session.start_listening()
            await message_bus.publish(SmsEnvelope(session_id=args.session_id, message=body))
            outcome = await session.retriever.wait_for_code()
            await session.wait_idle()
            print(outcome.code if outcome.found else f"NOT FOUND ({outcome.error})")
    finally:
        await session.close()
        await message_bus.close()


if __name__ == "__main__":
    asyncio.run(main())
