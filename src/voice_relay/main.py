"""
Voice relay service entrypoint.

Responsibilities:
- Load configuration once
- Verify Redis and Telegram are reachable (fatal otherwise)
- Start the transcript listener task
- Run the inbound Telegram loop

IMPORTANT:
- Transcription happens in an external worker reading the work stream.
- Shutdown is abrupt: nothing in flight is drained.
"""

from __future__ import annotations

import asyncio
import contextlib
import sys

from aiogram import Bot
from aiogram.utils.token import TokenValidationError
from pydantic import ValidationError

from src.voice_relay.config.settings import Settings
from src.voice_relay.errors import ConnectivityError
from src.voice_relay.gateway.telegram import TelegramGateway
from src.voice_relay.infra.redis import RedisClient, RedisStreamPublisher
from src.voice_relay.listeners.transcript_listener import TranscriptListener
from src.voice_relay.logging.logger import set_log_level, setup_logger
from src.voice_relay.relay.voice_relay import VoiceRelay
from src.voice_relay.runtime.bridge import Bridge

logger = setup_logger(__name__)


async def run_bridge(settings: Settings) -> None:
    """
    Wire components from `settings` and run until cancelled.
    """
    redis_client = RedisClient(settings.redis_url)
    gateway = TelegramGateway(Bot(token=settings.telegram_bot_token), settings)
    listener_task = None

    try:
        await redis_client.connect()
        await gateway.check_connection()

        publisher = RedisStreamPublisher(
            redis_client=redis_client,
            stream_name=settings.redis_stream_work,
            maxlen=settings.redis_stream_maxlen,
        )
        listener = TranscriptListener(
            redis_client=redis_client,
            gateway=gateway,
            stream_name=settings.redis_stream_response,
            group_name=settings.redis_response_consumer_group,
            consumer_name=settings.redis_response_consumer_name,
            max_concurrency=settings.listener_max_concurrency,
        )
        bridge = Bridge(gateway, VoiceRelay(gateway, publisher, settings))

        # Fail at startup, not inside the task, if the group cannot be created.
        await listener.ensure_consumer_group(await redis_client.get_client())
        listener_task = asyncio.create_task(listener.start(), name="transcript-listener")
        listener_task.add_done_callback(_log_listener_exit)

        logger.info(
            "Voice relay running | env=%s | work_stream=%s | response_stream=%s",
            settings.app_env,
            settings.redis_stream_work,
            settings.redis_stream_response,
        )
        await bridge.run()
    finally:
        if listener_task is not None:
            listener_task.cancel()
            # A listener crash was already logged by _log_listener_exit.
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await listener_task
        await gateway.close()
        await redis_client.close()


def _log_listener_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Transcript listener stopped; transcripts will not be delivered", exc_info=exc)


def main() -> int:
    try:
        settings = Settings()
    except ValidationError as exc:
        logger.error("Invalid configuration (is TELEGRAM_BOT_TOKEN set?)", exc_info=exc)
        return 2

    set_log_level(settings.app_log_level)

    try:
        asyncio.run(run_bridge(settings))
    except ConnectivityError as exc:
        logger.error("Startup failed: %s", exc)
        return 1
    except TokenValidationError as exc:
        logger.error("Invalid Telegram bot token: %s", exc)
        return 2
    except KeyboardInterrupt:
        logger.info("Interrupted; exiting")
    return 0


if __name__ == "__main__":
    sys.exit(main())
