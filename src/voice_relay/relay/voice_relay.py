"""
Voice relay.

Responsibilities:
- Resolve a voice message's file id to a download URL
- Download the audio bytes
- Wrap them in a VoiceEnvelope and publish it to the work stream

Failure of any step drops that one message: the error is logged, nothing is
retried and the user is not told.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable, Optional

from src.voice_relay.config.settings import Settings
from src.voice_relay.contracts.voice_envelope import VoiceEnvelope
from src.voice_relay.errors import VoiceRelayError
from src.voice_relay.gateway.telegram import ChatEvent, TelegramGateway
from src.voice_relay.infra.redis.stream_publisher import RedisStreamPublisher
from src.voice_relay.logging.logger import setup_logger
from src.voice_relay.relay.download import download_voice

logger = setup_logger(__name__)

Downloader = Callable[..., Awaitable[bytes]]


class VoiceRelay:
    def __init__(
        self,
        gateway: TelegramGateway,
        publisher: RedisStreamPublisher,
        settings: Settings,
        downloader: Downloader = download_voice,
    ) -> None:
        self.gateway = gateway
        self.publisher = publisher
        self.downloader = downloader
        self.timeout_s = settings.voice_download_timeout_s
        self.max_bytes = settings.voice_max_bytes

    async def relay(self, event: ChatEvent) -> Optional[str]:
        """
        Forward one voice message to the work stream.

        Returns:
            the work stream entry id, or None if the message was dropped.
        """
        if not event.voice_file_id:
            logger.warning("Relay called without voice | chat_id=%s | update_id=%s", event.chat_id, event.update_id)
            return None

        t_start = time.perf_counter()

        try:
            url = await self.gateway.get_file_url(event.voice_file_id)
            voice = await self.downloader(url, timeout_s=self.timeout_s, max_bytes=self.max_bytes)
            t_downloaded = time.perf_counter()

            envelope = VoiceEnvelope(
                chat_id=event.chat_id,
                file_id=event.voice_file_id,
                user_id=event.user_id,
                voice_message=voice,
            )
            stream_id = await self.publisher.publish_envelope(envelope)
        except VoiceRelayError as exc:
            logger.error(
                "Voice relay failed; message dropped | chat_id=%s | file_id=%s",
                event.chat_id,
                event.voice_file_id,
                exc_info=exc,
            )
            return None

        t_end = time.perf_counter()
        logger.info(
            "Voice message sent to work stream | chat_id=%s | user_id=%s | bytes=%s | stream_id=%s | download_s=%.3f | total_s=%.3f",
            event.chat_id,
            event.user_id,
            len(voice),
            stream_id,
            (t_downloaded - t_start),
            (t_end - t_start),
        )
        return stream_id
