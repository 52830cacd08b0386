"""
Transcript listener (response stream consumer).

Responsibilities:
- Consume transcription results from the response Redis Stream via a consumer group
- Decode each entry into a VoiceEnvelope
- Deliver the transcript to the originating Telegram chat
- ACK every entry once handled; failures are logged and dropped, never redelivered

The consumer group is created at "$": a newly configured group only sees
transcripts published after it exists, never the stream history.

Runs as one long-lived task next to the inbound Telegram loop.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Set

from redis.exceptions import ResponseError

from src.voice_relay.contracts.serialization import STREAM_FIELD, decode_envelope
from src.voice_relay.errors import DeliveryError, SerializationError
from src.voice_relay.gateway.telegram import TelegramGateway
from src.voice_relay.infra.redis.client import RedisClient
from src.voice_relay.logging.logger import setup_logger

logger = setup_logger(__name__)

_FIELD_KEY = STREAM_FIELD.encode("ascii")


def _as_str(value: Any) -> str:
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)


def _envelope_field(payload: Dict[Any, Any]) -> Optional[bytes]:
    """Stream entries arrive with bytes keys (decode_responses=False)."""
    value = payload.get(_FIELD_KEY)
    if value is None:
        value = payload.get(STREAM_FIELD)
    if isinstance(value, str):
        value = value.encode("utf-8")
    return value


class TranscriptListener:
    def __init__(
        self,
        redis_client: RedisClient,
        gateway: TelegramGateway,
        stream_name: str,
        group_name: str,
        consumer_name: str,
        max_concurrency: int = 10,
    ) -> None:
        self.redis_client = redis_client
        self.gateway = gateway
        self.stream_name = stream_name
        self.group_name = group_name
        self.consumer_name = consumer_name
        self.max_concurrency = max_concurrency
        self.semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: Set[asyncio.Task] = set()

    async def start(self) -> None:
        """
        Start the consume loop (runs until cancelled).
        """
        client = await self.redis_client.get_client()
        await self.ensure_consumer_group(client)

        logger.info(
            "Transcript listener started | stream=%s | group=%s | consumer=%s | max_concurrency=%s",
            self.stream_name,
            self.group_name,
            self.consumer_name,
            self.max_concurrency,
        )

        try:
            while True:
                try:
                    await self._consume_once(client)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.error("Listener loop error", exc_info=exc)
                    await asyncio.sleep(1)
        finally:
            for task in list(self._tasks):
                task.cancel()

    async def ensure_consumer_group(self, client) -> None:
        try:
            await client.xgroup_create(
                name=self.stream_name,
                groupname=self.group_name,
                id="$",
                mkstream=True,
            )
            logger.info("Response consumer group created | stream=%s | group=%s", self.stream_name, self.group_name)
        except ResponseError as exc:
            if "BUSYGROUP" in str(exc):
                logger.debug("Response consumer group already exists | stream=%s | group=%s", self.stream_name, self.group_name)
            else:
                raise

    async def _consume_once(self, client) -> None:
        """
        Read at most as many entries as there are free delivery slots.

        Slots are taken before XREADGROUP, so an entry only leaves the stream
        when a task can start on it right away.
        """
        await self.semaphore.acquire()
        slots = 1
        while slots < self.max_concurrency and not self.semaphore.locked():
            await self.semaphore.acquire()
            slots += 1

        try:
            response = await client.xreadgroup(
                groupname=self.group_name,
                consumername=self.consumer_name,
                streams={self.stream_name: ">"},
                count=slots,
                block=5000,
            )
        except BaseException:
            for _ in range(slots):
                self.semaphore.release()
            raise

        spawned = 0
        for _, messages in response or []:
            for stream_id, payload in messages:
                task = asyncio.create_task(self._process_and_release(client, stream_id, payload))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
                spawned += 1

        for _ in range(slots - spawned):
            self.semaphore.release()

    async def _process_and_release(self, client, stream_id: Any, payload: Dict[Any, Any]) -> None:
        try:
            await self.process_entry(client, stream_id, payload)
        except Exception as exc:
            logger.error("Failed to process response | stream_id=%s", _as_str(stream_id), exc_info=exc)
        finally:
            self.semaphore.release()

    async def process_entry(self, client, stream_id: Any, payload: Dict[Any, Any]) -> bool:
        """
        Handle one response stream entry and ACK it.

        Returns True if a transcript was delivered.
        """
        sid = _as_str(stream_id)
        try:
            return await self.deliver(sid, _envelope_field(payload))
        finally:
            await client.xack(self.stream_name, self.group_name, stream_id)
            logger.debug("Response acknowledged | stream_id=%s", sid)

    async def deliver(self, stream_id: str, data: Optional[bytes]) -> bool:
        """
        Decode `data` and send its transcript to the chat it came from.
        """
        if not data:
            logger.warning("Response entry without envelope field | stream_id=%s", stream_id)
            return False

        try:
            envelope = decode_envelope(data)
        except SerializationError as exc:
            logger.error("Failed to deserialize response | stream_id=%s", stream_id, exc_info=exc)
            return False

        logger.info("Received transcribed message | stream_id=%s | chat_id=%s", stream_id, envelope.chat_id)

        if not envelope.transcribed.strip():
            logger.warning("Empty transcript; nothing to send | stream_id=%s | chat_id=%s", stream_id, envelope.chat_id)
            return False

        try:
            await self.gateway.send_text(envelope.chat_id, envelope.transcribed)
        except DeliveryError as exc:
            logger.error("Failed to send transcript to Telegram | chat_id=%s", envelope.chat_id, exc_info=exc)
            return False

        logger.info("Transcribed message sent to Telegram | chat_id=%s", envelope.chat_id)
        return True
