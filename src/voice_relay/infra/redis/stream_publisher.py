"""
Redis Stream publisher (work stream).

Responsibilities:
- Serialize VoiceEnvelope and append it to the work stream
- Keep the stream bounded (voice payloads are large)
- Log publish lifecycle clearly

NOTE:
- This module does NOT consume anything; the transcription worker does.
"""

from __future__ import annotations

from redis.exceptions import RedisError

from src.voice_relay.contracts.serialization import STREAM_FIELD, encode_envelope
from src.voice_relay.contracts.voice_envelope import VoiceEnvelope
from src.voice_relay.errors import PublishError
from src.voice_relay.infra.redis.client import RedisClient
from src.voice_relay.logging.logger import setup_logger

logger = setup_logger(__name__)


class RedisStreamPublisher:
    """
    Publishes voice envelopes to a Redis Stream.
    """

    def __init__(self, redis_client: RedisClient, stream_name: str, maxlen: int | None = None) -> None:
        self.redis_client = redis_client
        self.stream_name = stream_name
        self.maxlen = maxlen

    async def publish_envelope(self, envelope: VoiceEnvelope) -> str:
        """
        Publish one envelope.

        Returns:
            stream_id (str): Redis-generated stream entry ID

        Raises:
            SerializationError if the envelope cannot be encoded,
            PublishError if Redis rejects the XADD.
        """
        data = encode_envelope(envelope)

        logger.info(
            "Publishing envelope to Redis Stream | stream=%s | chat_id=%s | file_id=%s | bytes=%s",
            self.stream_name,
            envelope.chat_id,
            envelope.file_id,
            len(data),
        )

        try:
            client = await self.redis_client.get_client()
            stream_id = await client.xadd(
                name=self.stream_name,
                fields={STREAM_FIELD: data},
                maxlen=self.maxlen,
                approximate=True,
            )
        except (RedisError, OSError) as exc:
            raise PublishError(f"XADD to {self.stream_name!r} failed: {exc}") from exc

        if isinstance(stream_id, bytes):
            stream_id = stream_id.decode("ascii")

        logger.debug(
            "Envelope published | stream=%s | stream_id=%s",
            self.stream_name,
            stream_id,
        )

        return stream_id
