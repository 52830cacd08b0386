import asyncio

from src.tests.fakes import (
    FakeDownloader,
    FakeGateway,
    FakeRedis,
    FakeRedisClient,
    make_settings,
    text_event,
    voice_event,
)
from src.voice_relay.contracts.serialization import STREAM_FIELD, decode_envelope
from src.voice_relay.infra.redis.stream_publisher import RedisStreamPublisher
from src.voice_relay.relay.voice_relay import VoiceRelay
from src.voice_relay.runtime.bridge import Bridge


def _run(coro):  # noqa: ANN001
    return asyncio.run(coro)


async def _events(*events):
    for event in events:
        yield event


def test_loop_continues_after_download_failure():
    gateway, redis = FakeGateway(), FakeRedis()
    downloader = FakeDownloader(data=b"second", fail_for={"https://files.example/broken.oga"})
    publisher = RedisStreamPublisher(FakeRedisClient(redis), "voiceMsg")
    bridge = Bridge(gateway, VoiceRelay(gateway, publisher, make_settings(), downloader=downloader))

    _run(
        bridge.run(
            _events(
                voice_event(update_id=1, chat_id=1, file_id="broken"),
                voice_event(update_id=2, chat_id=2, file_id="ok"),
                text_event("/start", update_id=3, chat_id=3),
            )
        )
    )

    assert len(redis.added) == 1
    envelope = decode_envelope(redis.added[0]["fields"][STREAM_FIELD])
    assert envelope.chat_id == 2
    assert envelope.voice_message == b"second"
    assert len(gateway.sent) == 1
    assert gateway.sent[0][0] == 3


def test_loop_survives_unexpected_handler_error():
    class ExplodingRelay:
        async def relay(self, event):
            raise RuntimeError("boom")

    gateway = FakeGateway()
    bridge = Bridge(gateway, ExplodingRelay())

    _run(bridge.run(_events(voice_event(update_id=1), text_event("/xyz", update_id=2))))

    assert gateway.sent == [(42, "I don't know that command")]
