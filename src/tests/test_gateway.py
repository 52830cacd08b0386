import asyncio
from types import SimpleNamespace

import pytest
from aiogram.exceptions import ClientDecodeError, TelegramBadRequest, TelegramNetworkError

from src.tests.fakes import TOKEN, make_settings, tg_update
from src.voice_relay.errors import ConnectivityError, DeliveryError, DownloadError
from src.voice_relay.gateway import telegram as telegram_module
from src.voice_relay.gateway.telegram import TelegramGateway, to_chat_event


def _run(coro):  # noqa: ANN001
    return asyncio.run(coro)


class FakeBot:
    def __init__(self, batches=None, *, file_path="voice/file_0.oga", fail=None):
        self.batches = list(batches or [])
        self.file_path = file_path
        self.fail = fail
        self.offsets = []
        self.sent = []

    async def get_updates(self, offset=None, timeout=None, allowed_updates=None, request_timeout=None):
        self.offsets.append(offset)
        if self.batches:
            batch = self.batches.pop(0)
            if isinstance(batch, Exception):
                raise batch
            return batch
        return []

    async def get_file(self, file_id):
        if self.fail:
            raise self.fail
        return SimpleNamespace(file_id=file_id, file_path=self.file_path, file_size=1234)

    async def send_message(self, chat_id, text):
        if self.fail:
            raise self.fail
        self.sent.append((chat_id, text))
        return SimpleNamespace(message_id=len(self.sent))

    async def get_me(self):
        if self.fail:
            raise self.fail
        return SimpleNamespace(id=1, username="relay_bot")


async def _take(gateway: TelegramGateway, n: int):
    out = []
    gen = gateway.events()
    async for event in gen:
        out.append(event)
        if len(out) == n:
            break
    await gen.aclose()
    return out


def test_to_chat_event_reads_voice_and_sender():
    event = to_chat_event(tg_update(5, chat_id=42, user_id=7, voice_file_id="AwAC"))
    assert event.chat_id == 42
    assert event.user_id == 7
    assert event.voice_file_id == "AwAC"
    assert event.has_voice
    assert event.text == ""


def test_to_chat_event_skips_updates_without_message():
    assert to_chat_event(SimpleNamespace(update_id=1, message=None)) is None


def test_to_chat_event_without_sender():
    assert to_chat_event(tg_update(1, user_id=None, text="/start")).user_id == 0


def test_events_advance_offset_and_skip_non_messages():
    bot = FakeBot(
        batches=[
            [tg_update(10, text="/start"), SimpleNamespace(update_id=11, message=None)],
            [tg_update(12, voice_file_id="v1")],
        ]
    )
    gateway = TelegramGateway(bot, make_settings())

    events = _run(_take(gateway, 2))

    assert [e.update_id for e in events] == [10, 12]
    assert bot.offsets == [None, 12]


def test_events_keep_polling_after_network_error(monkeypatch):
    monkeypatch.setattr(telegram_module, "POLL_ERROR_PAUSE_S", 0)
    bot = FakeBot(batches=[TelegramNetworkError(method=None, message="timeout"), [tg_update(3, text="hi")]])
    gateway = TelegramGateway(bot, make_settings())

    events = _run(_take(gateway, 1))

    assert events[0].text == "hi"
    assert bot.offsets == [None, None]


def test_events_keep_polling_after_undecodable_response(monkeypatch):
    monkeypatch.setattr(telegram_module, "POLL_ERROR_PAUSE_S", 0)
    bad_gateway = ClientDecodeError("Failed to decode object", ValueError("not json"), "<html>502 Bad Gateway</html>")
    bot = FakeBot(batches=[bad_gateway, [tg_update(4, voice_file_id="v4")]])
    gateway = TelegramGateway(bot, make_settings())

    events = _run(_take(gateway, 1))

    assert events[0].voice_file_id == "v4"
    assert bot.offsets == [None, None]


def _undecodable():
    return ClientDecodeError("Failed to decode object", ValueError("not json"), "<html></html>")


def test_undecodable_responses_map_to_error_taxonomy():
    gateway = TelegramGateway(FakeBot(fail=_undecodable()), make_settings())
    with pytest.raises(DownloadError):
        _run(gateway.get_file_url("AwAC"))
    with pytest.raises(DeliveryError):
        _run(gateway.send_text(42, "hello"))
    with pytest.raises(ConnectivityError):
        _run(gateway.check_connection())


def test_get_file_url_embeds_token_and_path():
    gateway = TelegramGateway(FakeBot(file_path="voice/file_9.oga"), make_settings())
    url = _run(gateway.get_file_url("AwAC"))
    assert url == f"https://api.telegram.org/file/bot{TOKEN}/voice/file_9.oga"


def test_get_file_url_without_path_is_download_error():
    gateway = TelegramGateway(FakeBot(file_path=None), make_settings())
    with pytest.raises(DownloadError):
        _run(gateway.get_file_url("AwAC"))


def test_get_file_api_error_is_download_error():
    gateway = TelegramGateway(FakeBot(fail=TelegramBadRequest(method=None, message="file is too big")), make_settings())
    with pytest.raises(DownloadError):
        _run(gateway.get_file_url("AwAC"))


def test_send_text_rejection_is_delivery_error():
    gateway = TelegramGateway(FakeBot(fail=TelegramBadRequest(method=None, message="chat not found")), make_settings())
    with pytest.raises(DeliveryError):
        _run(gateway.send_text(42, "hello"))


def test_send_text_returns_message_id():
    bot = FakeBot()
    gateway = TelegramGateway(bot, make_settings())
    assert _run(gateway.send_text(42, "hello")) == 1
    assert bot.sent == [(42, "hello")]


def test_check_connection_failure_is_fatal():
    gateway = TelegramGateway(FakeBot(fail=TelegramNetworkError(method=None, message="unreachable")), make_settings())
    with pytest.raises(ConnectivityError):
        _run(gateway.check_connection())
