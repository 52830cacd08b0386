"""
Telegram chat gateway (aiogram).

Responsibilities:
- Long-poll the Bot API and yield inbound messages one at a time, in order
- Normalize aiogram updates into ChatEvent
- Resolve voice file ids to download URLs
- Send text replies

NOTE:
- No command logic and no bus logic here.
- The aiogram Bot is safe to share between the inbound loop and the
  transcript listener (same event loop).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

from aiogram import Bot
from aiogram.exceptions import AiogramError

from src.voice_relay.config.settings import Settings
from src.voice_relay.errors import ConnectivityError, DeliveryError, DownloadError
from src.voice_relay.logging.logger import setup_logger

logger = setup_logger(__name__)

# Pause after a failed getUpdates call before polling again.
POLL_ERROR_PAUSE_S = 1.0


@dataclass(frozen=True)
class ChatEvent:
    update_id: int
    chat_id: int
    user_id: int
    message_id: int
    text: str
    voice_file_id: Optional[str] = None

    @property
    def has_voice(self) -> bool:
        return bool(self.voice_file_id)


def to_chat_event(update: Any) -> Optional[ChatEvent]:
    """
    Convert an aiogram Update into a ChatEvent.

    Returns None for updates that carry no message (edits, callbacks, ...).
    """
    message = getattr(update, "message", None)
    if message is None:
        return None

    sender = getattr(message, "from_user", None)
    voice = getattr(message, "voice", None)

    return ChatEvent(
        update_id=update.update_id,
        chat_id=message.chat.id,
        user_id=sender.id if sender else 0,
        message_id=message.message_id,
        text=(message.text or "").strip(),
        voice_file_id=voice.file_id if voice else None,
    )


class TelegramGateway:
    """
    Chat gateway backed by the Telegram Bot API.
    """

    def __init__(self, bot: Bot, settings: Settings) -> None:
        self.bot = bot
        self.token = settings.telegram_bot_token
        self.file_base_url = settings.telegram_file_base_url.rstrip("/")
        self.poll_timeout_s = settings.telegram_poll_timeout_s
        self._offset: Optional[int] = None

    async def check_connection(self) -> str:
        """
        Call getMe once at startup.

        Returns the bot username. Raises ConnectivityError on failure.
        """
        try:
            me = await self.bot.get_me()
        except AiogramError as exc:
            logger.error("Failed to reach Telegram Bot API", exc_info=exc)
            raise ConnectivityError(f"Cannot reach Telegram Bot API: {exc}") from exc

        logger.info("Telegram connection established | bot=%s | id=%s", me.username, me.id)
        return me.username or ""

    async def events(self) -> AsyncIterator[ChatEvent]:
        """
        Yield inbound message events forever.

        The offset is advanced before each event is yielded, so an event is
        confirmed to Telegram on the next poll regardless of how it was handled.
        """
        logger.info("Telegram long-poll started | timeout_s=%s", self.poll_timeout_s)

        while True:
            try:
                updates = await self.bot.get_updates(
                    offset=self._offset,
                    timeout=self.poll_timeout_s,
                    allowed_updates=["message"],
                    request_timeout=self.poll_timeout_s + 10,
                )
            except AiogramError as exc:
                logger.error("getUpdates failed | offset=%s", self._offset, exc_info=exc)
                await asyncio.sleep(POLL_ERROR_PAUSE_S)
                continue

            if updates:
                logger.debug("Updates received | count=%s | offset=%s", len(updates), self._offset)

            for update in updates:
                self._offset = update.update_id + 1
                event = to_chat_event(update)
                if event is None:
                    logger.debug("Skipping non-message update | update_id=%s", update.update_id)
                    continue
                yield event

    async def get_file_url(self, file_id: str) -> str:
        """
        Resolve a file id to its download URL.

        The URL embeds the bot token; do not log it.
        """
        try:
            file = await self.bot.get_file(file_id)
        except AiogramError as exc:
            raise DownloadError(f"getFile failed for file_id={file_id}: {exc}") from exc

        if not file.file_path:
            raise DownloadError(f"getFile returned no file_path for file_id={file_id}")

        logger.debug("File resolved | file_id=%s | file_path=%s | size=%s", file_id, file.file_path, file.file_size)
        return f"{self.file_base_url}/bot{self.token}/{file.file_path}"

    async def send_text(self, chat_id: int, text: str) -> int:
        """
        Send a text message.

        Returns:
            message_id (int) of the sent message

        Raises:
            DeliveryError if Telegram rejects the call.
        """
        logger.info("Sending Telegram message | chat_id=%s | chars=%s", chat_id, len(text))

        try:
            msg = await self.bot.send_message(chat_id=chat_id, text=text)
        except AiogramError as exc:
            raise DeliveryError(f"sendMessage to chat_id={chat_id} failed: {exc}") from exc

        logger.debug("Telegram send success | chat_id=%s | message_id=%s", chat_id, msg.message_id)
        return msg.message_id

    async def close(self) -> None:
        await self.bot.session.close()
