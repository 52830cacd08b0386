"""
Inbound event loop.

Takes Telegram events strictly one at a time:
- voice message -> VoiceRelay
- command -> static reply

A failure while handling one event is logged and the loop moves on.
"""

from __future__ import annotations

from typing import AsyncIterable, Optional

from src.voice_relay.errors import DeliveryError
from src.voice_relay.gateway.commands import parse_command, reply_for_command
from src.voice_relay.gateway.telegram import ChatEvent, TelegramGateway
from src.voice_relay.logging.logger import setup_logger
from src.voice_relay.relay.voice_relay import VoiceRelay

logger = setup_logger(__name__)


class Bridge:
    def __init__(self, gateway: TelegramGateway, voice_relay: VoiceRelay) -> None:
        self.gateway = gateway
        self.voice_relay = voice_relay

    async def handle_event(self, event: ChatEvent) -> None:
        if event.has_voice:
            logger.info("Voice message received | chat_id=%s | user_id=%s", event.chat_id, event.user_id)
            await self.voice_relay.relay(event)

        command = parse_command(event.text)
        if command is None:
            return

        reply = reply_for_command(command)
        logger.info("Command received | chat_id=%s | command=%s", event.chat_id, command)
        if reply is None:
            return

        try:
            await self.gateway.send_text(event.chat_id, reply)
        except DeliveryError as exc:
            logger.error("Failed to send command reply | chat_id=%s | command=%s", event.chat_id, command, exc_info=exc)

    async def run(self, events: Optional[AsyncIterable[ChatEvent]] = None) -> None:
        """
        Consume `events` (default: the gateway's long-poll stream) until it ends.
        """
        source = events if events is not None else self.gateway.events()

        async for event in source:
            try:
                await self.handle_event(event)
            except Exception as exc:
                logger.error("Failed to handle event | update_id=%s | chat_id=%s", event.update_id, event.chat_id, exc_info=exc)
