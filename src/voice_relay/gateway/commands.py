"""
Bot commands.

Static text replies only. A command maps to None when it is recognized but has
nothing to say.
"""

from __future__ import annotations

from typing import Dict, Optional

UNKNOWN_COMMAND_REPLY = "I don't know that command"

COMMAND_REPLIES: Dict[str, Optional[str]] = {
    "start": "Type /help to see available commands",
    "help": "Available commands:\n/whisper - how to get a voice message transcribed",
    "whisper": "Send me a voice message and I'll reply with its transcript.",
}


def parse_command(text: str) -> Optional[str]:
    """
    Return the command name for "/name", "/name args" or "/name@botname".

    Returns None when `text` is not a command.
    """
    text = (text or "").strip()
    if not text.startswith("/") or len(text) < 2 or text[1].isspace():
        return None

    token = text[1:].split(maxsplit=1)[0]
    name = token.split("@", 1)[0]
    return name.lower() or None


def reply_for_command(command: str) -> Optional[str]:
    if command in COMMAND_REPLIES:
        return COMMAND_REPLIES[command]
    return UNKNOWN_COMMAND_REPLY
