"""
VoiceEnvelope contract.

The only payload exchanged with the transcription worker, in both directions:
- work stream: voice_message populated, transcribed empty
- response stream: transcribed populated, voice_message usually empty

chat_id is the correlation key; the worker must echo it unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class VoiceEnvelope:
    chat_id: int
    file_id: str
    user_id: int
    voice_message: bytes = b""
    transcribed: str = ""
