"""
VoiceEnvelope <-> bytes.

Wire format: a UTF-8 JSON object with the envelope's field names as keys.
`voice_message` is base64 (standard alphabet) since JSON has no binary type.
Both producer and consumer are ours, so there is no versioning.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import asdict
from typing import Any, Dict

from src.voice_relay.contracts.voice_envelope import VoiceEnvelope
from src.voice_relay.errors import SerializationError

# Field carrying the encoded envelope inside a Redis Stream entry.
STREAM_FIELD = "envelope"

_INT_FIELDS = ("chat_id", "user_id")
_STR_FIELDS = ("file_id", "transcribed")


def encode_envelope(envelope: VoiceEnvelope) -> bytes:
    doc: Dict[str, Any] = asdict(envelope)
    try:
        doc["voice_message"] = base64.b64encode(bytes(envelope.voice_message)).decode("ascii")
        return json.dumps(doc, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Cannot encode envelope: {exc}") from exc


def decode_envelope(data: bytes | str) -> VoiceEnvelope:
    """
    Parse bytes produced by `encode_envelope` (or by the worker).

    Raises SerializationError on anything that is not a well-formed envelope.
    """
    try:
        doc = json.loads(data)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Envelope is not valid JSON: {exc}") from exc

    if not isinstance(doc, dict):
        raise SerializationError(f"Envelope must be a JSON object, got {type(doc).__name__}")

    for name in _INT_FIELDS:
        value = doc.get(name)
        # bool is an int subclass; reject it explicitly
        if not isinstance(value, int) or isinstance(value, bool):
            raise SerializationError(f"Envelope field {name!r} must be an integer")

    for name in _STR_FIELDS:
        value = doc.get(name, "")
        if not isinstance(value, str):
            raise SerializationError(f"Envelope field {name!r} must be a string")

    raw_voice = doc.get("voice_message") or ""
    if not isinstance(raw_voice, str):
        raise SerializationError("Envelope field 'voice_message' must be a base64 string")
    try:
        voice = base64.b64decode(raw_voice, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SerializationError(f"Envelope field 'voice_message' is not valid base64: {exc}") from exc

    return VoiceEnvelope(
        chat_id=doc["chat_id"],
        file_id=doc.get("file_id", ""),
        user_id=doc["user_id"],
        voice_message=voice,
        transcribed=doc.get("transcribed", ""),
    )
