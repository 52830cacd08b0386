"""
Error taxonomy.

- ConnectivityError: startup failure to reach Telegram or Redis (fatal)
- TransientIOError: per-message I/O failure (logged, message dropped)
- SerializationError: malformed envelope (logged, message dropped)
"""

from __future__ import annotations


class VoiceRelayError(Exception):
    """Base class for all errors raised by this service."""


class ConnectivityError(VoiceRelayError):
    pass


class TransientIOError(VoiceRelayError):
    pass


class DownloadError(TransientIOError):
    """File metadata lookup or voice download failed."""


class PublishError(TransientIOError):
    pass


class DeliveryError(TransientIOError):
    """The chat platform rejected an outbound message."""


class SerializationError(VoiceRelayError):
    pass
