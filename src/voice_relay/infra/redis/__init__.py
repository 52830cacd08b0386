"""
Redis infrastructure package.

Contains:
- Redis connection wrapper
- Work stream publisher
"""

from src.voice_relay.infra.redis.client import RedisClient
from src.voice_relay.infra.redis.stream_publisher import RedisStreamPublisher

__all__ = [
    "RedisClient",
    "RedisStreamPublisher",
]
