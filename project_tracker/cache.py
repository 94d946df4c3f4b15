"""
Small TTL cache for upstream lookups (weather).

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)


class Cache(Protocol):
    """Minimal string cache interface."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...


@dataclass
class InMemoryCache:
    """Dict-backed cache with per-entry expiry."""

    items: dict[str, tuple[float, str]] = field(default_factory=dict)

    def get(self, key: str) -> Optional[str]:
        entry = self.items.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= time.time():
            del self.items[key]
            return None
        return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.items[key] = (time.time() + ttl_seconds, value)


@dataclass
class RedisCache:
    """Redis-backed cache using SETEX/GET."""

    url: str
    key_prefix: str = "tracker:"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(self.key_prefix + key)
        except redis_exceptions.ConnectionError:
            # Connection resets can happen on managed Redis. Treat as a miss
            # and reconnect for the next call.
            logger.warning("Redis connection lost during GET; reconnecting")
            self.client = redis.Redis.from_url(self.url)
            return None
        if value is None:
            return None
        return value.decode("utf-8")

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self.client.setex(self.key_prefix + key, ttl_seconds, value)
        except redis_exceptions.ConnectionError:
            logger.warning("Redis connection lost during SETEX; reconnecting")
            self.client = redis.Redis.from_url(self.url)
