"""Read cache for the full message list and individual messages.

The cache is an optimisation only: a miss always falls through to the store
and every write invalidates the affected entries before it completes.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from threading import Lock
from typing import Any, Protocol

import redis

from rolling_paper.core.errors import StorageError
from rolling_paper.core.settings import Settings
from rolling_paper.repositories.base import MessageRecord

__all__ = ["MemoryCache", "MessageCache", "NullCache", "RedisCache", "build_cache"]

logger = logging.getLogger(__name__)

_ALL_KEY = "all"


class MessageCache(Protocol):
    """Operations the board service relies on."""

    def get_all(self) -> list[MessageRecord] | None: ...

    def put_all(self, records: list[MessageRecord]) -> None: ...

    def get_message(self, message_id: str) -> MessageRecord | None: ...

    def put_message(self, record: MessageRecord) -> None: ...

    def invalidate(self, message_id: str | None = None) -> None: ...

    def close(self) -> None: ...


class NullCache:
    """Cache that never holds anything."""

    def get_all(self) -> list[MessageRecord] | None:
        return None

    def put_all(self, records: list[MessageRecord]) -> None:
        return None

    def get_message(self, message_id: str) -> MessageRecord | None:
        return None

    def put_message(self, record: MessageRecord) -> None:
        return None

    def invalidate(self, message_id: str | None = None) -> None:
        return None

    def close(self) -> None:
        return None


class MemoryCache:
    """Process-local TTL cache."""

    def __init__(
        self,
        list_ttl: float = 60,
        message_ttl: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.list_ttl = list_ttl
        self.message_ttl = message_ttl
        self._clock = clock
        self._lock = Lock()
        self._all: tuple[float, list[MessageRecord]] | None = None
        self._messages: dict[str, tuple[float, MessageRecord]] = {}

    def get_all(self) -> list[MessageRecord] | None:
        with self._lock:
            if self._all is None:
                return None
            expires_at, records = self._all
            if expires_at <= self._clock():
                self._all = None
                return None
            return list(records)

    def put_all(self, records: list[MessageRecord]) -> None:
        with self._lock:
            self._all = (self._clock() + self.list_ttl, list(records))

    def get_message(self, message_id: str) -> MessageRecord | None:
        with self._lock:
            entry = self._messages.get(message_id)
            if entry is None:
                return None
            expires_at, record = entry
            if expires_at <= self._clock():
                del self._messages[message_id]
                return None
            return record

    def put_message(self, record: MessageRecord) -> None:
        with self._lock:
            self._messages[record.id] = (self._clock() + self.message_ttl, record)

    def invalidate(self, message_id: str | None = None) -> None:
        with self._lock:
            self._all = None
            if message_id is not None:
                self._messages.pop(message_id, None)

    def close(self) -> None:
        with self._lock:
            self._all = None
            self._messages.clear()


class RedisCache:
    """Cache shared between processes through Redis.

    Read and write failures degrade to misses; a failed invalidation is an
    error because it would leave stale entries behind.
    """

    def __init__(
        self,
        client: redis.Redis,
        list_ttl: int = 60,
        message_ttl: int = 300,
        prefix: str = "rolling_paper:messages",
    ) -> None:
        self._redis = client
        self.list_ttl = list_ttl
        self.message_ttl = message_ttl
        self.prefix = prefix

    def _key(self, suffix: str) -> str:
        return f"{self.prefix}:{suffix}"

    def _message_key(self, message_id: str) -> str:
        return self._key(f"id:{message_id}")

    def _load(self, key: str) -> Any:
        try:
            raw = self._redis.get(key)
        except redis.RedisError as exc:
            logger.warning("Redis read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    def _store(self, key: str, value: Any, ttl: int) -> None:
        try:
            self._redis.set(key, json.dumps(value, ensure_ascii=False), ex=ttl)
        except redis.RedisError as exc:
            logger.warning("Redis write failed for %s: %s", key, exc)

    def get_all(self) -> list[MessageRecord] | None:
        data = self._load(self._key(_ALL_KEY))
        if data is None:
            return None
        return [MessageRecord.from_dict(item) for item in data]

    def put_all(self, records: list[MessageRecord]) -> None:
        self._store(self._key(_ALL_KEY), [record.to_dict() for record in records], self.list_ttl)

    def get_message(self, message_id: str) -> MessageRecord | None:
        data = self._load(self._message_key(message_id))
        if data is None:
            return None
        return MessageRecord.from_dict(data)

    def put_message(self, record: MessageRecord) -> None:
        self._store(self._message_key(record.id), record.to_dict(), self.message_ttl)

    def invalidate(self, message_id: str | None = None) -> None:
        keys = [self._key(_ALL_KEY)]
        if message_id is not None:
            keys.append(self._message_key(message_id))
        try:
            self._redis.delete(*keys)
        except redis.RedisError as exc:
            logger.error("Redis invalidation failed for %s", keys, exc_info=True)
            raise StorageError("Message cache is unavailable") from exc

    def close(self) -> None:
        try:
            self._redis.close()
        except redis.RedisError:  # pragma: no cover - best effort on shutdown
            logger.warning("Failed to close Redis connection", exc_info=True)


def build_cache(settings: Settings) -> MessageCache:
    """Return the cache selected by ``CACHE_BACKEND``."""
    if settings.cache_backend == "redis":
        client = redis.from_url(settings.redis_url)
        logger.info("Using Redis message cache at %s", settings.redis_url)
        return RedisCache(
            client,
            list_ttl=settings.cache_list_ttl_seconds,
            message_ttl=settings.cache_message_ttl_seconds,
        )
    if settings.cache_backend == "memory":
        return MemoryCache(
            list_ttl=settings.cache_list_ttl_seconds,
            message_ttl=settings.cache_message_ttl_seconds,
        )
    return NullCache()
