# src/mysqlshard/cache.py
"""Key/value stores for state shared between pool instances.

The pool only needs ``get`` and ``set`` with a TTL. MemoryCache keeps values
inside the process; RedisCache shares them between workers.
"""
import json
import time
from typing import Any, Dict, Optional, Protocol, Tuple


class Cache(Protocol):
    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: int) -> None:
        ...


class MemoryCache:
    """Process-local cache with per-key expiry."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._items: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        item = self._items.get(key)
        if item is None:
            return None
        expires_at, value = item
        if expires_at <= self._clock():
            del self._items[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: int) -> None:
        self._items[key] = (self._clock() + ttl, value)

    def delete(self, key: str) -> None:
        self._items.pop(key, None)


class RedisCache:
    """Cache backed by a ``redis.Redis`` client.

    Values are stored JSON-encoded, so only JSON-compatible data survives a
    round trip.
    """

    def __init__(self, client, prefix: str = "mysqlshard:"):
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "mysqlshard:") -> 'RedisCache':
        import redis
        return cls(redis.Redis.from_url(url), prefix)

    def get(self, key: str) -> Optional[Any]:
        raw = self._client.get(self._prefix + key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int) -> None:
        self._client.set(self._prefix + key, json.dumps(value), ex=ttl)

    def delete(self, key: str) -> None:
        self._client.delete(self._prefix + key)
