"""
Django cache adapter -- KeyValueStore backed by a configured Django cache.

Point CACHES at Redis or Memcached and every process shares the same
rate-limit counters.

Usage in settings.py:
    CACHES = {"default": {"BACKEND": "django.core.cache.backends.redis.RedisCache", ...}}
    MENUMAN = {
        "KV_STORE": "menuman.adapters.cache.DjangoCacheStore",
    }
"""

from __future__ import annotations

from typing import Any

from django.core.cache import caches

from menuman.protocols.store import KeyValueStore


class DjangoCacheStore:
    """KeyValueStore delegating to django.core.cache.caches[alias]."""

    def __init__(self, alias: str = "default") -> None:
        self.alias = alias

    @property
    def cache(self):
        return caches[self.alias]

    def get(self, key: str, default: Any = None) -> Any:
        return self.cache.get(key, default)

    def set(self, key: str, value: Any, timeout: int | None = None) -> None:
        self.cache.set(key, value, timeout=timeout)

    def add(self, key: str, value: Any, timeout: int | None = None) -> bool:
        return self.cache.add(key, value, timeout=timeout)

    def incr(self, key: str, delta: int = 1) -> int:
        return self.cache.incr(key, delta)

    def delete(self, key: str) -> None:
        self.cache.delete(key)


# Verify protocol compliance at import time.
if not isinstance(DjangoCacheStore(), KeyValueStore):
    raise TypeError("DjangoCacheStore does not implement KeyValueStore protocol")
