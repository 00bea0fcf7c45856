"""
KeyValueStore protocol.

Shared counters (rate limits) live behind this interface instead of
module-level dicts, so several worker processes can share them.

The method names mirror Django's cache API, so any configured cache
(locmem, Redis, Memcached) can back it through
menuman.adapters.cache.DjangoCacheStore.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal expiring key-value store."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any, timeout: int | None = None) -> None:
        ...

    def add(self, key: str, value: Any, timeout: int | None = None) -> bool:
        """Set only if the key is absent. Return True when stored."""
        ...

    def incr(self, key: str, delta: int = 1) -> int:
        """Increment an existing integer. Raise ValueError if missing."""
        ...

    def delete(self, key: str) -> None:
        ...
