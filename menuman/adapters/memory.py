"""
In-process adapters.

InMemoryCartStore is the default CartStore; it suits tests and
single-process deployments. Production projects point
MENUMAN["CART_STORE"] at their own persistence.

Usage in settings.py:
    MENUMAN = {
        "CART_STORE": "menuman.adapters.memory.InMemoryCartStore",
        "KV_STORE": "menuman.adapters.memory.InMemoryStore",
    }
"""

from __future__ import annotations

import copy
import threading
import time
from typing import Any

from menuman.cart import Cart
from menuman.protocols.cart import CartStore
from menuman.protocols.store import KeyValueStore


class InMemoryCartStore:
    """CartStore keeping carts in a dict. Loads return copies."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._carts: dict[str, Cart] = {}

    def load(self, session_key: str) -> Cart:
        with self._lock:
            cart = self._carts.get(session_key)
            if cart is None:
                return Cart(session_key=session_key)
            return copy.deepcopy(cart)

    def save(self, cart: Cart) -> None:
        with self._lock:
            self._carts[cart.session_key] = copy.deepcopy(cart)


class InMemoryStore:
    """KeyValueStore with per-key expiry, guarded by a lock."""

    def __init__(self, clock=time.monotonic) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, tuple[Any, float | None]] = {}
        self._clock = clock

    def _live(self, key: str):
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return entry

    def _expiry(self, timeout: int | None) -> float | None:
        return None if timeout is None else self._clock() + timeout

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._live(key)
            return default if entry is None else entry[0]

    def set(self, key: str, value: Any, timeout: int | None = None) -> None:
        with self._lock:
            self._data[key] = (value, self._expiry(timeout))

    def add(self, key: str, value: Any, timeout: int | None = None) -> bool:
        with self._lock:
            if self._live(key) is not None:
                return False
            self._data[key] = (value, self._expiry(timeout))
            return True

    def incr(self, key: str, delta: int = 1) -> int:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                raise ValueError(f"Key '{key}' not found")
            value, expires_at = entry
            value += delta
            self._data[key] = (value, expires_at)
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


# Verify protocol compliance at import time.
if not isinstance(InMemoryCartStore(), CartStore):
    raise TypeError("InMemoryCartStore does not implement CartStore protocol")
if not isinstance(InMemoryStore(), KeyValueStore):
    raise TypeError("InMemoryStore does not implement KeyValueStore protocol")
