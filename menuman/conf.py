"""
Menuman configuration.

Usage in settings.py:
    MENUMAN = {
        "MAX_RELATED_ITEMS": 6,
        "SCORING_WEIGHTS": {"item_similarity": {"same_category": 60}},
        "CART_STORE": "myproject.carts.RedisCartStore",
        "KV_STORE": "menuman.adapters.cache.DjangoCacheStore",
        "CART_RATE_LIMIT": 30,
    }
"""

import importlib
import threading
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


@dataclass
class MenumanSettings:
    """Menuman configuration settings."""

    MAX_RELATED_ITEMS: int = 6
    MAX_RELATED_PACKAGES: int = 3
    MAX_COMPLEMENTARY_ITEMS: int = 4
    MAX_QUANTITY: int = 99
    NOTE_MAX_LENGTH: int = 200
    SCORING_WEIGHTS: dict[str, dict[str, int]] = field(default_factory=dict)
    TAX_RATE: str = "0.13"
    CART_STORE: str = "menuman.adapters.memory.InMemoryCartStore"
    KV_STORE: str = "menuman.adapters.cache.DjangoCacheStore"
    CART_RATE_LIMIT: int | None = None
    CART_RATE_WINDOW_SECONDS: int = 900


def get_menuman_settings() -> MenumanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "MENUMAN", {})
    return MenumanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_menuman_settings(), name)


menuman_settings = _LazySettings()


def _import_backend(path: str):
    module_path, cls_name = path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, cls_name)()


# CartStore singleton
_cart_store_lock = threading.Lock()
_cart_store_instance = None


def get_cart_store():
    """
    Return the configured CartStore instance.

    Loads from MENUMAN["CART_STORE"] setting (dotted path).
    If _cart_store_instance was set directly (e.g. in tests), returns it as-is.
    """
    global _cart_store_instance
    if _cart_store_instance is not None:
        return _cart_store_instance
    with _cart_store_lock:
        if _cart_store_instance is None:
            _cart_store_instance = _import_backend(menuman_settings.CART_STORE)
    return _cart_store_instance


def reset_cart_store():
    """Reset CartStore singleton (for tests)."""
    global _cart_store_instance
    _cart_store_instance = None


# KeyValueStore singleton
_kv_store_lock = threading.Lock()
_kv_store_instance = None


def get_kv_store():
    """
    Return the configured KeyValueStore instance.

    Loads from MENUMAN["KV_STORE"] setting (dotted path).
    """
    global _kv_store_instance
    if _kv_store_instance is not None:
        return _kv_store_instance
    with _kv_store_lock:
        if _kv_store_instance is None:
            _kv_store_instance = _import_backend(menuman_settings.KV_STORE)
    return _kv_store_instance


def reset_kv_store():
    """Reset KeyValueStore singleton (for tests)."""
    global _kv_store_instance
    _kv_store_instance = None
