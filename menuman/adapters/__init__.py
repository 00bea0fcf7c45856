"""Menuman adapters."""

from menuman.adapters.memory import InMemoryCartStore, InMemoryStore

__all__ = [
    "InMemoryCartStore",
    "InMemoryStore",
]
