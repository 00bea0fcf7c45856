"""Cart protocols."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from menuman.protocols.catalog import SelectedCustomization

if TYPE_CHECKING:
    from menuman.cart import Cart


@dataclass(frozen=True)
class CartLineItem:
    """One cart entry: a quantity of one customized menu item."""

    id: str
    item_id: str
    quantity: int
    unit_price_q: int
    selections: tuple[SelectedCustomization, ...] = ()
    note: str | None = None
    package_id: str | None = None

    @property
    def line_total_q(self) -> int:
        return self.unit_price_q * self.quantity

    @property
    def unit_price(self) -> Decimal:
        return Decimal(self.unit_price_q) / 100

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.line_total_q) / 100


@runtime_checkable
class CartStore(Protocol):
    """
    Interface for cart persistence.

    Implemented by the application that owns session storage.
    Menuman only loads a cart, mutates it in memory, and saves it back.
    """

    def load(self, session_key: str) -> Cart:
        """Return the cart for a session (empty if none exists)."""
        ...

    def save(self, cart: Cart) -> None:
        """Persist the cart."""
        ...
