"""
Cart line-item composition.

Line-item policy: one line item holds the full quantity of one customized
item. Adding N units of a dish yields a single line with quantity N;
adding a package yields one line per package member, each holding that
member's configured quantity.

Cart writes go through CartComposer, which serializes them per session:
load, mutate and save all happen while the session's lock is held.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
import weakref
from dataclasses import dataclass, field, replace
from typing import Iterable, Mapping

from menuman.exceptions import ComputationError, MenuError
from menuman.pricing import (
    MemberConfiguration,
    get_member_item,
    item_unit_price_q,
    line_total_q,
    package_configuration,
)
from menuman.protocols.cart import CartLineItem, CartStore
from menuman.protocols.catalog import CatalogItem, Package, SelectedCustomization, Violation
from menuman.validation import validate

logger = logging.getLogger(__name__)

_UNSAFE_NOTE_CHARS = re.compile(r"[<>]")


def sanitize_note(note: str | None) -> str | None:
    """Strip whitespace and angle brackets. Empty notes become None."""
    if note is None:
        return None
    cleaned = _UNSAFE_NOTE_CHARS.sub("", note).strip()
    return cleaned or None


def new_line_id() -> str:
    return uuid.uuid4().hex


def _selection_key(selections: Iterable[SelectedCustomization]) -> tuple:
    return tuple(
        sorted(
            (s.customization_id, tuple(sorted(s.distinct_option_ids)), (s.text_value or "").strip())
            for s in selections
        )
    )


def _merge_key(line: CartLineItem) -> tuple:
    return (
        line.item_id,
        line.unit_price_q,
        line.package_id,
        line.note,
        _selection_key(line.selections),
    )


@dataclass
class Cart:
    """Per-session cart aggregate."""

    session_key: str
    lines: list[CartLineItem] = field(default_factory=list)

    @property
    def subtotal_q(self) -> int:
        return sum(line.line_total_q for line in self.lines)

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    def has_items(self) -> bool:
        return bool(self.lines)

    def get_line(self, line_id: str) -> CartLineItem | None:
        for line in self.lines:
            if line.id == line_id:
                return line
        return None

    def add(self, lines: Iterable[CartLineItem]) -> list[CartLineItem]:
        """
        Add lines, merging into an existing line with the same item,
        selections, note and package.

        Returns:
            The stored lines (merged or appended), in input order.

        Raises:
            MenuError: If a new line reuses an id already in the cart.
        """
        stored = []
        for line in lines:
            index = next(
                (i for i, existing in enumerate(self.lines) if _merge_key(existing) == _merge_key(line)),
                None,
            )
            if index is not None:
                existing = self.lines[index]
                merged = replace(existing, quantity=existing.quantity + line.quantity)
                self.lines[index] = merged
                stored.append(merged)
                continue
            if self.get_line(line.id) is not None:
                raise MenuError("DUPLICATE_LINE_ID", line_id=line.id)
            self.lines.append(line)
            stored.append(line)
        return stored

    def remove(self, line_id: str) -> CartLineItem:
        line = self.get_line(line_id)
        if line is None:
            raise MenuError("LINE_NOT_FOUND", line_id=line_id)
        self.lines.remove(line)
        return line

    def update_quantity(self, line_id: str, quantity: int) -> CartLineItem | None:
        """Set a line's quantity. Zero or less removes the line and returns None."""
        if quantity <= 0:
            self.remove(line_id)
            return None
        line = self.get_line(line_id)
        if line is None:
            raise MenuError("LINE_NOT_FOUND", line_id=line_id)
        line_total_q(line.unit_price_q, quantity)
        updated = replace(line, quantity=quantity)
        self.lines[self.lines.index(line)] = updated
        return updated

    def update_selections(
        self,
        line_id: str,
        item: CatalogItem,
        selections: Iterable[SelectedCustomization],
    ) -> list[Violation]:
        """
        Replace a line's selections and reprice it from the item snapshot.

        The line keeps its id, quantity, note and package. Invalid
        selections leave the line untouched.

        Returns:
            Violations (empty when the line was updated)

        Raises:
            MenuError: LINE_NOT_FOUND, or ITEM_MISMATCH if item is not the line's item.
        """
        line = self.get_line(line_id)
        if line is None:
            raise MenuError("LINE_NOT_FOUND", line_id=line_id)
        if item.id != line.item_id:
            raise MenuError("ITEM_MISMATCH", line_id=line_id, item_id=item.id)

        selections = tuple(selections)
        violations = validate(item, selections)
        if violations:
            return violations
        updated = replace(
            line,
            selections=selections,
            unit_price_q=item_unit_price_q(item, selections),
        )
        self.lines[self.lines.index(line)] = updated
        return []

    def clear(self) -> None:
        self.lines.clear()


# ======================================================================
# COMPOSITION
# ======================================================================


def compose(
    item: CatalogItem,
    quantity: int,
    selections: Iterable[SelectedCustomization] = (),
    note: str | None = None,
    package_id: str | None = None,
) -> list[CartLineItem]:
    """
    Build the line items for one customized item.

    Selections must already be valid; callers are expected to run
    menuman.validation.validate() first and show its violations.

    Raises:
        MenuError: INVALID_SELECTION if selections do not validate.
        ComputationError: On invalid quantity or negative prices.
    """
    selections = tuple(selections)
    violations = validate(item, selections)
    if violations:
        raise MenuError(
            "INVALID_SELECTION",
            item_id=item.id,
            violations=[v.as_dict() for v in violations],
        )

    unit_q = item_unit_price_q(item, selections)
    line_total_q(unit_q, quantity)

    return [
        CartLineItem(
            id=new_line_id(),
            item_id=item.id,
            quantity=quantity,
            unit_price_q=unit_q,
            selections=selections,
            note=sanitize_note(note),
            package_id=package_id,
        )
    ]


def compose_package(
    package: Package,
    items_by_id: Mapping[str, CatalogItem],
    configuration: Mapping[str, MemberConfiguration] | None = None,
    note: str | None = None,
) -> list[CartLineItem]:
    """
    Build one line item per package member.

    Each member is priced at its own customized unit price. Members absent
    from configuration use the package's included customizations. Without
    a note, lines read "From <package> package".
    """
    configuration = package_configuration(package, items_by_id, configuration)
    note = sanitize_note(note) or f"From {package.name} package"
    lines = []
    for member in package.items:
        item = get_member_item(package, items_by_id, member.menu_item_id)
        config = configuration[member.menu_item_id]
        lines.extend(
            compose(item, config.quantity, config.selections, note=note, package_id=package.id)
        )
    return lines


# ======================================================================
# SESSION-SERIALIZED WRITES
# ======================================================================


class _SessionLock:
    """threading.Lock cannot be weakly referenced; this wrapper can."""

    __slots__ = ("_lock", "__weakref__")

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def __enter__(self) -> "_SessionLock":
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self._lock.release()


class SessionLocks:
    """
    One lock per session key, created on demand.

    Locks are held weakly: an entry lives only while some caller holds or
    waits on it, so idle sessions leave nothing behind.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, _SessionLock] = weakref.WeakValueDictionary()

    def for_session(self, session_key: str) -> _SessionLock:
        with self._guard:
            lock = self._locks.get(session_key)
            if lock is None:
                lock = self._locks[session_key] = _SessionLock()
            return lock

    def __len__(self) -> int:
        return len(self._locks)


class CartComposer:
    """
    Applies line items to carts held by a CartStore.

    Writes to the same session are serialized; different sessions
    never wait on each other.
    """

    def __init__(self, store: CartStore, locks: SessionLocks | None = None) -> None:
        self.store = store
        self.locks = locks if locks is not None else SessionLocks()

    def get(self, session_key: str) -> Cart:
        return self.store.load(session_key)

    def add(self, session_key: str, lines: list[CartLineItem]) -> list[CartLineItem]:
        from menuman.signals import cart_lines_added

        if not lines:
            return []
        with self.locks.for_session(session_key):
            cart = self.store.load(session_key)
            stored = cart.add(lines)
            self.store.save(cart)
        logger.debug(
            "Cart %s: added %d line(s), subtotal_q=%d",
            session_key, len(stored), cart.subtotal_q,
        )
        cart_lines_added.send(sender=Cart, session_key=session_key, lines=stored)
        return stored

    def remove(self, session_key: str, line_id: str) -> CartLineItem:
        from menuman.signals import cart_line_removed

        with self.locks.for_session(session_key):
            cart = self.store.load(session_key)
            line = cart.remove(line_id)
            self.store.save(cart)
        logger.debug("Cart %s: removed line %s", session_key, line_id)
        cart_line_removed.send(sender=Cart, session_key=session_key, line=line)
        return line

    def update_quantity(
        self, session_key: str, line_id: str, quantity: int
    ) -> CartLineItem | None:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ComputationError("INVALID_QUANTITY", quantity=quantity)
        if quantity <= 0:
            self.remove(session_key, line_id)
            return None
        with self.locks.for_session(session_key):
            cart = self.store.load(session_key)
            updated = cart.update_quantity(line_id, quantity)
            self.store.save(cart)
        return updated

    def clear(self, session_key: str) -> None:
        with self.locks.for_session(session_key):
            cart = self.store.load(session_key)
            cart.clear()
            self.store.save(cart)
        logger.debug("Cart %s: cleared", session_key)

    def update_selections(
        self,
        session_key: str,
        line_id: str,
        item: CatalogItem,
        selections: Iterable[SelectedCustomization],
    ) -> list[Violation]:
        """Edit a line's selections; the cart is saved only when they validate."""
        with self.locks.for_session(session_key):
            cart = self.store.load(session_key)
            violations = cart.update_selections(line_id, item, selections)
            if not violations:
                self.store.save(cart)
        if not violations:
            logger.debug("Cart %s: line %s reconfigured", session_key, line_id)
        return violations
