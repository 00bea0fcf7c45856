"""
Menuman public API.

CORE (essential):
    MenuService.validate(item, selections)        - Check selections
    MenuService.price(item, selections, qty)      - Price a customized item
    MenuService.add_to_cart(session_key, ...)     - Validate, price and add

PACKAGES:
    MenuService.price_package(package, items_by_id)       - Package figures
    MenuService.add_package_to_cart(session_key, ...)     - One line per member

CART:
    MenuService.get_cart / remove_from_cart / update_quantity / clear_cart
    MenuService.update_selections(session_key, line_id, item, selections)

RECOMMENDATIONS:
    MenuService.recommend(source, pool)     - Dispatching entry point
    MenuService.related_items / related_packages / items_for_package /
    packages_for_item / complementary_items
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from django.utils.translation import gettext as _

from menuman import recommendations
from menuman.cart import Cart, CartComposer, SessionLocks, compose, compose_package
from menuman.conf import get_cart_store, get_kv_store, menuman_settings
from menuman.exceptions import MenuError
from menuman.ingestion import CustomizationReference, resolve_references
from menuman.pricing import (
    MemberConfiguration,
    PackagePricing,
    PriceInfo,
    package_configuration,
    price_item,
)
from menuman.pricing import price_package as _price_package
from menuman.protocols.cart import CartLineItem
from menuman.protocols.catalog import CatalogItem, Package, SelectedCustomization, Violation
from menuman.ratelimit import RateLimiter
from menuman.validation import validate

logger = logging.getLogger(__name__)

# Locks must outlive a single call so concurrent requests share them.
_session_locks = SessionLocks()


@dataclass(frozen=True)
class AddToCartResult:
    """
    Outcome of a cart write that validates selections.

    Exactly one of lines / violations is non-empty.
    """

    lines: tuple[CartLineItem, ...] = ()
    violations: tuple[Violation, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.violations

    def as_dict(self) -> dict:
        return {
            "ok": self.ok,
            "lines": [line.id for line in self.lines],
            "violations": [v.as_dict() for v in self.violations],
        }


class MenuService:
    """
    Menuman public API.

    Uses @classmethod so projects can subclass and override single steps
    (e.g. _composer to plug a different lock strategy).
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def resolve(
        cls,
        item: CatalogItem,
        references: Iterable[CustomizationReference | str],
    ) -> tuple[SelectedCustomization, ...]:
        """
        Resolve id, name or legacy "custId:optId" references into selections.

        Raises:
            ConfigurationError: On unknown ids/names or malformed strings
        """
        return resolve_references(item, references)

    @classmethod
    def validate(
        cls,
        item: CatalogItem,
        selections: Iterable[SelectedCustomization] = (),
        quantity: int = 1,
        note: str | None = None,
    ) -> list[Violation]:
        """
        Validate selections plus the request-level limits.

        Returns:
            List of Violation (empty when the request can be added)
        """
        violations = validate(item, selections)
        max_quantity = menuman_settings.MAX_QUANTITY
        if not isinstance(quantity, bool) and isinstance(quantity, int) and quantity > max_quantity:
            violations.append(
                Violation(
                    item.id,
                    None,
                    "QUANTITY_LIMIT",
                    _("Maximum quantity is %(max)d") % {"max": max_quantity},
                )
            )
        violations.extend(cls._note_violations(item.id, note))
        return violations

    @classmethod
    def _note_violations(cls, item_id: str, note: str | None) -> list[Violation]:
        max_length = menuman_settings.NOTE_MAX_LENGTH
        if note is None or len(note) <= max_length:
            return []
        return [
            Violation(
                item_id,
                None,
                "NOTE_TOO_LONG",
                _("Special instructions cannot exceed %(max)d characters")
                % {"max": max_length},
            )
        ]

    @classmethod
    def price(
        cls,
        item: CatalogItem,
        selections: Iterable[SelectedCustomization] = (),
        qty: int = 1,
    ) -> PriceInfo:
        """
        Price a customized item.

        Raises:
            ComputationError: On invalid quantity or a negative unit price
            ConfigurationError: If a selection references an unknown id
        """
        return price_item(item, selections, qty)

    @classmethod
    def price_package(
        cls,
        package: Package,
        items_by_id: Mapping[str, CatalogItem],
        configuration: Mapping[str, MemberConfiguration] | None = None,
    ) -> PackagePricing:
        return _price_package(package, items_by_id, configuration)

    # ======================================================================
    # CART
    # ======================================================================

    @classmethod
    def _composer(cls) -> CartComposer:
        return CartComposer(get_cart_store(), _session_locks)

    @classmethod
    def _throttle(cls, session_key: str) -> None:
        limit = menuman_settings.CART_RATE_LIMIT
        if not limit:
            return
        limiter = RateLimiter(
            get_kv_store(),
            max_requests=limit,
            window_seconds=menuman_settings.CART_RATE_WINDOW_SECONDS,
        )
        result = limiter.check(f"cart:{session_key}")
        if not result.allowed:
            logger.info("Cart %s throttled until %s", session_key, result.reset_at)
            raise MenuError("RATE_LIMITED", session_key=session_key, reset_at=result.reset_at)

    @classmethod
    def add_to_cart(
        cls,
        session_key: str,
        item: CatalogItem,
        quantity: int = 1,
        selections: Iterable[SelectedCustomization] = (),
        note: str | None = None,
    ) -> AddToCartResult:
        """
        Validate, price and add a customized item to a session's cart.

        Violations are returned, not raised; nothing is added when any
        violation is present.

        Raises:
            MenuError: RATE_LIMITED when CART_RATE_LIMIT is exceeded
            ComputationError: On invalid quantity or negative prices
        """
        cls._throttle(session_key)
        selections = tuple(selections)
        violations = cls.validate(item, selections, quantity, note)
        if violations:
            return AddToCartResult(violations=tuple(violations))
        lines = compose(item, quantity, selections, note=note)
        return AddToCartResult(lines=tuple(cls._composer().add(session_key, lines)))

    @classmethod
    def add_package_to_cart(
        cls,
        session_key: str,
        package: Package,
        items_by_id: Mapping[str, CatalogItem],
        configuration: Mapping[str, MemberConfiguration] | None = None,
        note: str | None = None,
    ) -> AddToCartResult:
        """
        Add every package member as its own line.

        Members without a configuration use the package's included
        customizations at the package quantity. If any member's selections
        fail validation, nothing is added.

        Raises:
            ConfigurationError: If a member is missing from items_by_id
        """
        cls._throttle(session_key)
        configuration = package_configuration(package, items_by_id, configuration)

        violations = []
        for member in package.items:
            config = configuration[member.menu_item_id]
            violations.extend(
                cls.validate(items_by_id[member.menu_item_id], config.selections, config.quantity)
            )
        violations.extend(cls._note_violations(package.id, note))
        if violations:
            return AddToCartResult(violations=tuple(violations))

        lines = compose_package(package, items_by_id, configuration, note=note)
        return AddToCartResult(lines=tuple(cls._composer().add(session_key, lines)))

    @classmethod
    def get_cart(cls, session_key: str) -> Cart:
        return cls._composer().get(session_key)

    @classmethod
    def remove_from_cart(cls, session_key: str, line_id: str) -> CartLineItem:
        """
        Raises:
            MenuError: LINE_NOT_FOUND
        """
        return cls._composer().remove(session_key, line_id)

    @classmethod
    def update_quantity(
        cls, session_key: str, line_id: str, quantity: int
    ) -> CartLineItem | None:
        """Set a line's quantity; zero or less removes it and returns None."""
        return cls._composer().update_quantity(session_key, line_id, quantity)

    @classmethod
    def update_selections(
        cls,
        session_key: str,
        line_id: str,
        item: CatalogItem,
        selections: Iterable[SelectedCustomization],
    ) -> AddToCartResult:
        """
        Edit a cart line's customizations and reprice it.

        Violations are returned and leave the line untouched.

        Raises:
            MenuError: LINE_NOT_FOUND, or ITEM_MISMATCH if item is not the line's item
        """
        composer = cls._composer()
        violations = composer.update_selections(session_key, line_id, item, selections)
        if violations:
            return AddToCartResult(violations=tuple(violations))
        return AddToCartResult(lines=(composer.get(session_key).get_line(line_id),))

    @classmethod
    def clear_cart(cls, session_key: str) -> None:
        cls._composer().clear(session_key)

    # ======================================================================
    # RECOMMENDATIONS
    # ======================================================================

    @classmethod
    def recommend(cls, source, pool: Iterable, max_items: int | None = None) -> list:
        return recommendations.recommend(source, pool, max_items)

    @classmethod
    def related_items(cls, item: CatalogItem, pool, max_items: int | None = None):
        return recommendations.related_items(item, pool, max_items)

    @classmethod
    def related_packages(cls, package: Package, pool, max_items: int | None = None):
        return recommendations.related_packages(package, pool, max_items)

    @classmethod
    def items_for_package(
        cls,
        package: Package,
        pool,
        max_items: int | None = None,
        items_by_id: Mapping[str, CatalogItem] | None = None,
    ):
        return recommendations.items_for_package(package, pool, max_items, items_by_id)

    @classmethod
    def packages_for_item(cls, item: CatalogItem, pool, max_items: int | None = None):
        return recommendations.packages_for_item(item, pool, max_items)

    @classmethod
    def complementary_items(cls, item: CatalogItem, pool, max_items: int | None = None):
        return recommendations.complementary_items(item, pool, max_items)
