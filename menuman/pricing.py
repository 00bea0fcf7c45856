"""
Price calculation.

All arithmetic runs on integer cents (``_q`` values). Currency amounts are
converted with ROUND_HALF_UP at the boundary by to_q().

    unit_price_q = base_price_q + sum(selected option modifiers)
    line_total_q = unit_price_q * quantity

Invalid inputs raise ComputationError; nothing is coerced to zero.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Mapping

from menuman.exceptions import ComputationError, ConfigurationError
from menuman.ingestion import package_member_selections
from menuman.protocols.catalog import CatalogItem, Package, SelectedCustomization

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# (max distance in km, fee in cents); beyond the last tier FAR_DELIVERY_FEE_Q applies
DELIVERY_FEE_TIERS = ((5, 399), (10, 599))
FAR_DELIVERY_FEE_Q = 799
DEFAULT_DELIVERY_FEE_Q = 599


def to_q(amount) -> int:
    """
    Convert a currency amount to cents, rounding half up.

    Raises:
        ComputationError: If the amount is not a finite number.
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ComputationError("NON_FINITE_AMOUNT", amount=str(amount)) from None
    if not value.is_finite():
        raise ComputationError("NON_FINITE_AMOUNT", amount=str(amount))
    return int((value * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_q(q: int) -> Decimal:
    """Cents to currency, always with two decimal places."""
    return (Decimal(q) / 100).quantize(CENT)


def _check_quantity(quantity) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ComputationError("INVALID_QUANTITY", quantity=quantity)


def unit_price_q(base_price_q: int, modifiers_q: Iterable[int] = ()) -> int:
    """
    Unit price in cents.

    Raises:
        ComputationError: If the base price or the resulting unit price is negative.
    """
    if base_price_q < 0:
        raise ComputationError("NEGATIVE_BASE_PRICE", base_price_q=base_price_q)
    total = base_price_q + sum(modifiers_q)
    if total < 0:
        raise ComputationError("NEGATIVE_UNIT_PRICE", unit_price_q=total)
    return total


def line_total_q(unit_q: int, quantity: int) -> int:
    """Line total in cents. Quantity must be a positive int."""
    _check_quantity(quantity)
    if unit_q < 0:
        raise ComputationError("NEGATIVE_UNIT_PRICE", unit_price_q=unit_q)
    return unit_q * quantity


def price(base_price, modifiers: Iterable = (), qty: int = 1) -> Decimal:
    """
    Line total in currency units.

    Example:
        >>> price(Decimal("10.00"), [Decimal("2.00"), Decimal("-1.00")])
        Decimal('11.00')
    """
    unit = unit_price_q(to_q(base_price), [to_q(m) for m in modifiers])
    return from_q(line_total_q(unit, qty))


def selected_modifiers_q(
    item: CatalogItem, selections: Iterable[SelectedCustomization]
) -> list[int]:
    """
    Price modifiers (cents) of every selected option.

    Raises:
        ConfigurationError: If a selection references an id the item lacks.
    """
    modifiers = []
    for selected in selections:
        definition = item.get_customization(selected.customization_id)
        if definition is None:
            logger.warning(
                "Pricing item %s: unknown customization %r",
                item.id, selected.customization_id,
            )
            raise ConfigurationError(
                "UNKNOWN_CUSTOMIZATION",
                item_id=item.id,
                customization_id=selected.customization_id,
            )
        for option_id in selected.distinct_option_ids:
            option = definition.get_option(option_id)
            if option is None:
                logger.warning(
                    "Pricing item %s: unknown option %r on %s",
                    item.id, option_id, definition.id,
                )
                raise ConfigurationError(
                    "UNKNOWN_OPTION",
                    item_id=item.id,
                    customization_id=definition.id,
                    option_id=option_id,
                )
            modifiers.append(option.price_modifier_q)
    return modifiers


def item_unit_price_q(
    item: CatalogItem, selections: Iterable[SelectedCustomization] = ()
) -> int:
    """Customized unit price of an item, in cents."""
    return unit_price_q(item.base_price_q, selected_modifiers_q(item, selections))


@dataclass(frozen=True)
class PriceInfo:
    """Price information."""

    item_id: str
    unit_price_q: int
    total_price_q: int
    qty: int

    @property
    def unit_price(self) -> Decimal:
        return from_q(self.unit_price_q)

    @property
    def total_price(self) -> Decimal:
        return from_q(self.total_price_q)


def price_item(
    item: CatalogItem,
    selections: Iterable[SelectedCustomization] = (),
    qty: int = 1,
) -> PriceInfo:
    unit = item_unit_price_q(item, selections)
    return PriceInfo(
        item_id=item.id,
        unit_price_q=unit,
        total_price_q=line_total_q(unit, qty),
        qty=qty,
    )


# ======================================================================
# PACKAGES
# ======================================================================


@dataclass(frozen=True)
class MemberConfiguration:
    """User configuration of one package member."""

    quantity: int
    selections: tuple[SelectedCustomization, ...] = ()


@dataclass(frozen=True)
class PackagePricing:
    """
    Package price figures.

    savings_q is computed from uncustomized base prices only;
    customized_total_q is an independent display figure.
    """

    package_id: str
    price_q: int
    original_total_q: int
    savings_q: int
    customized_total_q: int


def get_member_item(package: Package, items_by_id: Mapping[str, CatalogItem], item_id: str):
    item = items_by_id.get(item_id)
    if item is None:
        logger.warning("Package %s references missing item %s", package.id, item_id)
        raise ConfigurationError(
            "MISSING_PACKAGE_ITEM", package_id=package.id, item_id=item_id
        )
    return item


def package_original_total_q(
    package: Package, items_by_id: Mapping[str, CatalogItem]
) -> int:
    """Sum of member base prices times their package quantity."""
    total = 0
    for member in package.items:
        item = get_member_item(package, items_by_id, member.menu_item_id)
        total += line_total_q(unit_price_q(item.base_price_q), member.quantity)
    return total


def package_savings_q(package: Package, items_by_id: Mapping[str, CatalogItem]) -> int:
    """
    Original total minus package price.

    Negative when the package costs more than its members bought separately.
    """
    if package.price_q < 0:
        raise ComputationError("NEGATIVE_AMOUNT", package_id=package.id, price_q=package.price_q)
    return package_original_total_q(package, items_by_id) - package.price_q


def package_configuration(
    package: Package,
    items_by_id: Mapping[str, CatalogItem],
    configuration: Mapping[str, MemberConfiguration] | None = None,
) -> dict[str, MemberConfiguration]:
    """
    Complete a member configuration.

    Members absent from configuration keep their package quantity and the
    package's included customizations.

    Raises:
        ConfigurationError: If a member is missing or an included reference is unknown.
    """
    defaults = package_member_selections(package, items_by_id)
    completed = dict(configuration or {})
    for member in package.items:
        completed.setdefault(
            member.menu_item_id,
            MemberConfiguration(member.quantity, defaults[member.menu_item_id]),
        )
    return completed


def package_customized_total_q(
    package: Package,
    items_by_id: Mapping[str, CatalogItem],
    configuration: Mapping[str, MemberConfiguration] | None = None,
) -> int:
    """
    Sum of customized member prices at their configured quantities.

    This is what adding the package to a cart with the same configuration
    charges.
    """
    configuration = package_configuration(package, items_by_id, configuration)
    total = 0
    for member in package.items:
        item = get_member_item(package, items_by_id, member.menu_item_id)
        config = configuration[member.menu_item_id]
        total += line_total_q(item_unit_price_q(item, config.selections), config.quantity)
    return total


def price_package(
    package: Package,
    items_by_id: Mapping[str, CatalogItem],
    configuration: Mapping[str, MemberConfiguration] | None = None,
) -> PackagePricing:
    original = package_original_total_q(package, items_by_id)
    return PackagePricing(
        package_id=package.id,
        price_q=package.price_q,
        original_total_q=original,
        savings_q=package_savings_q(package, items_by_id),
        customized_total_q=package_customized_total_q(package, items_by_id, configuration),
    )


# ======================================================================
# ORDER TOTALS
# ======================================================================


def _check_non_negative(**amounts: int) -> None:
    for name, value in amounts.items():
        if value < 0:
            raise ComputationError("NEGATIVE_AMOUNT", field=name, value=value)


def tax_q(subtotal_q: int, rate=None) -> int:
    """
    Tax on a subtotal, rounded half up to the cent.

    Args:
        subtotal_q: Subtotal in cents
        rate: Tax rate in [0, 1]; defaults to MENUMAN["TAX_RATE"]
    """
    from menuman.conf import menuman_settings

    _check_non_negative(subtotal_q=subtotal_q)
    rate = Decimal(str(menuman_settings.TAX_RATE if rate is None else rate))
    if not rate.is_finite() or rate < 0 or rate > 1:
        raise ComputationError("INVALID_TAX_RATE", rate=str(rate))
    return int((Decimal(subtotal_q) * rate).to_integral_value(rounding=ROUND_HALF_UP))


def delivery_fee_q(distance_km=None) -> int:
    """Delivery fee tier for a distance; unknown distance uses the default fee."""
    if not distance_km:
        return DEFAULT_DELIVERY_FEE_Q
    for max_km, fee_q in DELIVERY_FEE_TIERS:
        if distance_km <= max_km:
            return fee_q
    return FAR_DELIVERY_FEE_Q


def order_total_q(
    subtotal_q: int,
    tax_rate=None,
    delivery_fee: int = 0,
    tip_q: int = 0,
) -> int:
    """Subtotal + tax + delivery fee + tip, in cents."""
    _check_non_negative(subtotal_q=subtotal_q, delivery_fee=delivery_fee, tip_q=tip_q)
    return subtotal_q + tax_q(subtotal_q, tax_rate) + delivery_fee + tip_q


def format_money(q: int, symbol: str = "$") -> str:
    """
    Format cents for display.

    Example:
        >>> format_money(123450)
        '$1,234.50'
    """
    sign = "-" if q < 0 else ""
    return f"{sign}{symbol}{from_q(abs(q)):,}"
