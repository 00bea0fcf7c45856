"""Tests for price calculation."""

from decimal import Decimal

import pytest

from menuman.exceptions import ComputationError, ConfigurationError
from menuman.pricing import (
    MemberConfiguration,
    delivery_fee_q,
    format_money,
    from_q,
    item_unit_price_q,
    line_total_q,
    order_total_q,
    package_savings_q,
    price,
    price_item,
    price_package,
    tax_q,
    to_q,
    unit_price_q,
)
from menuman.protocols import Package, PackageItem, PackageType, SelectedCustomization


class TestConversion:
    """Tests for to_q() / from_q()."""

    def test_to_q_rounds_half_up(self):
        assert to_q("1.005") == 101
        assert to_q(Decimal("18.99")) == 1899

    def test_to_q_float_uses_repr(self):
        assert to_q(0.1) == 10

    @pytest.mark.parametrize("amount", ["nan", "inf", "abc", float("nan")])
    def test_to_q_rejects_non_finite(self, amount):
        with pytest.raises(ComputationError) as exc:
            to_q(amount)
        assert exc.value.code == "NON_FINITE_AMOUNT"

    def test_from_q_two_places(self):
        assert from_q(1899) == Decimal("18.99")
        assert str(from_q(500)) == "5.00"


class TestUnitAndLine:
    """Tests for unit_price_q() / line_total_q() / price()."""

    def test_unit_price_adds_modifiers(self):
        assert unit_price_q(1899, [100, 150]) == 2149

    def test_negative_modifier_allowed(self):
        assert unit_price_q(1000, [-200]) == 800

    def test_negative_base_price(self):
        with pytest.raises(ComputationError) as exc:
            unit_price_q(-1)
        assert exc.value.code == "NEGATIVE_BASE_PRICE"

    def test_negative_unit_price_is_an_error(self):
        """Never clamped to zero."""
        with pytest.raises(ComputationError) as exc:
            unit_price_q(500, [-600])
        assert exc.value.code == "NEGATIVE_UNIT_PRICE"

    def test_line_total(self):
        assert line_total_q(2149, 3) == 6447

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True, "2"])
    def test_line_total_invalid_quantity(self, quantity):
        with pytest.raises(ComputationError) as exc:
            line_total_q(100, quantity)
        assert exc.value.code == "INVALID_QUANTITY"

    def test_price_in_currency(self):
        assert price(Decimal("10.00"), [Decimal("2.00"), Decimal("-1.00")]) == Decimal("11.00")

    def test_price_no_float_drift(self):
        assert price(0.1, [0.2], qty=3) == Decimal("0.90")


class TestItemPricing:
    """Tests for pricing a customized catalog item."""

    def test_price_item(self, doro_wat):
        selections = [
            SelectedCustomization("spice", ("hot",)),
            SelectedCustomization("extras", ("egg", "injera")),
        ]
        info = price_item(doro_wat, selections, qty=2)
        assert info.unit_price_q == 2349
        assert info.total_price_q == 4698
        assert info.unit_price == Decimal("23.49")

    def test_repeated_option_priced_once(self, doro_wat):
        selections = [
            SelectedCustomization("spice", ("mild",)),
            SelectedCustomization("extras", ("egg", "egg")),
        ]
        assert item_unit_price_q(doro_wat, selections) == 1899 + 150

    def test_unknown_customization(self, doro_wat):
        with pytest.raises(ConfigurationError) as exc:
            item_unit_price_q(doro_wat, [SelectedCustomization("sauce", ("berbere",))])
        assert exc.value.code == "UNKNOWN_CUSTOMIZATION"

    def test_unknown_option(self, doro_wat):
        with pytest.raises(ConfigurationError) as exc:
            item_unit_price_q(doro_wat, [SelectedCustomization("spice", ("volcanic",))])
        assert exc.value.code == "UNKNOWN_OPTION"


class TestPackagePricing:
    """Tests for package figures."""

    def test_price_package(self, family_feast, items_by_id):
        pricing = price_package(family_feast, items_by_id)
        assert pricing.price_q == 3999
        assert pricing.original_total_q == 1899 * 2 + 599
        assert pricing.savings_q == 398
        assert pricing.customized_total_q == 4397

    def test_customized_total_is_independent_of_savings(self, family_feast, items_by_id):
        configuration = {
            "doro-wat": MemberConfiguration(2, (SelectedCustomization("spice", ("hot",)),)),
        }
        pricing = price_package(family_feast, items_by_id, configuration)
        assert pricing.customized_total_q == 1999 * 2 + 599
        assert pricing.savings_q == 398

    def test_customized_total_uses_included_customizations(self, items_by_id):
        """A priced default option is part of the customized total."""
        package = Package(
            "hot-feast",
            "Hot Feast",
            3999,
            PackageType.DAILY,
            items=(PackageItem("doro-wat", 2, ("spice:hot",)), PackageItem("sambusa")),
        )
        pricing = price_package(package, items_by_id)
        assert pricing.customized_total_q == 1999 * 2 + 599
        assert pricing.savings_q == 1899 * 2 + 599 - 3999

    def test_negative_savings_reported(self, items_by_id):
        package = Package(
            "overpriced", "Overpriced", 1000, PackageType.DAILY, items=(PackageItem("sambusa"),)
        )
        assert package_savings_q(package, items_by_id) == 599 - 1000

    def test_missing_member(self, items_by_id):
        package = Package(
            "ghost", "Ghost", 1000, PackageType.DAILY, items=(PackageItem("kitfo"),)
        )
        with pytest.raises(ConfigurationError) as exc:
            price_package(package, items_by_id)
        assert exc.value.code == "MISSING_PACKAGE_ITEM"


class TestOrderTotals:
    """Tests for tax, delivery fee and order totals."""

    def test_default_tax_rate(self):
        assert tax_q(10000) == 1300

    def test_tax_rounds_half_up(self):
        assert tax_q(999, "0.13") == 130

    def test_tax_rate_from_settings(self, settings):
        settings.MENUMAN = {"TAX_RATE": "0.08"}
        assert tax_q(10000) == 800

    @pytest.mark.parametrize("rate", ["-0.1", "1.5", "nan"])
    def test_invalid_tax_rate(self, rate):
        with pytest.raises(ComputationError) as exc:
            tax_q(1000, rate)
        assert exc.value.code == "INVALID_TAX_RATE"

    @pytest.mark.parametrize(
        "distance, fee",
        [(None, 599), (0, 599), (3, 399), (5, 399), (7.5, 599), (10, 599), (12, 799)],
    )
    def test_delivery_fee_tiers(self, distance, fee):
        assert delivery_fee_q(distance) == fee

    def test_order_total(self):
        assert order_total_q(10000, delivery_fee=599, tip_q=200) == 12099

    def test_order_total_rejects_negative(self):
        with pytest.raises(ComputationError) as exc:
            order_total_q(-1)
        assert exc.value.code == "NEGATIVE_AMOUNT"


class TestFormatMoney:
    def test_thousands(self):
        assert format_money(123450) == "$1,234.50"

    def test_small_and_negative(self):
        assert format_money(5) == "$0.05"
        assert format_money(-250) == "-$2.50"
