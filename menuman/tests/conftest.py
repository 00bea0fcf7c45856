"""Pytest fixtures for Menuman tests."""

import pytest
from django.core.cache import cache

from menuman import conf
from menuman.adapters.memory import InMemoryCartStore, InMemoryStore
from menuman.protocols import (
    CatalogItem,
    Category,
    CustomizationDefinition,
    CustomizationKind,
    CustomizationOption,
    ItemStatus,
    NutritionInfo,
    Package,
    PackageItem,
    PackageType,
)

MAIN_DISHES = Category("cat-main", "Main Dishes")
SIDES = Category("cat-sides", "Sides")
SOUPS = Category("cat-soups", "Soups")
STARTERS = Category("cat-starters", "Starters")
DESSERTS = Category("cat-desserts", "Desserts")


@pytest.fixture(autouse=True)
def isolated_backends():
    """Give every test fresh in-memory stores and an empty cache."""
    conf._cart_store_instance = InMemoryCartStore()
    conf._kv_store_instance = InMemoryStore()
    cache.clear()
    yield
    conf.reset_cart_store()
    conf.reset_kv_store()


@pytest.fixture
def spice_level():
    return CustomizationDefinition(
        id="spice",
        name="Spice Level",
        kind=CustomizationKind.SINGLE,
        required=True,
        options=(
            CustomizationOption("mild", "Mild"),
            CustomizationOption("medium", "Medium"),
            CustomizationOption("hot", "Extra Hot", price_modifier_q=100),
        ),
    )


@pytest.fixture
def extras():
    return CustomizationDefinition(
        id="extras",
        name="Extras",
        kind=CustomizationKind.MULTI,
        max_selections=2,
        options=(
            CustomizationOption("egg", "Boiled Egg", price_modifier_q=150),
            CustomizationOption("injera", "Extra Injera", price_modifier_q=200),
            CustomizationOption("ayib", "Ayib", price_modifier_q=250, is_available=False),
            CustomizationOption("lentils", "Lentils", price_modifier_q=100),
        ),
    )


@pytest.fixture
def kitchen_note():
    return CustomizationDefinition(
        id="kitchen-note",
        name="Kitchen Note",
        kind=CustomizationKind.TEXT,
    )


@pytest.fixture
def doro_wat(spice_level, extras, kitchen_note):
    """Main dish with single, multi and text customizations."""
    return CatalogItem(
        id="doro-wat",
        name="Doro Wat",
        base_price_q=1899,  # $18.99
        category=MAIN_DISHES,
        tags=frozenset({"popular", "spicy", "traditional"}),
        customizations=(spice_level, extras, kitchen_note),
        preparation_time=45,
        nutrition=NutritionInfo(calories=650, protein=38),
    )


@pytest.fixture
def tibs():
    return CatalogItem(
        id="tibs",
        name="Beef Tibs",
        base_price_q=2099,
        category=MAIN_DISHES,
        tags=frozenset({"popular"}),
        preparation_time=30,
    )


@pytest.fixture
def lentil_soup():
    return CatalogItem(
        id="lentil-soup",
        name="Lentil Soup",
        base_price_q=899,
        category=SOUPS,
        tags=frozenset({"healthy"}),
        preparation_time=20,
    )


@pytest.fixture
def timatim():
    return CatalogItem(
        id="timatim",
        name="Timatim Salad",
        base_price_q=699,
        category=SIDES,
        tags=frozenset({"healthy"}),
        preparation_time=10,
    )


@pytest.fixture
def sambusa():
    return CatalogItem(
        id="sambusa",
        name="Sambusa",
        base_price_q=599,
        category=STARTERS,
        tags=frozenset({"popular"}),
        preparation_time=15,
    )


@pytest.fixture
def honey_cake():
    """Sold out, never recommended."""
    return CatalogItem(
        id="honey-cake",
        name="Honey Cake",
        base_price_q=650,
        category=DESSERTS,
        status=ItemStatus.SOLD_OUT,
    )


@pytest.fixture
def menu(doro_wat, tibs, lentil_soup, timatim, sambusa, honey_cake):
    """All items, in catalog order."""
    return [doro_wat, tibs, lentil_soup, timatim, sambusa, honey_cake]


@pytest.fixture
def items_by_id(menu):
    return {item.id: item for item in menu}


@pytest.fixture
def family_feast():
    """Daily package: 2 Doro Wat (mild) + 1 Sambusa. Members total $43.97."""
    return Package(
        id="family-feast",
        name="Family Feast",
        price_q=3999,
        type=PackageType.DAILY,
        items=(
            PackageItem("doro-wat", quantity=2, included_customizations=("spice:mild",)),
            PackageItem("sambusa", quantity=1),
        ),
        related_package_ids=("monthly-plan",),
    )


@pytest.fixture
def weekly_plan():
    return Package(
        id="weekly-plan",
        name="Weekly Plan",
        price_q=9999,
        type=PackageType.WEEKLY,
        items=(
            PackageItem("tibs", quantity=3),
            PackageItem("lentil-soup", quantity=2),
        ),
    )


@pytest.fixture
def monthly_plan():
    return Package(
        id="monthly-plan",
        name="Monthly Plan",
        price_q=29999,
        type=PackageType.MONTHLY,
        items=(
            PackageItem("tibs", quantity=10),
            PackageItem("timatim", quantity=10),
        ),
    )


@pytest.fixture
def retired_plan():
    return Package(
        id="retired-plan",
        name="Retired Plan",
        price_q=4999,
        type=PackageType.DAILY,
        items=(PackageItem("sambusa", quantity=4),),
        is_active=False,
    )


@pytest.fixture
def packages(family_feast, weekly_plan, monthly_plan, retired_plan):
    return [family_feast, weekly_plan, monthly_plan, retired_plan]
