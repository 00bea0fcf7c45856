"""Catalog value types.

Snapshots of menu data supplied by the caller. Money is held in cents
(fields suffixed ``_q``); ``Decimal`` currency views are derived.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class CustomizationKind(str, Enum):
    """How a customization is answered."""

    SINGLE = "single"
    MULTI = "multi"
    TEXT = "text"


class ItemStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SOLD_OUT = "sold_out"
    LOW_STOCK = "low_stock"


RECOMMENDABLE_STATUSES = frozenset({ItemStatus.ACTIVE, ItemStatus.LOW_STOCK})


class PackageType(str, Enum):
    """Package cadence. Declaration order is the progression order."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def rank(self) -> int:
        return list(PackageType).index(self)


@dataclass(frozen=True)
class Category:
    id: str
    name: str


@dataclass(frozen=True)
class NutritionInfo:
    calories: int
    protein: int


@dataclass(frozen=True)
class CustomizationOption:
    """Selectable option. price_modifier_q is signed."""

    id: str
    name: str
    price_modifier_q: int = 0
    is_available: bool = True


@dataclass(frozen=True)
class CustomizationDefinition:
    """A named question attached to a menu item.

    max_selections only applies to MULTI customizations.
    """

    id: str
    name: str
    kind: CustomizationKind = CustomizationKind.SINGLE
    required: bool = False
    max_selections: int | None = None
    options: tuple[CustomizationOption, ...] = ()

    def get_option(self, option_id: str) -> CustomizationOption | None:
        for option in self.options:
            if option.id == option_id:
                return option
        return None


@dataclass(frozen=True)
class CatalogItem:
    """Orderable dish."""

    id: str
    name: str
    base_price_q: int
    category: Category
    tags: frozenset[str] = frozenset()
    customizations: tuple[CustomizationDefinition, ...] = ()
    preparation_time: int | None = None
    status: ItemStatus = ItemStatus.ACTIVE
    related_item_ids: tuple[str, ...] = ()
    nutrition: NutritionInfo | None = None

    @property
    def base_price(self) -> Decimal:
        """Base price in currency units."""
        return Decimal(self.base_price_q) / 100

    @property
    def is_recommendable(self) -> bool:
        return self.status in RECOMMENDABLE_STATUSES

    def get_customization(self, customization_id: str) -> CustomizationDefinition | None:
        for definition in self.customizations:
            if definition.id == customization_id:
                return definition
        return None


@dataclass(frozen=True)
class PackageItem:
    """
    Member of a package.

    included_customizations holds legacy "customizationId:optionId"
    strings; resolve them with menuman.ingestion before use.
    """

    menu_item_id: str
    quantity: int = 1
    included_customizations: tuple[str, ...] = ()


@dataclass(frozen=True)
class Package:
    """Fixed-price bundle of menu items."""

    id: str
    name: str
    price_q: int
    type: PackageType
    items: tuple[PackageItem, ...] = ()
    related_package_ids: tuple[str, ...] = ()
    is_active: bool = True
    features: tuple[str, ...] = ()

    @property
    def price(self) -> Decimal:
        return Decimal(self.price_q) / 100

    @property
    def member_ids(self) -> frozenset[str]:
        return frozenset(member.menu_item_id for member in self.items)

    @property
    def total_item_count(self) -> int:
        return sum(member.quantity for member in self.items)


@dataclass(frozen=True)
class SelectedCustomization:
    """User answer to one customization.

    option_ids keeps selection order; repeated ids count once.
    """

    customization_id: str
    option_ids: tuple[str, ...] = ()
    text_value: str | None = None

    @property
    def distinct_option_ids(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(self.option_ids))

    @property
    def has_text(self) -> bool:
        return bool(self.text_value and self.text_value.strip())


@dataclass(frozen=True)
class Violation:
    """User-correctable problem with a selection."""

    item_id: str
    customization_id: str | None
    code: str
    message: str

    def as_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "customization_id": self.customization_id,
            "code": self.code,
            "message": self.message,
        }
