"""Menuman protocols."""

from menuman.protocols.cart import CartLineItem, CartStore
from menuman.protocols.catalog import (
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
    SelectedCustomization,
    Violation,
)
from menuman.protocols.store import KeyValueStore

__all__ = [
    "CartLineItem",
    "CartStore",
    "CatalogItem",
    "Category",
    "CustomizationDefinition",
    "CustomizationKind",
    "CustomizationOption",
    "ItemStatus",
    "KeyValueStore",
    "NutritionInfo",
    "Package",
    "PackageItem",
    "PackageType",
    "SelectedCustomization",
    "Violation",
]
