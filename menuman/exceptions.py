"""Menuman exceptions."""

from typing import Any


ERROR_MESSAGES = {
    "NEGATIVE_BASE_PRICE": "Base price cannot be negative",
    "NEGATIVE_UNIT_PRICE": "Unit price cannot be negative",
    "NEGATIVE_AMOUNT": "Amount cannot be negative",
    "NON_FINITE_AMOUNT": "Amount must be a finite number",
    "INVALID_QUANTITY": "Quantity must be a positive integer",
    "INVALID_TAX_RATE": "Tax rate must be between 0 and 1",
    "UNKNOWN_CUSTOMIZATION": "Customization not found on item",
    "UNKNOWN_OPTION": "Option not found on customization",
    "MALFORMED_REFERENCE": "Malformed customization reference",
    "MISSING_PACKAGE_ITEM": "Package references a missing menu item",
    "INVALID_SELECTION": "Selections did not pass validation",
    "DUPLICATE_LINE_ID": "Line item id already present in cart",
    "LINE_NOT_FOUND": "Line item not found in cart",
    "ITEM_MISMATCH": "Item does not match the cart line",
    "RATE_LIMITED": "Too many requests",
}


class MenuError(Exception):
    """
    Structured exception for menu operations.

    Usage:
        try:
            MenuService.price(item, selections, qty=2)
        except MenuError as e:
            if e.code == "NEGATIVE_UNIT_PRICE":
                print(f"Item {e.item_id} is misconfigured")
    """

    def __init__(self, code: str, message: str = "", **data: Any) -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    @property
    def item_id(self) -> str | None:
        return self.data.get("item_id")

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "data": self.data,
        }


class ConfigurationError(MenuError):
    """Catalog data is inconsistent (unknown ids, malformed references)."""


class ComputationError(MenuError):
    """Price inputs are invalid (negative, non-finite, bad quantity)."""
