"""
Django Menuman - Menu customization, pricing, cart and recommendations.

Usage:
    from menuman import MenuService, MenuError

    violations = MenuService.validate(item, selections)
    result = MenuService.add_to_cart(session_key, item, quantity=2, selections=selections)
"""


def __getattr__(name):
    if name == "MenuService":
        from menuman.service import MenuService

        return MenuService
    elif name == "MenuError":
        from menuman.exceptions import MenuError

        return MenuError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["MenuService", "MenuError"]
__version__ = "0.1.0"
