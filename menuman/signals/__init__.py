"""
Menuman signals.

Signals:
    cart_lines_added:
        Sent after lines are added to a cart and the cart is saved.

        Kwargs:
            sender: Cart class
            session_key: str - the cart's session key
            lines: tuple[CartLineItem, ...] - the lines as stored (merged lines
                carry their new quantity)

        Example handler::

            from menuman.signals import cart_lines_added

            def on_lines_added(sender, session_key, lines, **kwargs):
                logger.info("Cart %s: %d line(s) added", session_key, len(lines))

            cart_lines_added.connect(on_lines_added)

    cart_line_removed:
        Sent after a line leaves a cart, either by remove() or by a
        quantity update to zero or below.

        Kwargs:
            sender: Cart class
            session_key: str - the cart's session key
            line: CartLineItem - the removed line
"""

from django.dispatch import Signal

cart_lines_added = Signal()
cart_line_removed = Signal()
