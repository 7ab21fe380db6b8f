"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.  Each one
is a ``DomainError`` with a stable ``code``; the API layer translates the
code into an HTTP status through the shared exception handler.
"""

from __future__ import annotations

from modules.core.exceptions import DomainError


class OrderNotFound(DomainError):
    """The requested order does not exist."""

    code = "order_not_found"


class OrderItemNotFound(DomainError):
    """The order item does not exist, belongs to another order, or the order has none."""

    code = "order_item_not_found"


class InvalidOrderStatus(DomainError):
    """The operation is not allowed in the order's current status."""

    code = "invalid_order_status"


class InvalidQuantity(DomainError):
    """A requested quantity is negative or otherwise unusable."""

    code = "invalid_quantity"


class InvalidRack(DomainError):
    """A rack identifier is blank or contains characters outside ``[A-Za-z0-9-]``."""

    code = "invalid_rack"
