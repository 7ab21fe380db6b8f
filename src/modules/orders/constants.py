"""Order domain constants.

Defines status choices, valid status transitions for the order state
machine and the vocabulary of the audit trail.
"""

from __future__ import annotations

import re

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PROCESSING = "PROCESSING", "Processing"
    CLEANED = "CLEANED", "Cleaned"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


class PaymentMethod(models.TextChoices):
    CASH = "CASH", "Cash"
    CARD = "CARD", "Card"
    OTHER = "OTHER", "Other"


class AuditEventType(models.TextChoices):
    STATUS_CHANGE = "STATUS_CHANGE", "Status change"
    RACK_PLACEMENT = "RACK_PLACEMENT", "Rack placement"
    RACK_REASSIGNMENT = "RACK_REASSIGNMENT", "Rack reassignment"
    QUANTITY_ADJUSTMENT = "QUANTITY_ADJUSTMENT", "Quantity adjustment"
    GARMENT = "GARMENT", "Garment"
    NOTE = "NOTE", "Note"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.CLEANED, OrderStatus.CANCELLED},
    OrderStatus.CLEANED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}

# Quantities may change until the garments are cleaned.
ADJUSTABLE_STATES: set[str] = {OrderStatus.PENDING, OrderStatus.PROCESSING}

ORDER_NUMBER_MAX_RETRIES = 5

RACK_ID_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")

UNASSIGNED_RACK = "unassigned"


def parse_status(value: str) -> OrderStatus:
    """Resolve a status label case-insensitively to its canonical value.

    Raises:
        ValueError: *value* is not one of the five order statuses.
    """
    normalized = (value or "").strip().upper()
    try:
        return OrderStatus(normalized)
    except ValueError:
        raise ValueError(f"Unknown order status: {value!r}") from None
