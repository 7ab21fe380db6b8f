"""Order, OrderItem and OrderAuditEntry models.

Business rules implemented:
- Status moves forward along PENDING → PROCESSING → CLEANED → COMPLETED;
  CANCELLED is reachable from every non-terminal state (enforced at the
  service layer through ``can_transition_to``).
- Orders are never deleted; cancellation is a status.
- ``total_expected_units`` is a maintained counter equal to the sum of the
  item quantities; ``scanned_count`` is a maintained counter equal to the
  number of the order's garments whose status is not PENDING.  Both are
  updated in the same transaction as the rows they summarise.
- OrderItem ``subtotal`` is always ``quantity * unit_price`` (recalculated
  on save).
- The audit trail is a list of typed, append-only rows numbered by a
  per-order ``sequence``; the text log is only a rendering of it.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

import structlog
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.catalog.models import ServiceCategory
from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    AuditEventType,
    OrderStatus,
    PaymentMethod,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references and API look-ups.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    business: models.ForeignKey = models.ForeignKey(
        "businesses.Business",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    customer: models.ForeignKey = models.ForeignKey(
        "businesses.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    payment_method: models.CharField = models.CharField(
        max_length=10,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
    )
    pickup_date: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    customer_notes: models.TextField = models.TextField(blank=True, default="")
    total_expected_units: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )
    scanned_count: models.PositiveIntegerField = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["business", "status"], name="orders_business_status_idx"),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(self.status, set())
        return new_status in allowed

    @property
    def intake_complete(self) -> bool:
        """Every expected unit has been scanned in."""
        return self.scanned_count >= self.total_expected_units

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """One service line of an order.

    ``quantity`` is the authoritative number of physical units expected
    for the line.  ``unit_price`` is a snapshot of the service price at
    drop-off; ``category`` is copied from the service so grouping never
    depends on the item name.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    service: models.ForeignKey = models.ForeignKey(
        "catalog.Service",
        on_delete=models.PROTECT,
        related_name="order_items",
        null=True,
        blank=True,
    )
    name: models.CharField = models.CharField(max_length=255)
    category: models.CharField = models.CharField(
        max_length=20,
        choices=ServiceCategory.choices,
        default=ServiceCategory.OTHER,
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(default=1)
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        editable=False,
        default=Decimal("0.00"),
    )

    class Meta:
        db_table = "order_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name="order_items_quantity_non_negative",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.subtotal = self.quantity * self.unit_price
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "subtotal" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["subtotal"]
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity}"


class OrderAuditEntry(BaseModel):
    """Append-only, typed audit trail of an order.

    Rows are written in the same transaction as the change they record
    and are never updated or deleted.  ``sequence`` is assigned under the
    order row lock and gives the total order of the trail; ``occurred_at``
    is the business timestamp (it differs from ``created_at`` only for
    entries imported from legacy text logs).
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="audit_entries",
    )
    sequence: models.PositiveIntegerField = models.PositiveIntegerField()
    event_type: models.CharField = models.CharField(
        max_length=24,
        choices=AuditEventType.choices,
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    rack_id: models.CharField = models.CharField(max_length=64, blank=True, default="")
    message: models.TextField = models.TextField(blank=True, default="")
    occurred_at: models.DateTimeField = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "order_audit_entries"
        ordering = ["order", "sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "sequence"],
                name="order_audit_entries_order_sequence_uniq",
            ),
        ]
        indexes = [
            models.Index(
                fields=["order", "event_type"],
                name="oae_order_event_type_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} #{self.sequence} {self.event_type}"
