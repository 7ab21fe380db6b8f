"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` so they join
the use case's unit of work when one is open.

Concurrency control uses ``select_for_update()``: the order row is the
per-order mutex every scan, transition and adjustment takes first.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max

from modules.core.outbox import flush_domain_events
from modules.orders.audit import AuditEvent, entry_fields
from modules.orders.constants import PaymentMethod
from modules.orders.models import Order, OrderAuditEntry, OrderItem
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            business_id=data["business_id"],
            customer_id=data["customer_id"],
            payment_method=data.get("payment_method") or PaymentMethod.CASH,
            pickup_date=data.get("pickup_date"),
            customer_notes=data.get("customer_notes") or "",
        )
        order.save()

        total = Decimal("0.00")
        units = 0
        items = data.get("items", [])
        for item_data in items:
            item = OrderItem(
                order=order,
                service_id=item_data.get("service_id"),
                name=item_data["name"],
                category=item_data["category"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            )
            item.save()
            total += item.subtotal
            units += item.quantity

        order.total_amount = total
        order.total_expected_units = units
        order.save(update_fields=["total_amount", "total_expected_units"])

        log = logger.bind(order_id=str(order.id), item_count=len(items))
        log.info("order.persisted", total_expected_units=units)

        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_related("customer", "business")
                .prefetch_related("items", "audit_entries")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders filtered by equality on indexed fields.

        Supported filter keys include ``status``, ``business_id`` and
        ``customer_id``.
        """
        queryset = Order.objects.select_related("customer", "business")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def lock_many(self, ids: Sequence[str]) -> Dict[str, Order]:
        """Lock orders sorted by PK to prevent deadlocks between two scans."""
        locked: Dict[str, Order] = {}
        for order_id in sorted({str(i) for i in ids}):
            order = self.get_for_update(order_id)
            if order is not None:
                locked[order_id] = order
        return locked

    def get_item(self, item_id: str) -> Optional[OrderItem]:
        try:
            return OrderItem.objects.filter(id=item_id).first()
        except (ValueError, ValidationError):
            return None

    def list_items(self, order_id: str) -> List[OrderItem]:
        return list(OrderItem.objects.filter(order_id=order_id).order_by("created_at", "id"))

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and write its pending events to the outbox."""
        entity.save()
        events = flush_domain_events(entity, topic="orders")
        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    @transaction.atomic
    def save_item(self, item: OrderItem) -> OrderItem:
        item.save()
        return item

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_audit_entry(self, order: Order, event: AuditEvent) -> OrderAuditEntry:
        """Append one entry.  Callers hold the order row lock."""
        last = order.audit_entries.aggregate(last=Max("sequence"))["last"] or 0
        entry = OrderAuditEntry(order=order, sequence=last + 1, **entry_fields(event))
        entry.save()
        logger.info(
            "order.audit_appended",
            order_id=str(order.id),
            sequence=entry.sequence,
            event_type=entry.event_type,
        )
        return entry

    def list_audit_entries(self, order_id: str) -> List[OrderAuditEntry]:
        try:
            return list(OrderAuditEntry.objects.filter(order_id=order_id).order_by("sequence"))
        except (ValueError, ValidationError):
            return []
