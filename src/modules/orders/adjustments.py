"""Quantity adjustment engine.

Changes expected item quantities after intake has started, either for
one item or for a group of items the counter shows as one service line.

Business rules enforced:
- Only PENDING and PROCESSING orders can be adjusted.
- Quantities never go below zero; every new value is validated before
  the first write (validate-then-commit).
- ``total_expected_units`` and ``total_amount`` follow every change in
  the same transaction, and each changed item gets a QUANTITY_ADJUSTMENT
  audit entry with its signed delta.
- Aggregate adjustments scale items proportionally with round-half-up;
  the rounded parts may miss the requested total by one unit.
- When an adjustment during intake lowers the expected count to what has
  already been scanned, the order moves on to PROCESSING.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, List

import structlog

from modules.core.exceptions import atomic_operation
from modules.orders import audit
from modules.orders.constants import ADJUSTABLE_STATES, OrderStatus
from modules.orders.events import QuantityAdjusted
from modules.orders.exceptions import (
    InvalidOrderStatus,
    InvalidQuantity,
    OrderItemNotFound,
    OrderNotFound,
)

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.services import OrderService

logger = structlog.get_logger(__name__)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def redistribute(quantities: List[int], new_total: int) -> List[int]:
    """Scale *quantities* so they add up to about *new_total*.

    Each part becomes ``round_half_up(q * new_total / old_total)``.  With
    an old total of zero there is nothing to scale and the first part
    receives the whole new total.
    """
    old_total = sum(quantities)
    if old_total == 0:
        return [new_total] + [0] * (len(quantities) - 1)
    ratio = Decimal(new_total) / Decimal(old_total)
    return [round_half_up(Decimal(quantity) * ratio) for quantity in quantities]


def _validate_quantity(value: int, **context) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidQuantity(f"Quantity must be a non-negative integer, got {value!r}.", **context)
    return value


class QuantityAdjustmentService:
    """Application service for quantity adjustments."""

    def __init__(self, order_repository: IOrderRepository, order_service: OrderService) -> None:
        self._order_repo = order_repository
        self._orders = order_service

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @atomic_operation
    def adjust_quantity(self, item_id: str, new_quantity: int) -> OrderItem:
        """Replace one item's quantity.

        Unchanged quantities are a no-op: no audit entry, no event.

        Raises:
            InvalidQuantity: *new_quantity* is negative.
            OrderItemNotFound: item does not exist.
            InvalidOrderStatus: the order is past PROCESSING.
        """
        _validate_quantity(new_quantity, order_item_id=item_id)
        item = self._order_repo.get_item(str(item_id))
        if not item:
            raise OrderItemNotFound(f"Order item {item_id} not found.", order_item_id=item_id)

        order = self._lock_adjustable(str(item.order_id))
        item.refresh_from_db()

        if item.quantity == new_quantity:
            return item

        self._apply(order, item, new_quantity)
        self._order_repo.save(order)
        self._complete_intake_if_reached(order)
        return item

    @atomic_operation
    def adjust_aggregate_quantity(
        self, order_id: str, service_name: str, new_total: int
    ) -> List[OrderItem]:
        """Set the total of every item named *service_name* (case-insensitive).

        Raises:
            InvalidQuantity: *new_total* is negative.
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is past PROCESSING.
            OrderItemNotFound: no item of the order carries that name.
        """
        _validate_quantity(new_total, order_id=order_id, service_name=service_name)
        key = (service_name or "").strip().lower()

        order = self._lock_adjustable(str(order_id))
        items = [
            item
            for item in self._order_repo.list_items(str(order.id))
            if item.name.strip().lower() == key
        ]
        if not key or not items:
            raise OrderItemNotFound(
                f"Order {order.order_number} has no items for service {service_name!r}.",
                order_id=order.id,
                service_name=service_name,
            )

        old_quantities = [item.quantity for item in items]
        old_total = sum(old_quantities)
        if old_total == new_total:
            return items

        new_quantities = redistribute(old_quantities, new_total)
        for quantity in new_quantities:
            _validate_quantity(quantity, order_id=order.id, service_name=service_name)

        log = logger.bind(order_id=str(order.id), service_name=service_name)
        self._order_repo.add_audit_entry(
            order,
            audit.QuantityAdjustment(
                text=audit.service_adjusted_message(items[0].name, old_total, new_total)
            ),
        )
        for item, quantity in zip(items, new_quantities):
            if item.quantity != quantity:
                self._apply(order, item, quantity)

        self._order_repo.save(order)
        log.info(
            "order.aggregate_adjusted",
            old_total=old_total,
            new_total=new_total,
            result_total=sum(new_quantities),
        )
        self._complete_intake_if_reached(order)
        return items

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_adjustable(self, order_id: str) -> Order:
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.", order_id=order_id)
        if order.status not in ADJUSTABLE_STATES:
            raise InvalidOrderStatus(
                f"Quantities cannot change while the order is {order.status}.",
                order_id=order.id,
                status=order.status,
            )
        return order

    def _apply(self, order: Order, item: OrderItem, new_quantity: int) -> None:
        old_quantity = item.quantity
        delta = new_quantity - old_quantity

        item.quantity = new_quantity
        self._order_repo.save_item(item)

        order.total_expected_units += delta
        order.total_amount += delta * item.unit_price
        order.add_domain_event(
            QuantityAdjusted(
                aggregate_id=order.id,
                order_item_id=str(item.id),
                old_quantity=old_quantity,
                new_quantity=new_quantity,
            )
        )
        self._order_repo.add_audit_entry(
            order,
            audit.QuantityAdjustment(
                text=audit.quantity_adjusted_message(item.name, old_quantity, new_quantity)
            ),
        )
        logger.info(
            "order.quantity_adjusted",
            order_id=str(order.id),
            order_item_id=str(item.id),
            old_quantity=old_quantity,
            new_quantity=new_quantity,
        )

    def _complete_intake_if_reached(self, order: Order) -> None:
        # Lowering quantities only completes an intake that has started.
        if (
            order.status == OrderStatus.PENDING
            and order.scanned_count > 0
            and order.intake_complete
        ):
            self._orders.transition(order, OrderStatus.PROCESSING, reason="intake_complete")
