"""Event handlers for Orders domain events.

Run in-process after the producing transaction commits.  They only log
today; the outbox rows are what external consumers read.
"""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
    QuantityAdjusted,
    RackAssigned,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=str(event.aggregate_id),
            total_expected_units=event.total_expected_units,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.event.cancelled",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


class RackAssignedHandler(IEventHandler[RackAssigned]):
    def handle(self, event: RackAssigned) -> None:
        logger.info(
            "order.event.rack_assigned",
            order_id=str(event.aggregate_id),
            rack_id=event.rack_id,
            reassigned=event.reassigned,
        )


class QuantityAdjustedHandler(IEventHandler[QuantityAdjusted]):
    def handle(self, event: QuantityAdjusted) -> None:
        logger.info(
            "order.event.quantity_adjusted",
            order_id=str(event.aggregate_id),
            order_item_id=event.order_item_id,
            delta=event.new_quantity - event.old_quantity,
        )


order_created_handler = OrderCreatedHandler()
order_cancelled_handler = OrderCancelledHandler()
order_status_changed_handler = OrderStatusChangedHandler()
rack_assigned_handler = RackAssignedHandler()
quantity_adjusted_handler = QuantityAdjustedHandler()
