"""Order service layer (Use Cases): the order state machine.

Orchestrates order creation, status transitions, cancellation and rack
placement.  All write operations are atomic: the service defines the
unit-of-work boundary and every transition commits its status, its audit
entry and its outbox event together or not at all.

Business rules enforced:
- Transitions follow ``VALID_TRANSITIONS``; COMPLETED and CANCELLED are
  terminal.
- Every status change appends a STATUS_CHANGE audit entry in the same
  transaction.
- Rack assignment is only valid from CLEANED (→ COMPLETED); rack
  reassignment only from COMPLETED and never changes status.
- The order row is locked (``SELECT FOR UPDATE``) before any
  read-modify-write, so concurrent operations on one order serialize.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog

from modules.businesses.exceptions import CustomerNotFound
from modules.catalog.exceptions import ServiceNotFound
from modules.catalog.models import ServiceCategory
from modules.core.exceptions import atomic_operation
from modules.orders import audit
from modules.orders.constants import RACK_ID_PATTERN, OrderStatus, parse_status
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
    RackAssigned,
)
from modules.orders.exceptions import InvalidOrderStatus, InvalidRack, OrderNotFound

if TYPE_CHECKING:
    from modules.businesses.repositories.interfaces import IBusinessRepository
    from modules.catalog.repositories.interfaces import IServiceRepository
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order, OrderAuditEntry
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        business_repository: Optional[IBusinessRepository] = None,
        service_repository: Optional[IServiceRepository] = None,
    ) -> None:
        self._order_repo = order_repository
        self._business_repo = business_repository
        self._service_repo = service_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @atomic_operation
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Create a PENDING order with its items.

        Catalog lines snapshot the service name, category and price unless
        the request overrides them.  ``total_expected_units`` starts as the
        sum of the item quantities.

        Raises:
            CustomerNotFound: customer missing, inactive or from another business.
            ServiceNotFound: a referenced service is missing or inactive.
        """
        log = logger.bind(
            business_id=str(dto.business_id), customer_id=str(dto.customer_id)
        )
        log.info("order.creation_started")

        customer = self._business_repo.get_customer(
            str(dto.business_id), str(dto.customer_id)
        )
        if not customer or not customer.is_active:
            raise CustomerNotFound(
                f"Customer {dto.customer_id} not found.",
                customer_id=dto.customer_id,
            )

        items: List[Dict[str, Any]] = []
        for item_dto in dto.items:
            if item_dto.service_id is not None:
                service = self._service_repo.get_for_business(
                    str(dto.business_id), str(item_dto.service_id)
                )
                if not service:
                    raise ServiceNotFound(
                        f"Service {item_dto.service_id} not found.",
                        service_id=item_dto.service_id,
                    )
                items.append(
                    {
                        "service_id": service.id,
                        "name": item_dto.name or service.name,
                        "category": item_dto.category or service.category,
                        "quantity": item_dto.quantity,
                        "unit_price": (
                            item_dto.unit_price
                            if item_dto.unit_price is not None
                            else service.base_price
                        ),
                    }
                )
            else:
                items.append(
                    {
                        "service_id": None,
                        "name": item_dto.name,
                        "category": item_dto.category or ServiceCategory.OTHER,
                        "quantity": item_dto.quantity,
                        "unit_price": item_dto.unit_price or 0,
                    }
                )

        order = self._order_repo.create(
            {
                "business_id": dto.business_id,
                "customer_id": dto.customer_id,
                "items": items,
                "payment_method": dto.payment_method,
                "pickup_date": dto.pickup_date,
                "customer_notes": dto.customer_notes or "",
            }
        )
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                total_expected_units=order.total_expected_units,
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_audit_entry(order, audit.Note(text="Order created"))

        log.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            total_expected_units=order.total_expected_units,
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    def transition(
        self, order: Order, new_status: str, *, reason: str = ""
    ) -> Order:
        """Move a **locked** order to *new_status*.

        Must run inside the caller's unit of work with the order row
        already locked (the garment registry and the rack operations call
        it that way).  Sets the status, appends the STATUS_CHANGE entry and
        stages ``OrderStatusChanged`` for the outbox.

        Raises:
            InvalidOrderStatus: the transition is not allowed.
        """
        target = parse_status(new_status)
        log = logger.bind(
            order_id=str(order.id),
            current_status=order.status,
            new_status=target.value,
        )

        if not order.can_transition_to(target):
            log.warning("order.invalid_transition")
            raise InvalidOrderStatus(
                f"Cannot transition from {order.status} to {target.value}.",
                order_id=order.id,
                status=order.status,
            )

        old_status = order.status
        order.status = target
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id, old_status=old_status, new_status=target.value
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_audit_entry(
            order, audit.StatusChange(old_status=old_status, new_status=target.value)
        )
        log.info("order.status_changed", reason=reason or None)
        return order

    @atomic_operation
    def cancel_order(self, order_id: str, notes: str = "") -> Order:
        """Cancel an order from any non-terminal status.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is already COMPLETED or CANCELLED.
        """
        order = self._lock(order_id)
        old_status = order.status

        order.add_domain_event(OrderCancelled(aggregate_id=order.id, old_status=old_status))
        self.transition(order, OrderStatus.CANCELLED, reason="cancelled")
        if notes:
            self._order_repo.add_audit_entry(order, audit.Note(text=notes.strip()))

        logger.info("order.cancelled", order_id=str(order.id), old_status=old_status)
        return self._order_repo.get_by_id(str(order.id)) or order

    @atomic_operation
    def assign_rack(self, order_id: str, rack_id: str) -> Order:
        """Place a CLEANED order on a pickup rack, completing it.

        Raises:
            InvalidRack: *rack_id* is blank or malformed.
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is not CLEANED.
        """
        rack = self._validate_rack(rack_id)
        order = self._lock(order_id)

        if order.status != OrderStatus.CLEANED:
            raise InvalidOrderStatus(
                f"Rack assignment requires a CLEANED order, not {order.status}.",
                order_id=order.id,
                status=order.status,
            )

        order.add_domain_event(RackAssigned(aggregate_id=order.id, rack_id=rack))
        self.transition(order, OrderStatus.COMPLETED, reason="rack_assigned")
        self._order_repo.add_audit_entry(order, audit.RackPlacement(rack_id=rack))

        logger.info("order.rack_assigned", order_id=str(order.id), rack_id=rack)
        return self._order_repo.get_by_id(str(order.id)) or order

    @atomic_operation
    def reassign_rack(self, order_id: str, rack_id: str) -> Order:
        """Move a COMPLETED order to another rack; status is unchanged.

        Raises:
            InvalidRack: *rack_id* is blank or malformed.
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is not COMPLETED.
        """
        rack = self._validate_rack(rack_id)
        order = self._lock(order_id)

        if order.status != OrderStatus.COMPLETED:
            raise InvalidOrderStatus(
                f"Rack reassignment requires a COMPLETED order, not {order.status}.",
                order_id=order.id,
                status=order.status,
            )

        order.add_domain_event(
            RackAssigned(aggregate_id=order.id, rack_id=rack, reassigned=True)
        )
        self._order_repo.save(order)
        self._order_repo.add_audit_entry(
            order, audit.RackPlacement(rack_id=rack, reassigned=True)
        )

        logger.info("order.rack_reassigned", order_id=str(order.id), rack_id=rack)
        return self._order_repo.get_by_id(str(order.id)) or order

    @atomic_operation
    def import_legacy_audit_log(self, order_id: str, blob: str) -> List[OrderAuditEntry]:
        """Convert a legacy text audit blob into typed entries of an order.

        Entries are appended after the existing trail, keeping the
        timestamps written in the blob.  Order status is not touched.
        """
        order = self._lock(order_id)
        events = audit.parse_log(blob)
        entries = [self._order_repo.add_audit_entry(order, event) for event in events]
        logger.info(
            "order.audit_imported",
            order_id=str(order.id),
            entry_count=len(entries),
        )
        return entries

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.", order_id=order_id)
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """Return a list of orders, optionally filtered."""
        return self._order_repo.list(filters)

    def audit_events(self, order_id: str) -> List[audit.AuditEvent]:
        self.get_order(order_id)
        return [
            audit.event_from_entry(entry)
            for entry in self._order_repo.list_audit_entries(order_id)
        ]

    def current_rack(self, order_id: str) -> str:
        """Rack derived from the full audit trail, or ``"unassigned"``."""
        return audit.current_rack(self.audit_events(order_id))

    def render_audit_log(self, order_id: str) -> str:
        """Audit trail rendered in the legacy text format."""
        return audit.render_log(self.audit_events(order_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, order_id: str) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.", order_id=order_id)
        return order

    @staticmethod
    def _validate_rack(rack_id: str) -> str:
        rack = (rack_id or "").strip()
        if not RACK_ID_PATTERN.match(rack):
            raise InvalidRack(f"Invalid rack id {rack_id!r}.", rack_id=rack_id)
        return rack
