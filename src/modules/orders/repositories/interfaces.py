"""Order repository interface.

Extends ``IRepository[Order]`` with what the Order aggregate needs:
atomic creation with items, row-level locking for the read-modify-write
use cases (scans, transitions, adjustments), item look-ups and the
append-only audit trail.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.audit import AuditEvent
    from modules.orders.models import Order, OrderAuditEntry, OrderItem


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and OrderAuditEntry
    records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``business_id``, ``customer_id`` and ``items``
        (list of dicts with ``service_id``, ``name``, ``category``,
        ``quantity``, ``unit_price``); optionally ``payment_method``,
        ``pickup_date`` and ``customer_notes``.
        """

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding a row-level lock until commit."""

    @abstractmethod
    def lock_many(self, ids: Sequence[str]) -> Dict[str, Order]:
        """Lock several orders, always in ascending id order."""

    @abstractmethod
    def get_item(self, item_id: str) -> Optional[OrderItem]:
        """Retrieve an order item (without locking)."""

    @abstractmethod
    def list_items(self, order_id: str) -> List[OrderItem]:
        """Items of an order, oldest first."""

    @abstractmethod
    def save_item(self, item: OrderItem) -> OrderItem:
        """Persist an item (subtotal is recalculated on save)."""

    @abstractmethod
    def add_audit_entry(self, order: Order, event: AuditEvent) -> OrderAuditEntry:
        """Append *event* to the order's audit trail."""

    @abstractmethod
    def list_audit_entries(self, order_id: str) -> List[OrderAuditEntry]:
        """Audit trail of an order, in append order."""
