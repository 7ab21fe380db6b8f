"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created."""

    total_expected_units: int = 0


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every accepted status transition."""

    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled."""

    old_status: str = ""


@dataclass(frozen=True)
class RackAssigned(DomainEvent):
    """Raised when an order is placed on (or moved to) a pickup rack."""

    rack_id: str = ""
    reassigned: bool = False


@dataclass(frozen=True)
class QuantityAdjusted(DomainEvent):
    """Raised when an item's expected quantity changes."""

    order_item_id: str = ""
    old_quantity: int = 0
    new_quantity: int = 0
