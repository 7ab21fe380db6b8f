"""Domain events raised by the garment registry.

The order is the aggregate: events are staged on the order and written
to the outbox when the order is saved.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class GarmentScanned(DomainEvent):
    """A scan changed a garment (intake or processing phase)."""

    garment_id: str = ""
    qr_code: str = ""
    phase: str = ""
    garment_status: str = ""


@dataclass(frozen=True)
class GarmentReassociated(DomainEvent):
    """A garment moved from another order to this one."""

    garment_id: str = ""
    qr_code: str = ""
    source_order_id: str = ""


@dataclass(frozen=True)
class GarmentLabelsGenerated(DomainEvent):
    """Pre-printed labels were generated for an order item."""

    order_item_id: str = ""
    count: int = 0
