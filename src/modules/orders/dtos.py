"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: input for a single order line.
- ``CreateOrderDTO``: input for order creation (nested items).
- ``AuditEntryDTO``: output for one entry of the audit trail.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.catalog.models import ServiceCategory
from modules.orders.constants import PaymentMethod

if TYPE_CHECKING:
    from modules.orders.models import OrderAuditEntry


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order line in a creation request.

    A line either references a catalog ``service_id`` (name, category and
    price are then snapshotted from the catalog unless given) or carries
    an ad-hoc ``name``.
    """

    model_config = ConfigDict(frozen=True)

    service_id: Optional[UUID] = None
    name: Optional[str] = None
    category: Optional[ServiceCategory] = None
    quantity: int
    unit_price: Optional[Decimal] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Quantity must not be negative.")
        return v

    @field_validator("unit_price")
    @classmethod
    def price_must_not_be_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Unit price must not be negative.")
        return v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None

    @model_validator(mode="after")
    def service_or_name(self):
        if self.service_id is None and not self.name:
            raise ValueError("Each item needs a service_id or a name.")
        return self


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - ``items`` must contain at least one item.
    - Each item quantity must not be negative.
    """

    model_config = ConfigDict(frozen=True)

    business_id: UUID
    customer_id: UUID
    items: List[CreateOrderItemDTO]
    payment_method: PaymentMethod = PaymentMethod.CASH
    pickup_date: Optional[datetime] = None
    customer_notes: Optional[str] = ""

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class AuditEntryDTO(BaseModel):
    """Immutable DTO for one audit trail entry."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    sequence: int
    event_type: str
    old_status: Optional[str]
    new_status: Optional[str]
    rack_id: str
    message: str
    occurred_at: datetime

    @classmethod
    def from_entity(cls, entry: OrderAuditEntry) -> AuditEntryDTO:
        return cls(
            id=entry.id,
            sequence=entry.sequence,
            event_type=entry.event_type,
            old_status=entry.old_status,
            new_status=entry.new_status,
            rack_id=entry.rack_id,
            message=entry.message,
            occurred_at=entry.occurred_at,
        )
