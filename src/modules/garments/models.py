"""Garment model: one physical item, identified by its scan token.

Business rules implemented:
- ``qr_code`` is unique across every order of every business for the
  lifetime of the system (unique index; tokens are never reused).
- ``qr_code`` is immutable once assigned (not editable; only the
  description, notes and image reference can be edited).
- Garments are never deleted; a garment scanned for another order is
  re-associated to that order's item instead (``order_item`` is the only
  ownership field that changes).
- ``order_item`` uses PROTECT so an item with garments cannot vanish.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel
from modules.garments.constants import GarmentStatus


class Garment(BaseModel):
    """Tracking record of one physical garment."""

    order_item: models.ForeignKey = models.ForeignKey(
        "orders.OrderItem",
        on_delete=models.PROTECT,
        related_name="garments",
    )
    qr_code: models.CharField = models.CharField(
        max_length=128, unique=True, editable=False
    )
    description: models.CharField = models.CharField(max_length=255, blank=True, default="")
    status: models.CharField = models.CharField(
        max_length=20,
        choices=GarmentStatus.choices,
        default=GarmentStatus.PENDING,
    )
    notes: models.TextField = models.TextField(blank=True, default="")
    image_ref: models.CharField = models.CharField(max_length=512, blank=True, default="")
    last_scanned_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "garments"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order_item", "status"], name="garments_item_status_idx"),
        ]

    @property
    def order_id(self):
        return self.order_item.order_id

    def __str__(self) -> str:
        return f"{self.qr_code} ({self.status})"
