"""Tenants (businesses) and the customers that drop garments off.

The fulfillment core treats both as owners only: an order references a
business and a customer, and the business id seeds the tenant prefix of
every scan token it issues.  Phone numbers and e-mails are masked in
``__str__`` so they never end up in logs verbatim.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel

TOKEN_PREFIX_LENGTH = 8


class Business(BaseModel):
    """One tenant (a shop) of the system."""

    name = models.CharField(max_length=255)
    phone_number = models.CharField(max_length=32)
    location = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        db_table = "businesses"
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["phone_number", "name"],
                name="businesses_phone_name_uniq",
            ),
        ]

    @property
    def token_prefix(self) -> str:
        """Tenant fragment embedded in the scan tokens this business issues."""
        return str(self.id)[:TOKEN_PREFIX_LENGTH]

    def __str__(self) -> str:
        return self.name


class Customer(BaseModel):
    """A customer of one business."""

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.PROTECT,
        related_name="customers",
    )
    first_name = models.CharField(max_length=120)
    last_name = models.CharField(max_length=120)
    phone_number = models.CharField(max_length=32)
    email = models.EmailField(max_length=254, blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "customers"
        ordering = ["last_name", "first_name"]
        indexes = [
            models.Index(fields=["business", "phone_number"], name="customers_biz_phone_idx"),
        ]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        suffix = self.phone_number[-4:] if self.phone_number else "????"
        return f"{self.full_name} (***{suffix})"
