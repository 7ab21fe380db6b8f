"""Service catalog: what a business offers at the counter.

Business rules implemented:
- Every service carries an explicit ``category`` chosen when it is created.
  Categories are never inferred from names at runtime; legacy rows are
  classified once by the ``backfill_service_categories`` command.
- Base price must not be negative.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class ServiceCategory(models.TextChoices):
    DRY_CLEANING = "DRY_CLEANING", "Dry cleaning"
    LAUNDRY = "LAUNDRY", "Laundry"
    ALTERATIONS = "ALTERATIONS", "Alterations"
    OTHER = "OTHER", "Other"


class Service(BaseModel):
    """A service line offered by a business (e.g. "Shirt - Laundered")."""

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.PROTECT,
        related_name="services",
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    category = models.CharField(
        max_length=20,
        choices=ServiceCategory.choices,
        default=ServiceCategory.OTHER,
    )
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    estimated_duration_minutes = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "services"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["business", "category"], name="services_biz_category_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(base_price__gte=0),
                name="services_base_price_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} [{self.category}]"
