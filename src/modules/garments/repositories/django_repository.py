"""Django ORM implementation of the Garment repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.garments.models import Garment
from modules.garments.repositories.interfaces import IGarmentRepository

logger = structlog.get_logger(__name__)


class GarmentDjangoRepository(IGarmentRepository):
    """Concrete Garment repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create / Save
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Garment:
        """Insert inside a savepoint so a unique violation leaves the
        surrounding unit of work usable."""
        garment = Garment(**data)
        garment.save()
        logger.info(
            "garment.created",
            garment_id=str(garment.id),
            order_item_id=str(garment.order_item_id),
            status=garment.status,
        )
        return garment

    @transaction.atomic
    def save(self, entity: Garment) -> Garment:
        entity.save()
        return entity

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Garment]:
        try:
            return Garment.objects.select_related("order_item").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Garment]:
        queryset = Garment.objects.select_related("order_item")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_by_token(self, token: str, for_update: bool = False) -> Optional[Garment]:
        queryset = Garment.objects.select_related("order_item", "order_item__order")
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        return queryset.filter(qr_code=token).first()

    def token_exists(self, token: str) -> bool:
        return Garment.objects.filter(qr_code=token).exists()

    def list_for_order(self, order_id: str) -> List[Garment]:
        try:
            return list(
                Garment.objects.select_related("order_item")
                .filter(order_item__order_id=order_id)
                .order_by("created_at", "id")
            )
        except (ValueError, ValidationError):
            return []

    def count_for_item(self, order_item_id: str) -> int:
        return Garment.objects.filter(order_item_id=order_item_id).count()

    def count_for_order(self, order_id: str, exclude_status: Optional[str] = None) -> int:
        queryset = Garment.objects.filter(order_item__order_id=order_id)
        if exclude_status is not None:
            queryset = queryset.exclude(status=exclude_status)
        return queryset.count()
