"""Django ORM implementation of the Business repository.

Error handling follows the Null Object pattern: methods return ``None``
for missing or malformed ids and the service layer decides which domain
error that becomes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.businesses.models import Business, Customer
from modules.businesses.repositories.interfaces import IBusinessRepository

logger = structlog.get_logger(__name__)


class BusinessDjangoRepository(IBusinessRepository):
    """Concrete Business repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Business]:
        try:
            return Business.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Business]:
        queryset = Business.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Business) -> Business:
        is_new = entity._state.adding
        entity.save()
        logger.info("business.saved", business_id=str(entity.id), is_new=is_new)
        return entity

    def get_customer(self, business_id: str, customer_id: str) -> Optional[Customer]:
        try:
            return (
                Customer.objects.select_related("business")
                .filter(id=customer_id, business_id=business_id)
                .first()
            )
        except (ValueError, ValidationError):
            return None
