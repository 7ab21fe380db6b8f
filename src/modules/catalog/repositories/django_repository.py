"""Django ORM implementation of the Service repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.catalog.models import Service
from modules.catalog.repositories.interfaces import IServiceRepository

logger = structlog.get_logger(__name__)


class ServiceDjangoRepository(IServiceRepository):
    """Concrete Service repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Service]:
        try:
            return Service.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Service]:
        queryset = Service.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Service) -> Service:
        entity.save()
        logger.info("service.saved", service_id=str(entity.id), category=entity.category)
        return entity

    def get_for_business(self, business_id: str, service_id: str) -> Optional[Service]:
        try:
            return Service.objects.filter(
                id=service_id, business_id=business_id, is_active=True
            ).first()
        except (ValueError, ValidationError):
            return None
