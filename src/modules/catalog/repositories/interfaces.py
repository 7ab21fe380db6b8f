"""Service catalog repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Service


class IServiceRepository(IRepository["Service"]):
    """Repository contract for catalog services."""

    @abstractmethod
    def get_for_business(self, business_id: str, service_id: str) -> Optional[Service]:
        """Retrieve an active service scoped to *business_id*."""
