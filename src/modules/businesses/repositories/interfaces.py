"""Business repository interface.

Extends ``IRepository[Business]`` with the customer look-up the order
service needs to validate ownership at intake.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.businesses.models import Business, Customer


class IBusinessRepository(IRepository["Business"]):
    """Repository contract for tenants and their customers."""

    @abstractmethod
    def get_customer(self, business_id: str, customer_id: str) -> Optional[Customer]:
        """Retrieve a customer scoped to *business_id*."""
