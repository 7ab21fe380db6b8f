"""Garment repository interface.

Extends ``IRepository[Garment]`` with the indexed look-ups the registry
depends on: by token, by owning order and by owning item.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.garments.models import Garment


class IGarmentRepository(IRepository["Garment"]):
    """Repository contract for garments."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Garment:
        """Insert a garment.  A taken ``qr_code`` raises ``IntegrityError``."""

    @abstractmethod
    def get_by_token(self, token: str, for_update: bool = False) -> Optional[Garment]:
        """Garment carrying *token*, with its item loaded."""

    @abstractmethod
    def token_exists(self, token: str) -> bool:
        """Uniqueness oracle for the token generator."""

    @abstractmethod
    def list_for_order(self, order_id: str) -> List[Garment]:
        """All garments under the order's items."""

    @abstractmethod
    def count_for_item(self, order_item_id: str) -> int:
        """Number of garments under one item."""

    @abstractmethod
    def count_for_order(self, order_id: str, exclude_status: Optional[str] = None) -> int:
        """Number of garments under the order, optionally excluding a status."""
