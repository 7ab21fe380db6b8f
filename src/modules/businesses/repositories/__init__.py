"""Business/customer repositories package."""

from modules.businesses.repositories.django_repository import BusinessDjangoRepository
from modules.businesses.repositories.interfaces import IBusinessRepository

__all__ = ["IBusinessRepository", "BusinessDjangoRepository"]
