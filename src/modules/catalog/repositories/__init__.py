"""Service catalog repositories package."""

from modules.catalog.repositories.django_repository import ServiceDjangoRepository
from modules.catalog.repositories.interfaces import IServiceRepository

__all__ = ["IServiceRepository", "ServiceDjangoRepository"]
