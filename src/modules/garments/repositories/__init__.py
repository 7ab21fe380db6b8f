"""Garment repositories package."""

from modules.garments.repositories.django_repository import GarmentDjangoRepository
from modules.garments.repositories.interfaces import IGarmentRepository

__all__ = ["IGarmentRepository", "GarmentDjangoRepository"]
