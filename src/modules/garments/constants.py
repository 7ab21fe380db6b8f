"""Garment domain constants."""

from __future__ import annotations

from django.db import models


class GarmentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    COMPLETED = "COMPLETED", "Completed"


DEFAULT_TOKEN_MAX_ATTEMPTS = 5

# Token fragments
TENANT_PREFIX_LENGTH = 8
DEFAULT_TENANT_PREFIX = "business"
DEFAULT_SERVICE_FRAGMENT = "ITEM"
SERVICE_FRAGMENT_MAX_LENGTH = 24
RANDOM_SUFFIX_LENGTH = 6

# Re-reads of a token's owner while the owning orders are being locked
OWNER_LOCK_RETRIES = 3
