"""Service catalog exceptions."""

from __future__ import annotations

from modules.core.exceptions import DomainError


class ServiceNotFound(DomainError):
    """The service does not exist, is inactive, or belongs to another business."""

    code = "service_not_found"
