"""Tenant directory exceptions."""

from __future__ import annotations

from modules.core.exceptions import DomainError


class BusinessNotFound(DomainError):
    """The referenced business does not exist."""

    code = "business_not_found"


class CustomerNotFound(DomainError):
    """The customer does not exist, is inactive, or belongs to another business."""

    code = "customer_not_found"
