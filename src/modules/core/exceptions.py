"""Domain error base, persistence boundary and the API error envelope.

Domain errors are structured values: a stable ``code``, a human-readable
``detail`` and a ``context`` dict with the identifiers involved (order id,
token, owning order, ...).  The service layer raises them; the API layer
renders them through ``standard_exception_handler`` without the views
having to know every error class.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Dict, TypeVar

import structlog
from django.db import DatabaseError, transaction
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class DomainError(Exception):
    """Base class for every business-rule violation raised by the core."""

    code = "domain_error"

    def __init__(self, detail: str = "", **context: Any) -> None:
        super().__init__(detail or self.code)
        self.detail = detail or self.code
        self.context = context

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"code": self.code, "detail": self.detail}
        if self.context:
            data["context"] = {key: str(value) for key, value in self.context.items()}
        return data


class PersistenceError(DomainError):
    """Underlying storage failure.  Never retried by the core."""

    code = "persistence_error"


def atomic_operation(func: F) -> F:
    """Run *func* as one unit of work.

    Either the whole use case commits (state + audit entries + outbox
    events) or nothing does.  Storage failures that escape the block are
    surfaced as ``PersistenceError``; domain errors propagate untouched.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            with transaction.atomic():
                return func(*args, **kwargs)
        except DatabaseError as exc:
            logger.error(
                "persistence.failed",
                operation=func.__qualname__,
                error=str(exc),
            )
            raise PersistenceError(str(exc), operation=func.__qualname__) from exc

    return wrapper  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# API error envelope
# ---------------------------------------------------------------------------

DOMAIN_STATUS_CODES: Dict[str, int] = {
    "order_not_found": status.HTTP_404_NOT_FOUND,
    "order_item_not_found": status.HTTP_404_NOT_FOUND,
    "garment_not_found": status.HTTP_404_NOT_FOUND,
    "customer_not_found": status.HTTP_404_NOT_FOUND,
    "business_not_found": status.HTTP_404_NOT_FOUND,
    "service_not_found": status.HTTP_404_NOT_FOUND,
    "unknown_garment": status.HTTP_404_NOT_FOUND,
    "duplicate_scan": status.HTTP_409_CONFLICT,
    "cross_order_conflict": status.HTTP_409_CONFLICT,
    "invalid_order_status": status.HTTP_409_CONFLICT,
    "invalid_quantity": status.HTTP_400_BAD_REQUEST,
    "invalid_rack": status.HTTP_400_BAD_REQUEST,
    "invalid_token": status.HTTP_400_BAD_REQUEST,
    "generation_exhausted": status.HTTP_503_SERVICE_UNAVAILABLE,
    "persistence_error": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _flatten_drf_errors(detail: Any, attr: str | None = None) -> list[Dict[str, Any]]:
    if isinstance(detail, dict):
        errors: list[Dict[str, Any]] = []
        for key, value in detail.items():
            nested = key if attr is None else f"{attr}.{key}"
            if key in ("non_field_errors", "detail"):
                nested = attr
            errors.extend(_flatten_drf_errors(value, nested))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            nested = attr
            if isinstance(value, (dict, list)) and attr is not None:
                nested = f"{attr}.{index}"
            errors.extend(_flatten_drf_errors(value, nested))
        return errors
    error: Dict[str, Any] = {
        "code": getattr(detail, "code", "error"),
        "detail": str(detail),
    }
    if attr is not None:
        error["attr"] = attr
    return [error]


def standard_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response | None:
    """DRF exception handler producing ``{"type", "errors": [...]}`` bodies."""
    if isinstance(exc, DomainError):
        http_status = DOMAIN_STATUS_CODES.get(exc.code, status.HTTP_400_BAD_REQUEST)
        error_type = "server_error" if http_status >= 500 else "client_error"
        logger.warning("api.domain_error", code=exc.code, detail=exc.detail)
        return Response({"type": error_type, "errors": [exc.as_dict()]}, status=http_status)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, drf_exceptions.ValidationError):
        error_type = "validation_error"
    elif response.status_code >= 500:
        error_type = "server_error"
    else:
        error_type = "client_error"

    response.data = {
        "type": error_type,
        "errors": _flatten_drf_errors(response.data),
    }
    return response
