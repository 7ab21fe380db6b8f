"""Unit tests for the domain error base, the unit-of-work decorator and
the API error envelope."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from django.db import DatabaseError
from rest_framework import exceptions as drf_exceptions

from modules.core.exceptions import (
    DomainError,
    PersistenceError,
    atomic_operation,
    standard_exception_handler,
)
from modules.garments.exceptions import CrossOrderConflict, GenerationExhausted
from modules.orders.exceptions import InvalidRack, OrderNotFound
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.unit


class TestDomainError:
    def test_as_dict_stringifies_context(self):
        error = CrossOrderConflict("taken", qr_code="X1", owning_order_number="ORD-1")
        assert error.as_dict() == {
            "code": "cross_order_conflict",
            "detail": "taken",
            "context": {"qr_code": "X1", "owning_order_number": "ORD-1"},
        }

    def test_detail_defaults_to_code(self):
        assert str(OrderNotFound()) == "order_not_found"
        assert "context" not in OrderNotFound().as_dict()


class TestAtomicOperation:
    def test_database_error_becomes_persistence_error(self):
        @atomic_operation
        def broken():
            raise DatabaseError("disk full")

        with pytest.raises(PersistenceError) as exc_info:
            broken()
        assert exc_info.value.detail == "disk full"

    def test_domain_errors_propagate_untouched(self):
        @atomic_operation
        def rejected():
            raise InvalidRack("bad")

        with pytest.raises(InvalidRack):
            rejected()

    def test_failure_rolls_back_earlier_writes(self, make_order, order_service):
        order = make_order()

        with patch.object(
            OrderDjangoRepository,
            "add_audit_entry",
            side_effect=DatabaseError("lost connection"),
        ):
            with pytest.raises(PersistenceError):
                order_service.cancel_order(str(order.id))

        assert Order.objects.get(id=order.id).status == "PENDING"


class TestStandardExceptionHandler:
    @pytest.mark.parametrize(
        "error, status_code",
        [
            (OrderNotFound("missing"), 404),
            (CrossOrderConflict("taken"), 409),
            (InvalidRack("bad"), 400),
            (GenerationExhausted("none left"), 503),
            (PersistenceError("down"), 503),
        ],
    )
    def test_domain_error_status(self, error, status_code):
        response = standard_exception_handler(error, {})
        assert response.status_code == status_code
        assert response.data["errors"][0]["code"] == error.code

    def test_unregistered_code_is_bad_request(self):
        response = standard_exception_handler(DomainError("nope"), {})
        assert response.status_code == 400
        assert response.data["type"] == "client_error"

    def test_server_errors_are_typed(self):
        response = standard_exception_handler(PersistenceError("down"), {})
        assert response.data["type"] == "server_error"

    def test_validation_errors_are_flattened(self):
        exc = drf_exceptions.ValidationError({"items": [{"quantity": ["Required."]}]})
        response = standard_exception_handler(exc, {})

        assert response.status_code == 400
        assert response.data["type"] == "validation_error"
        assert response.data["errors"] == [
            {"code": "invalid", "detail": "Required.", "attr": "items.0.quantity"}
        ]

    def test_unhandled_exceptions_are_left_to_django(self):
        assert standard_exception_handler(RuntimeError("boom"), {}) is None
