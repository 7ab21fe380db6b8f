from __future__ import annotations

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.businesses.models import Business, Customer
from modules.businesses.repositories.django_repository import BusinessDjangoRepository
from modules.catalog.models import Service, ServiceCategory
from modules.catalog.repositories.django_repository import ServiceDjangoRepository
from modules.garments.repositories.django_repository import GarmentDjangoRepository
from modules.garments.services import GarmentRegistry
from modules.orders.adjustments import QuantityAdjustmentService
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def auth_client():
    """APIClient with a force-authenticated Django user."""
    client = APIClient()
    user = get_user_model().objects.create_user(username="counter", password="testpass123")
    client.force_authenticate(user=user)
    return client


# ---------------------------------------------------------------------------
# Tenants and catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def business():
    return Business.objects.create(
        name="Main Street Cleaners",
        phone_number="555-010-2000",
        location="12 Main Street",
    )


@pytest.fixture()
def other_business():
    return Business.objects.create(name="Uptown Laundry", phone_number="555-010-3000")


@pytest.fixture()
def customer(business):
    return Customer.objects.create(
        business=business,
        first_name="Ana",
        last_name="Souza",
        phone_number="555-101-0001",
    )


@pytest.fixture()
def shirt_service(business):
    return Service.objects.create(
        business=business,
        name="Shirt",
        category=ServiceCategory.LAUNDRY,
        base_price=Decimal("3.50"),
    )


@pytest.fixture()
def suit_service(business):
    return Service.objects.create(
        business=business,
        name="Suit",
        category=ServiceCategory.DRY_CLEANING,
        base_price=Decimal("14.00"),
    )


# ---------------------------------------------------------------------------
# Services (use cases) wired with the Django repositories
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_repo():
    return OrderDjangoRepository()


@pytest.fixture()
def garment_repo():
    return GarmentDjangoRepository()


@pytest.fixture()
def order_service(order_repo):
    return OrderService(
        order_repository=order_repo,
        business_repository=BusinessDjangoRepository(),
        service_repository=ServiceDjangoRepository(),
    )


@pytest.fixture()
def registry(garment_repo, order_repo, order_service):
    return GarmentRegistry(
        garment_repository=garment_repo,
        order_repository=order_repo,
        order_service=order_service,
    )


@pytest.fixture()
def adjustments(order_repo, order_service):
    return QuantityAdjustmentService(order_repository=order_repo, order_service=order_service)


@pytest.fixture()
def make_order(order_service, business, customer):
    """Create an order through the real use case.

    ``lines`` is a list of ``(name, quantity)`` or ``(service, quantity)``.
    """

    def _make(*lines, customer_obj=None):
        items = []
        for target, quantity in lines or (("Shirt", 2),):
            if isinstance(target, Service):
                items.append(CreateOrderItemDTO(service_id=target.id, quantity=quantity))
            else:
                items.append(
                    CreateOrderItemDTO(
                        name=target, quantity=quantity, unit_price=Decimal("5.00")
                    )
                )
        return order_service.create_order(
            CreateOrderDTO(
                business_id=business.id,
                customer_id=(customer_obj or customer).id,
                items=items,
            )
        )

    return _make


@pytest.fixture()
def processing_order(make_order, registry):
    """Order with one item "Shirt" x2, both garments scanned in (PROCESSING)."""
    order = make_order(("Shirt", 2))
    registry.reconcile_intake_scan(str(order.id), "X1")
    registry.reconcile_intake_scan(str(order.id), "X2")
    order.refresh_from_db()
    return order


@pytest.fixture()
def cleaned_order(processing_order, registry):
    registry.reconcile_processing_scan(str(processing_order.id), "X1")
    registry.reconcile_processing_scan(str(processing_order.id), "X2")
    processing_order.refresh_from_db()
    return processing_order
