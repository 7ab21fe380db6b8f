"""Integration tests for the scan, label and garment endpoints."""

from __future__ import annotations

import pytest

from modules.core.models import OutboxEvent
from modules.garments.models import Garment
from modules.orders.constants import OrderStatus

pytestmark = pytest.mark.integration


def _intake(client, order, token, **extra):
    return client.post(
        f"/api/v1/orders/{order.id}/scans/intake/", {"token": token, **extra}, format="json"
    )


def _process(client, order, token):
    return client.post(
        f"/api/v1/orders/{order.id}/scans/processing/", {"token": token}, format="json"
    )


class TestIntakeScanEndpoint:
    def test_scan_reports_progress_and_transition(self, auth_client, make_order):
        order = make_order(("Shirt", 2))

        first = _intake(auth_client, order, "X1")
        second = _intake(auth_client, order, "X2")

        assert first.status_code == 200
        assert first.json()["order"]["scanned_count"] == 1
        assert first.json()["order_transitioned"] is False
        assert first.json()["garment"]["status"] == "IN_PROGRESS"
        assert second.json()["order_transitioned"] is True
        assert second.json()["order"]["status"] == OrderStatus.PROCESSING

    def test_duplicate_scan_conflicts(self, auth_client, make_order):
        order = make_order(("Shirt", 3))
        _intake(auth_client, order, "X1")

        response = _intake(auth_client, order, "X1")

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "duplicate_scan"

    def test_cross_order_conflict_names_owner(self, auth_client, make_order):
        owner = make_order(("Shirt", 2))
        other = make_order(("Shirt", 2))
        _intake(auth_client, owner, "X1")

        response = _intake(auth_client, other, "X1")

        assert response.status_code == 409
        error = response.json()["errors"][0]
        assert error["code"] == "cross_order_conflict"
        assert error["context"]["owning_order_id"] == str(owner.id)
        assert error["context"]["owning_order_number"] == owner.order_number

    def test_use_anyway_moves_garment(self, auth_client, make_order):
        owner = make_order(("Shirt", 2))
        other = make_order(("Shirt", 2))
        _intake(auth_client, owner, "X1")

        response = _intake(auth_client, other, "X1", use_anyway=True)

        assert response.status_code == 200
        assert response.json()["garment"]["order_id"] == str(other.id)

    def test_blank_token_is_rejected(self, auth_client, make_order):
        response = _intake(auth_client, make_order(), "")
        assert response.status_code == 400

    def test_correlation_id_reaches_outbox(self, auth_client, make_order):
        order = make_order()
        auth_client.post(
            f"/api/v1/orders/{order.id}/scans/intake/",
            {"token": "X1"},
            format="json",
            HTTP_X_REQUEST_ID="station-4-scan-99",
        )

        event = OutboxEvent.objects.get(event_type="GarmentScanned")
        assert event.payload["correlation_id"] == "station-4-scan-99"


class TestProcessingScanEndpoint:
    def test_full_processing(self, auth_client, processing_order):
        _process(auth_client, processing_order, "X1")
        response = _process(auth_client, processing_order, "X2")

        assert response.status_code == 200
        assert response.json()["order"]["status"] == OrderStatus.CLEANED

    def test_unknown_garment(self, auth_client, processing_order):
        response = _process(auth_client, processing_order, "NOPE")
        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "unknown_garment"

    def test_wrong_status(self, auth_client, make_order):
        order = make_order()
        response = _process(auth_client, order, "X1")
        assert response.status_code == 409

    def test_list_order_garments(self, auth_client, processing_order):
        response = auth_client.get(f"/api/v1/orders/{processing_order.id}/garments/")
        assert response.status_code == 200
        assert [garment["qr_code"] for garment in response.json()] == ["X1", "X2"]


class TestLabelEndpoint:
    def test_generates_labels(self, auth_client, make_order):
        item = make_order(("Shirt", 3)).items.get()

        response = auth_client.post(
            f"/api/v1/order-items/{item.id}/tokens/", {"count": 3}, format="json"
        )

        assert response.status_code == 201
        tokens = [garment["qr_code"] for garment in response.json()]
        assert len(set(tokens)) == 3
        assert all(garment["status"] == "PENDING" for garment in response.json())

    def test_count_out_of_range(self, auth_client, make_order):
        item = make_order().items.get()
        response = auth_client.post(
            f"/api/v1/order-items/{item.id}/tokens/", {"count": 0}, format="json"
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "invalid_quantity"
        assert not Garment.objects.exists()


class TestGarmentEndpoint:
    def test_retrieve_by_token(self, auth_client, processing_order):
        response = auth_client.get("/api/v1/garments/X1/")
        assert response.status_code == 200
        assert response.json()["order_id"] == str(processing_order.id)

    def test_partial_update(self, auth_client, processing_order):
        response = auth_client.patch(
            "/api/v1/garments/X1/",
            {"description": "Blue oxford", "image_ref": "s3://photos/x1.jpg"},
            format="json",
        )
        assert response.status_code == 200
        garment = Garment.objects.get(qr_code="X1")
        assert garment.description == "Blue oxford"
        assert garment.image_ref == "s3://photos/x1.jpg"

    def test_token_cannot_be_changed(self, auth_client, processing_order):
        auth_client.patch("/api/v1/garments/X1/", {"qr_code": "HIJACK"}, format="json")
        assert Garment.objects.filter(qr_code="X1").exists()
        assert not Garment.objects.filter(qr_code="HIJACK").exists()

    def test_unknown_token(self, auth_client):
        response = auth_client.get("/api/v1/garments/NOPE/")
        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "garment_not_found"
