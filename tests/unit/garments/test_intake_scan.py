"""Unit tests for intake scan reconciliation.

Covers:
- New, duplicate, pre-printed and cross-order tokens.
- Confirmed re-association to the scanning order.
- The PENDING → PROCESSING transition happens exactly once.
- ``scanned_count`` always matches the garments that were scanned in.
"""

from __future__ import annotations

import uuid
from unittest.mock import patch

import pytest

from modules.businesses.models import Customer
from modules.core.models import OutboxEvent
from modules.garments.constants import GarmentStatus
from modules.garments.exceptions import CrossOrderConflict, DuplicateScan, InvalidToken
from modules.garments.models import Garment
from modules.orders.constants import AuditEventType, OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.exceptions import InvalidOrderStatus, OrderItemNotFound, OrderNotFound
from modules.orders.models import OrderAuditEntry

pytestmark = pytest.mark.unit


def scanned_garments(order):
    return Garment.objects.filter(order_item__order=order).exclude(status=GarmentStatus.PENDING).count()


class TestIntakeScan:
    def test_new_token_creates_in_progress_garment(self, make_order, registry):
        order = make_order(("Shirt", 2))

        result = registry.reconcile_intake_scan(str(order.id), "X1")

        assert result.order_transitioned is False
        assert result.order.scanned_count == 1
        garment = Garment.objects.get(qr_code="X1")
        assert garment.status == GarmentStatus.IN_PROGRESS
        assert garment.order_item.order_id == order.id
        assert garment.description.startswith("Shirt - ")
        assert garment.last_scanned_at is not None

    def test_token_is_stripped(self, make_order, registry):
        order = make_order()
        registry.reconcile_intake_scan(str(order.id), "  X1 \n")
        assert Garment.objects.filter(qr_code="X1").exists()

    @pytest.mark.parametrize("token", ["", "   ", None])
    def test_blank_token(self, token, make_order, registry):
        order = make_order()
        with pytest.raises(InvalidToken):
            registry.reconcile_intake_scan(str(order.id), token)

    def test_last_expected_scan_moves_order_to_processing(self, make_order, registry):
        order = make_order(("Shirt", 2))

        first = registry.reconcile_intake_scan(str(order.id), "X1")
        second = registry.reconcile_intake_scan(str(order.id), "X2")

        assert first.order_transitioned is False
        assert second.order_transitioned is True
        order.refresh_from_db()
        assert order.status == OrderStatus.PROCESSING
        assert order.scanned_count == 2
        assert OrderAuditEntry.objects.filter(
            order=order,
            event_type=AuditEventType.STATUS_CHANGE,
            new_status=OrderStatus.PROCESSING,
        ).count() == 1

    def test_order_without_expected_units_moves_on_first_scan(self, make_order, registry):
        order = make_order(("Shirt", 0))

        result = registry.reconcile_intake_scan(str(order.id), "Z1")

        assert result.order_transitioned is True
        order.refresh_from_db()
        assert order.status == OrderStatus.PROCESSING
        assert order.scanned_count == 1

    def test_scan_after_transition_is_rejected(self, processing_order, registry):
        with pytest.raises(InvalidOrderStatus):
            registry.reconcile_intake_scan(str(processing_order.id), "X3")
        assert not Garment.objects.filter(qr_code="X3").exists()

    def test_duplicate_scan(self, make_order, registry):
        order = make_order(("Shirt", 3))
        registry.reconcile_intake_scan(str(order.id), "X1")

        with pytest.raises(DuplicateScan) as exc_info:
            registry.reconcile_intake_scan(str(order.id), "X1")

        order.refresh_from_db()
        assert order.scanned_count == 1
        assert exc_info.value.context["qr_code"] == "X1"

    def test_designated_item(self, make_order, registry):
        order = make_order(("Shirt", 1), ("Suit", 1))
        suit = order.items.get(name="Suit")

        registry.reconcile_intake_scan(str(order.id), "S1", order_item_id=str(suit.id))

        assert Garment.objects.get(qr_code="S1").order_item_id == suit.id

    def test_item_of_another_order_is_rejected(self, make_order, registry):
        order = make_order()
        other = make_order()
        with pytest.raises(OrderItemNotFound):
            registry.reconcile_intake_scan(
                str(order.id), "X1", order_item_id=str(other.items.get().id)
            )

    def test_defaults_to_first_item(self, make_order, registry):
        order = make_order(("Shirt", 1), ("Suit", 1))
        registry.reconcile_intake_scan(str(order.id), "X1")
        assert Garment.objects.get(qr_code="X1").order_item.name == "Shirt"

    def test_unknown_order(self, registry):
        with pytest.raises(OrderNotFound):
            registry.reconcile_intake_scan(str(uuid.uuid4()), "X1")

    def test_writes_garment_audit_entry_and_outbox_event(self, make_order, registry):
        order = make_order()
        registry.reconcile_intake_scan(str(order.id), "X1")

        entry = OrderAuditEntry.objects.filter(
            order=order, event_type=AuditEventType.GARMENT
        ).get()
        assert entry.message == "Garment X1 scanned in"
        assert OutboxEvent.objects.filter(
            aggregate_id=str(order.id), event_type="GarmentScanned"
        ).exists()


class TestPrePrintedLabels:
    def test_pre_printed_token_is_activated(self, make_order, registry):
        order = make_order(("Shirt", 2))
        item = order.items.get()
        labels = registry.generate_batch_tokens(str(item.id), 2)

        result = registry.reconcile_intake_scan(str(order.id), labels[0].qr_code)

        assert result.garment.id == labels[0].id
        assert result.garment.status == GarmentStatus.IN_PROGRESS
        assert Garment.objects.filter(order_item__order=order).count() == 2
        order.refresh_from_db()
        assert order.scanned_count == scanned_garments(order) == 1

    def test_activated_label_cannot_be_scanned_twice(self, make_order, registry):
        order = make_order(("Shirt", 2))
        label = registry.generate_batch_tokens(str(order.items.get().id), 1)[0]
        registry.reconcile_intake_scan(str(order.id), label.qr_code)

        with pytest.raises(DuplicateScan):
            registry.reconcile_intake_scan(str(order.id), label.qr_code)


class TestCrossOrderScan:
    def test_conflict_without_confirmation(self, make_order, registry):
        first = make_order(("Shirt", 2))
        second = make_order(("Shirt", 2))
        registry.reconcile_intake_scan(str(first.id), "X1")

        with pytest.raises(CrossOrderConflict) as exc_info:
            registry.reconcile_intake_scan(str(second.id), "X1")

        context = exc_info.value.context
        assert str(context["owning_order_id"]) == str(first.id)
        assert context["owning_order_number"] == first.order_number
        assert Garment.objects.get(qr_code="X1").order_item.order_id == first.id
        second.refresh_from_db()
        assert second.scanned_count == 0

    def test_use_anyway_moves_garment(self, make_order, registry):
        first = make_order(("Shirt", 2))
        second = make_order(("Shirt", 1))
        registry.reconcile_intake_scan(str(first.id), "X1")

        result = registry.reconcile_intake_scan(str(second.id), "X1", use_anyway=True)

        assert Garment.objects.filter(qr_code="X1").count() == 1
        assert result.garment.order_item.order_id == second.id
        assert result.order_transitioned is True

        first.refresh_from_db()
        second.refresh_from_db()
        assert first.scanned_count == scanned_garments(first) == 0
        assert second.scanned_count == scanned_garments(second) == 1
        assert second.status == OrderStatus.PROCESSING

        source_messages = list(
            OrderAuditEntry.objects.filter(
                order=first, event_type=AuditEventType.GARMENT
            ).values_list("message", flat=True)
        )
        assert source_messages[-1] == f"Garment X1 moved to order {second.order_number}"

    def test_use_anyway_with_pre_printed_label_leaves_source_count(self, make_order, registry):
        first = make_order(("Shirt", 2))
        second = make_order(("Shirt", 2))
        label = registry.generate_batch_tokens(str(first.items.get().id), 1)[0]

        registry.reconcile_intake_scan(str(second.id), label.qr_code, use_anyway=True)

        first.refresh_from_db()
        assert first.scanned_count == 0
        assert Garment.objects.get(id=label.id).status == GarmentStatus.IN_PROGRESS

    def test_token_inserted_by_concurrent_scan_is_a_conflict(
        self, make_order, registry, garment_repo
    ):
        owner = make_order()
        registry.reconcile_intake_scan(str(owner.id), "RACE-1")
        owned = garment_repo.get_by_token("RACE-1")
        order = make_order()

        # Both lookups before the insert miss the row the other scan wrote.
        with patch.object(garment_repo, "get_by_token", side_effect=[None, None, owned]):
            with pytest.raises(CrossOrderConflict) as exc_info:
                registry.reconcile_intake_scan(str(order.id), "RACE-1")

        assert str(exc_info.value.context["owning_order_id"]) == str(owner.id)
        order.refresh_from_db()
        assert order.scanned_count == 0
        assert Garment.objects.get(qr_code="RACE-1").order_item.order_id == owner.id

    def test_token_from_other_business_is_a_conflict(
        self, make_order, registry, order_service, other_business
    ):
        stranger = Customer.objects.create(
            business=other_business, first_name="Bo", last_name="Li", phone_number="2"
        )
        foreign = order_service.create_order(
            CreateOrderDTO(
                business_id=other_business.id,
                customer_id=stranger.id,
                items=[CreateOrderItemDTO(name="Shirt", quantity=1)],
            )
        )
        registry.reconcile_intake_scan(str(foreign.id), "GLOBAL-1")
        order = make_order()

        with pytest.raises(CrossOrderConflict):
            registry.reconcile_intake_scan(str(order.id), "GLOBAL-1")
