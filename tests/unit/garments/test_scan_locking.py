"""Unit tests for the per-order locking discipline of the registry.

Covers:
- Intake and processing scans take the order row lock before they read
  or write any garment state.
- ``lock_many`` locks each order once, in sorted id order.

The threaded test in ``tests/integration/orders`` needs a backend with
``SELECT ... FOR UPDATE``; these run everywhere.
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from modules.garments.repositories.django_repository import GarmentDjangoRepository
from modules.garments.services import GarmentRegistry
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def recorder():
    """Parent mock recording calls to both wrapped repositories in order."""
    parent = Mock()
    parent.attach_mock(Mock(wraps=OrderDjangoRepository()), "orders")
    parent.attach_mock(Mock(wraps=GarmentDjangoRepository()), "garments")
    return parent


@pytest.fixture()
def locking_registry(recorder, order_service):
    return GarmentRegistry(
        garment_repository=recorder.garments,
        order_repository=recorder.orders,
        order_service=order_service,
    )


def call_names(recorder):
    return [name for name, _args, _kwargs in recorder.mock_calls]


def first_index(recorder, predicate):
    for index, (name, args, kwargs) in enumerate(recorder.mock_calls):
        if predicate(name, args, kwargs):
            return index
    raise AssertionError(f"no matching call in {call_names(recorder)}")


def is_locked_garment_read(name, _args, kwargs):
    return name == "garments.get_by_token" and kwargs.get("for_update") is True


class TestScanLocking:
    def test_intake_locks_order_before_garment_work(self, make_order, recorder, locking_registry):
        order = make_order(("Shirt", 2))
        recorder.reset_mock()

        locking_registry.reconcile_intake_scan(str(order.id), "L1")

        lock = first_index(recorder, lambda name, *_: name == "orders.lock_many")
        assert lock < first_index(recorder, is_locked_garment_read)
        assert lock < first_index(recorder, lambda name, *_: name == "garments.create")
        assert lock < first_index(recorder, lambda name, *_: name == "orders.save")
        assert "orders.get_by_id" not in call_names(recorder)

    def test_intake_with_owner_locks_both_orders_together(
        self, make_order, registry, recorder, locking_registry
    ):
        owner = make_order()
        registry.reconcile_intake_scan(str(owner.id), "L2")
        order = make_order()
        recorder.reset_mock()

        locking_registry.reconcile_intake_scan(str(order.id), "L2", use_anyway=True)

        locks = [args for name, args, _ in recorder.mock_calls if name == "orders.lock_many"]
        assert len(locks) == 1
        assert set(locks[0][0]) == {str(owner.id), str(order.id)}
        assert first_index(recorder, lambda name, *_: name == "orders.lock_many") < first_index(
            recorder, lambda name, *_: name == "garments.save"
        )

    def test_processing_locks_order_before_garment_work(
        self, processing_order, recorder, locking_registry
    ):
        recorder.reset_mock()

        locking_registry.reconcile_processing_scan(str(processing_order.id), "X1")

        lock = first_index(recorder, lambda name, *_: name == "orders.get_for_update")
        assert lock == 0
        assert lock < first_index(recorder, is_locked_garment_read)
        assert lock < first_index(recorder, lambda name, *_: name == "garments.save")


class TestLockMany:
    def test_locks_each_order_once_in_sorted_order(self):
        repo = OrderDjangoRepository()
        repo.get_for_update = Mock(side_effect=lambda order_id: f"order-{order_id}")

        locked = repo.lock_many(["c", "a", "b", "a"])

        assert [call.args[0] for call in repo.get_for_update.call_args_list] == ["a", "b", "c"]
        assert locked == {"a": "order-a", "b": "order-b", "c": "order-c"}

    def test_missing_orders_are_left_out(self):
        repo = OrderDjangoRepository()
        repo.get_for_update = Mock(side_effect=lambda order_id: None if order_id == "b" else order_id)

        assert repo.lock_many(["b", "a"]) == {"a": "a"}
