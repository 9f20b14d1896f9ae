"""
Tests for OrderService: placement and the order state machine.
"""

from dataclasses import replace

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from fulfillment.models import Order, RewardHistoryEntry
from fulfillment.repositories import OrderRepository
from fulfillment.repositories.catalog import SqlCatalogResolver
from fulfillment.repositories.stock_ledger import LedgerWriteError, SqlStockLedger
from fulfillment.services.domain import (
    InvalidOrderError,
    InvalidTransitionError,
    InventoryService,
    NotFoundError,
    OrderService,
)
from fulfillment.types import PaymentDetails
from shared.config.constants import OrderStatus, ProductSize
from shared.config.settings import settings
from shared.utils.validators import is_valid_order_number
from tests.conftest import CASH, latte, meal, place_order, stock_of


class CountingLedger(SqlStockLedger):
    """SQL ledger that counts batches and can be told to fail."""

    def __init__(self, db, fail: bool = False):
        super().__init__(db)
        self.calls = 0
        self.fail = fail

    def apply_increments(self, increments):
        self.calls += 1
        if self.fail:
            raise LedgerWriteError("store unavailable")
        super().apply_increments(increments)


class UnreachableCatalog(SqlCatalogResolver):
    """Catalog whose product reads fail like a dropped connection."""

    def resolve_product(self, product_id):
        raise OperationalError("SELECT products", {}, Exception("connection reset"))


def service_with(db, ledger: SqlStockLedger) -> OrderService:
    return OrderService(db, inventory=InventoryService(db, ledger=ledger))


def advance(service: OrderService, order_id: str, *statuses: str) -> None:
    for status in statuses:
        service.transition(order_id, status)


class TestCreateOrder:
    def test_assigns_number_and_totals(self, seeded):
        service = OrderService(seeded)

        result = service.create_order([latte(quantity=2), meal()], CASH)
        order = service.get_order(result.order_id)

        assert is_valid_order_number(order.order_number)
        assert order.status == OrderStatus.WAITING
        assert order.subtotal_cents == 2 * 5900 + 9900
        assert order.total_cents == order.subtotal_cents
        assert [line.product_id for line in order.lines] == ["cb-01", "ml-01"]

    def test_senior_discount_is_twenty_percent(self, seeded):
        service = OrderService(seeded)

        result = service.create_order([meal()], CASH, discount_type="senior")
        order = service.get_order(result.order_id)

        assert order.discount_cents == 1980
        assert order.total_cents == 7920

    def test_cash_change_is_computed(self, seeded):
        service = OrderService(seeded)

        result = service.create_order([meal()], PaymentDetails(method="cash", amount_received_cents=10000))

        assert service.get_order(result.order_id).change_cents == 100

    def test_initial_deduction_attempt(self, seeded):
        milk_before = stock_of(seeded, "milk")

        result = OrderService(seeded).create_order([latte(sugar="full")], CASH)

        assert result.inventory_deducted is True
        assert stock_of(seeded, "milk") == milk_before - 150
        assert OrderService(seeded).get_order(result.order_id).inventory_deducted is True

    def test_failed_deduction_does_not_block_order(self, seeded):
        ledger = CountingLedger(seeded, fail=True)
        cups_before = stock_of(seeded, "cup-grande")

        result = service_with(seeded, ledger).create_order([latte()], CASH)

        assert result.inventory_deducted is False
        assert any("store unavailable" in w for w in result.warnings)
        order = OrderService(seeded).get_order(result.order_id)
        assert order.inventory_deducted is False
        assert order.status == OrderStatus.WAITING
        assert stock_of(seeded, "cup-grande") == cups_before

    def test_category_is_filled_from_catalog(self, seeded):
        item = replace(latte(), category=None)

        result = OrderService(seeded).create_order([item], CASH)

        assert OrderService(seeded).get_order(result.order_id).lines[0].category == "Coffee Based"

    def test_toppings_are_stored_sorted(self, seeded):
        result = OrderService(seeded).create_order([latte(toppings=["Pearls", "Nata de Coco"])], CASH)

        assert OrderService(seeded).get_order(result.order_id).lines[0].toppings == ["Nata de Coco", "Pearls"]

    @pytest.mark.parametrize(
        "payment",
        [
            PaymentDetails(method="cash"),
            PaymentDetails(method="cash", amount_received_cents=100),
            PaymentDetails(method="gcash"),
            PaymentDetails(method="card", amount_received_cents=100_000),
        ],
    )
    def test_rejects_bad_payment(self, seeded, payment):
        with pytest.raises(InvalidOrderError):
            OrderService(seeded).create_order([latte()], payment)

        assert seeded.scalar(select(Order.id)) is None

    def test_rejects_empty_order(self, seeded):
        with pytest.raises(InvalidOrderError):
            OrderService(seeded).create_order([], CASH)

    def test_rejects_unknown_customer(self, seeded):
        with pytest.raises(NotFoundError):
            OrderService(seeded).create_order([latte()], CASH, customer_id="nobody")

    def test_deduction_can_be_deferred(self, seeded, monkeypatch):
        monkeypatch.setattr(settings, "deduct_on_create", False)
        milk_before = stock_of(seeded, "milk")

        result = OrderService(seeded).create_order([latte()], CASH)

        assert result.inventory_deducted is False
        assert stock_of(seeded, "milk") == milk_before


class TestTransitionGraph:
    def test_happy_path(self, seeded):
        order = place_order(seeded, [latte()])
        service = OrderService(seeded)

        for status in (OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.COMPLETED):
            result = service.transition(order.id, status)
            assert result.to_status == status

        done = service.get_order(order.id)
        assert done.status == OrderStatus.COMPLETED
        assert done.completed_at is not None

    @pytest.mark.parametrize(
        "path, target",
        [
            ([], OrderStatus.READY),
            ([], OrderStatus.COMPLETED),
            ([OrderStatus.PREPARING], OrderStatus.WAITING),
            ([OrderStatus.PREPARING, OrderStatus.READY], OrderStatus.PREPARING),
            ([OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.COMPLETED], OrderStatus.CANCELLED),
            ([OrderStatus.CANCELLED], OrderStatus.PREPARING),
        ],
    )
    def test_illegal_edges_are_rejected(self, seeded, path, target):
        order = place_order(seeded, [latte()])
        service = OrderService(seeded)
        advance(service, order.id, *path)
        status_before = service.get_order(order.id).status

        with pytest.raises(InvalidTransitionError):
            service.transition(order.id, target)

        assert service.get_order(order.id).status == status_before

    def test_unknown_status_is_rejected(self, seeded):
        order = place_order(seeded, [latte()])

        with pytest.raises(InvalidTransitionError):
            OrderService(seeded).transition(order.id, "shipped")

    def test_unknown_order(self, seeded):
        with pytest.raises(NotFoundError):
            OrderService(seeded).transition("missing", OrderStatus.PREPARING)

    @pytest.mark.parametrize(
        "path",
        [[], [OrderStatus.PREPARING], [OrderStatus.PREPARING, OrderStatus.READY]],
    )
    def test_cancel_from_any_live_status(self, seeded, path):
        order = place_order(seeded, [latte()])
        service = OrderService(seeded)
        advance(service, order.id, *path)

        service.transition(order.id, OrderStatus.CANCELLED, reason="Customer left")

        cancelled = service.get_order(order.id)
        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.cancellation_reason == "Customer left"
        assert cancelled.cancelled_at is not None

    def test_cancel_does_not_restock(self, seeded):
        milk_before = stock_of(seeded, "milk")
        order = place_order(seeded, [latte()])
        service = OrderService(seeded)
        advance(service, order.id, OrderStatus.PREPARING, OrderStatus.READY)

        service.transition(order.id, OrderStatus.CANCELLED)

        assert stock_of(seeded, "milk") == milk_before - 150


class TestExactlyOnceDeduction:
    def test_ready_skips_when_already_deducted(self, seeded):
        """Deducted at creation; ready performs zero ledger writes."""
        order = place_order(seeded, [latte()])
        ledger = CountingLedger(seeded)
        service = service_with(seeded, ledger)

        service.transition(order.id, OrderStatus.PREPARING)
        result = service.transition(order.id, OrderStatus.READY)

        assert result.inventory_deducted is False
        assert ledger.calls == 0

    def test_ready_twice_deducts_once(self, seeded, monkeypatch):
        monkeypatch.setattr(settings, "deduct_on_create", False)
        milk_before = stock_of(seeded, "milk")
        order = place_order(seeded, [latte()])
        ledger = CountingLedger(seeded)
        service = service_with(seeded, ledger)
        service.transition(order.id, OrderStatus.PREPARING)

        first = service.transition(order.id, OrderStatus.READY)
        second = service.transition(order.id, OrderStatus.READY)

        assert first.inventory_deducted is True
        assert second.inventory_deducted is False
        assert second.retried is True
        assert ledger.calls == 1
        assert stock_of(seeded, "milk") == milk_before - 150

    def test_ready_retries_a_failed_deduction(self, seeded):
        failing = CountingLedger(seeded, fail=True)
        result = service_with(seeded, failing).create_order([latte()], CASH)
        assert result.inventory_deducted is False

        service = OrderService(seeded)
        service.transition(result.order_id, OrderStatus.PREPARING)
        ready = service.transition(result.order_id, OrderStatus.READY)

        assert ready.inventory_deducted is True
        assert service.get_order(result.order_id).inventory_deducted is True

    def test_failed_deduction_on_ready_keeps_status(self, seeded, monkeypatch):
        monkeypatch.setattr(settings, "deduct_on_create", False)
        order = place_order(seeded, [latte()])
        service = service_with(seeded, CountingLedger(seeded, fail=True))
        service.transition(order.id, OrderStatus.PREPARING)

        result = service.transition(order.id, OrderStatus.READY)

        assert result.inventory_deducted is False
        assert result.warnings
        reloaded = service.get_order(order.id)
        assert reloaded.status == OrderStatus.READY
        assert reloaded.inventory_deducted is False

    def test_deduct_on_preparing(self, seeded, monkeypatch):
        monkeypatch.setattr(settings, "deduct_on_create", False)
        monkeypatch.setattr(settings, "deduct_on_preparing", True)
        order = place_order(seeded, [latte()])
        ledger = CountingLedger(seeded)
        service = service_with(seeded, ledger)

        preparing = service.transition(order.id, OrderStatus.PREPARING)
        ready = service.transition(order.id, OrderStatus.READY)

        assert preparing.inventory_deducted is True
        assert ready.inventory_deducted is False
        assert ledger.calls == 1

    def test_flag_claim_is_single_winner(self, seeded, monkeypatch):
        monkeypatch.setattr(settings, "deduct_on_create", False)
        order = place_order(seeded, [latte()])
        orders = OrderRepository(seeded)

        assert orders.claim_flag(order.id, "inventory_deducted") is True
        assert orders.claim_flag(order.id, "inventory_deducted") is False


class TestConcurrentTransitions:
    """Another writer moves the order between our read and our write."""

    def _race(self, service: OrderService, seeded, competing_status: str, monkeypatch):
        original = service._orders.update_status

        def update_after_competitor(order_id, expected, new, **fields):
            OrderRepository(seeded).update_status(order_id, expected, competing_status)
            return original(order_id, expected, new, **fields)

        monkeypatch.setattr(service._orders, "update_status", update_after_competitor)

    def test_losing_to_the_same_target_is_success(self, seeded, monkeypatch):
        order = place_order(seeded, [latte()])
        service = OrderService(seeded)
        self._race(service, seeded, OrderStatus.PREPARING, monkeypatch)

        result = service.transition(order.id, OrderStatus.PREPARING)

        assert result.retried is True
        assert service.get_order(order.id).status == OrderStatus.PREPARING

    def test_losing_to_a_cancel_is_an_invalid_transition(self, seeded, monkeypatch):
        order = place_order(seeded, [latte()])
        service = OrderService(seeded)
        self._race(service, seeded, OrderStatus.CANCELLED, monkeypatch)

        with pytest.raises(InvalidTransitionError) as exc_info:
            service.transition(order.id, OrderStatus.PREPARING)

        assert exc_info.value.from_status == OrderStatus.CANCELLED
        assert service.get_order(order.id).status == OrderStatus.CANCELLED


class TestCompletion:
    def test_completion_credits_points_once(self, seeded, customer):
        """2 Grande (4 each) + 1 Venti (5) = 13 points, one history entry."""
        order = place_order(
            seeded,
            [latte(quantity=2), latte(size=ProductSize.VENTI)],
            customer_id=customer.id,
        )
        service = OrderService(seeded)
        advance(service, order.id, OrderStatus.PREPARING, OrderStatus.READY)

        first = service.transition(order.id, OrderStatus.COMPLETED)
        second = service.transition(order.id, OrderStatus.COMPLETED)

        assert first.points_awarded == 13
        assert second.points_awarded == 0
        seeded.refresh(customer)
        assert customer.current_points == 13
        assert customer.lifetime_points == 13
        assert customer.total_orders == 1
        entries = seeded.scalars(select(RewardHistoryEntry).where(RewardHistoryEntry.customer_id == customer.id)).all()
        assert len(entries) == 1
        assert "Spanish Latte (Grande)" in entries[0].description
        assert "Spanish Latte (Venti)" in entries[0].description

    def test_walk_in_order_earns_nothing(self, seeded):
        order = place_order(seeded, [latte()])
        service = OrderService(seeded)
        advance(service, order.id, OrderStatus.PREPARING, OrderStatus.READY)

        result = service.transition(order.id, OrderStatus.COMPLETED)

        assert result.points_awarded == 0
        assert result.warnings == []

    def test_missing_profile_does_not_block_completion(self, seeded, customer):
        order = place_order(seeded, [latte()], customer_id=customer.id)
        service = OrderService(seeded)
        advance(service, order.id, OrderStatus.PREPARING, OrderStatus.READY)
        seeded.delete(customer)
        seeded.commit()

        result = service.transition(order.id, OrderStatus.COMPLETED)

        assert result.points_awarded == 0
        assert any("cust-1" in w for w in result.warnings)
        assert service.get_order(order.id).status == OrderStatus.COMPLETED


class TestReconciliation:
    def test_reconcile_inventory_after_failure(self, seeded):
        result = service_with(seeded, CountingLedger(seeded, fail=True)).create_order([latte()], CASH)
        milk_before = stock_of(seeded, "milk")

        plan = OrderService(seeded).reconcile_inventory(result.order_id)

        assert plan is not None
        assert stock_of(seeded, "milk") == milk_before - 150
        assert OrderService(seeded).reconcile_inventory(result.order_id) is None

    def test_cancelled_orders_are_not_reconciled(self, seeded):
        result = service_with(seeded, CountingLedger(seeded, fail=True)).create_order([latte()], CASH)
        OrderService(seeded).transition(result.order_id, OrderStatus.CANCELLED)

        with pytest.raises(InvalidOrderError):
            OrderService(seeded).reconcile_inventory(result.order_id)

    def test_reconcile_pending(self, seeded):
        failing = service_with(seeded, CountingLedger(seeded, fail=True))
        pending = [failing.create_order([latte()], CASH).order_id for _ in range(2)]
        place_order(seeded, [meal()])

        outcomes = OrderService(seeded).reconcile_pending()

        assert sorted(o.order_id for o in outcomes) == sorted(pending)
        assert all(o.deducted and o.error is None for o in outcomes)
        assert OrderService(seeded).reconcile_pending() == []

    def test_catalog_outage_leaves_order_for_reconciliation(self, seeded, monkeypatch):
        monkeypatch.setattr(settings, "deduct_on_create", False)
        order = place_order(seeded, [latte()])
        milk_before = stock_of(seeded, "milk")
        service = OrderService(seeded, inventory=InventoryService(seeded, catalog=UnreachableCatalog(seeded)))
        service.transition(order.id, OrderStatus.PREPARING)

        result = service.transition(order.id, OrderStatus.READY)

        assert result.inventory_deducted is False
        assert any("OperationalError" in w for w in result.warnings)
        reloaded = service.get_order(order.id)
        assert reloaded.status == OrderStatus.READY
        assert reloaded.inventory_deducted is False
        assert stock_of(seeded, "milk") == milk_before

    def test_reconcile_pending_reports_catalog_outage_per_order(self, seeded, monkeypatch):
        monkeypatch.setattr(settings, "deduct_on_create", False)
        pending = [place_order(seeded, [latte()]).id for _ in range(2)]
        service = OrderService(seeded, inventory=InventoryService(seeded, catalog=UnreachableCatalog(seeded)))

        outcomes = service.reconcile_pending()

        assert sorted(o.order_id for o in outcomes) == sorted(pending)
        assert all(not o.deducted and "OperationalError" in o.error for o in outcomes)
        assert all(not service.get_order(order_id).inventory_deducted for order_id in pending)
