"""
Tests for LoyaltyService: accrual on completion and redemption.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from fulfillment.models import RewardHistoryEntry
from fulfillment.repositories import CustomerRepository
from fulfillment.services.domain import (
    InsufficientPointsError,
    LoyaltyService,
    NotFoundError,
    OrderService,
)
from fulfillment.services.domain.exceptions import AccrualFailedError
from shared.config.constants import LoyaltyTier, OrderStatus, ProductSize, RewardEntryType
from tests.conftest import latte, meal, place_order


def ready_order(db, items, customer_id):
    order = place_order(db, items, customer_id=customer_id)
    service = OrderService(db)
    service.transition(order.id, OrderStatus.PREPARING)
    service.transition(order.id, OrderStatus.READY)
    return service.get_order(order.id)


def unreachable_profile(self, customer_id):
    raise OperationalError("SELECT customer_profiles", {}, Exception("connection reset"))


class TestAccrual:
    def test_bronze_earns_base_points(self, seeded, customer):
        order = ready_order(seeded, [latte(quantity=2), latte(size=ProductSize.VENTI)], customer.id)

        result = LoyaltyService(seeded).accrue(order)

        assert result.applied is True
        assert result.points == 13
        assert result.description.startswith(f"Order {order.order_number}: ")

    def test_gold_doubles_points(self, seeded, gold_customer):
        order = ready_order(seeded, [latte(quantity=2), latte(size=ProductSize.VENTI)], gold_customer.id)

        result = LoyaltyService(seeded).accrue(order)

        assert result.points == 26
        profile = LoyaltyService(seeded).get_profile(gold_customer.id)
        assert profile.current_points == 1226
        assert profile.total_orders == 1
        assert profile.total_spent_cents == order.total_cents

    def test_silver_multiplier_rounds_down(self, seeded, customer):
        customer.tier = LoyaltyTier.SILVER
        seeded.commit()
        order = ready_order(seeded, [latte(size=ProductSize.VENTI)], customer.id)

        result = LoyaltyService(seeded).accrue(order)

        # 5 * 1.5 = 7.5
        assert result.points == 7

    def test_crossing_threshold_upgrades_tier(self, seeded, customer):
        customer.lifetime_points = 295
        customer.current_points = 10
        seeded.commit()
        order = ready_order(seeded, [latte(quantity=2)], customer.id)

        result = LoyaltyService(seeded).accrue(order)

        assert result.tier == LoyaltyTier.SILVER
        profile = LoyaltyService(seeded).get_profile(customer.id)
        assert profile.lifetime_points == 303
        assert profile.current_points == 18

    def test_meal_only_order_writes_nothing(self, seeded, customer):
        order = ready_order(seeded, [meal(quantity=3)], customer.id)

        result = LoyaltyService(seeded).accrue(order)

        assert result.applied is False
        assert result.points == 0
        profile = LoyaltyService(seeded).get_profile(customer.id)
        assert profile.total_orders == 0
        assert LoyaltyService(seeded).list_history(customer.id) == []
        assert OrderService(seeded).get_order(order.id).loyalty_awarded is False

    def test_second_accrual_is_skipped(self, seeded, customer):
        order = ready_order(seeded, [latte()], customer.id)
        service = LoyaltyService(seeded)

        service.accrue(order)
        again = service.accrue(order)

        assert again.applied is False
        assert service.get_profile(customer.id).current_points == 4
        assert len(service.list_history(customer.id)) == 1

    def test_walk_in_returns_none(self, seeded):
        order = ready_order(seeded, [latte()], None)

        assert LoyaltyService(seeded).accrue(order) is None

    def test_missing_profile_raises_and_leaves_flag(self, seeded, customer):
        order = ready_order(seeded, [latte()], customer.id)
        seeded.delete(customer)
        seeded.commit()

        with pytest.raises(AccrualFailedError):
            LoyaltyService(seeded).accrue(order)

        assert OrderService(seeded).get_order(order.id).loyalty_awarded is False

    def test_profile_read_failure_raises_accrual_error(self, seeded, customer, monkeypatch):
        order = ready_order(seeded, [latte()], customer.id)
        monkeypatch.setattr(CustomerRepository, "get_profile", unreachable_profile)

        with pytest.raises(AccrualFailedError) as excinfo:
            LoyaltyService(seeded).accrue(order)

        assert excinfo.value.customer_id == customer.id
        assert "OperationalError" in excinfo.value.reason
        monkeypatch.undo()
        assert OrderService(seeded).get_order(order.id).loyalty_awarded is False
        assert LoyaltyService(seeded).get_profile(customer.id).current_points == 0

    def test_profile_read_failure_does_not_block_completion(self, seeded, customer, monkeypatch):
        order = ready_order(seeded, [latte()], customer.id)
        monkeypatch.setattr(CustomerRepository, "get_profile", unreachable_profile)

        result = OrderService(seeded).transition(order.id, OrderStatus.COMPLETED)

        assert result.points_awarded == 0
        assert any(customer.id in w for w in result.warnings)
        monkeypatch.undo()
        reloaded = OrderService(seeded).get_order(order.id)
        assert reloaded.status == OrderStatus.COMPLETED
        assert reloaded.loyalty_awarded is False


class TestRedemption:
    def test_redeem_spends_current_points_only(self, seeded, gold_customer):
        profile = LoyaltyService(seeded).redeem(gold_customer.id, 500, "Venti Upgrade")

        assert profile.current_points == 700
        assert profile.lifetime_points == 1200
        assert profile.tier == LoyaltyTier.GOLD

        entry = seeded.scalars(select(RewardHistoryEntry)).one()
        assert entry.entry_type == RewardEntryType.REDEEMED
        assert entry.points == -500
        assert entry.description == "Redeemed Venti Upgrade"

    def test_redeem_exact_balance(self, seeded, gold_customer):
        profile = LoyaltyService(seeded).redeem(gold_customer.id, 1200, "Party Pack")

        assert profile.current_points == 0

    def test_insufficient_points(self, seeded, gold_customer):
        with pytest.raises(InsufficientPointsError) as exc_info:
            LoyaltyService(seeded).redeem(gold_customer.id, 1201, "Party Pack")

        assert exc_info.value.required == 1201
        assert exc_info.value.available == 1200
        assert LoyaltyService(seeded).list_history(gold_customer.id) == []

    def test_unknown_customer(self, seeded):
        with pytest.raises(NotFoundError):
            LoyaltyService(seeded).redeem("ghost", 10, "Cookie")

    @pytest.mark.parametrize("cost", [0, -5])
    def test_cost_must_be_positive(self, seeded, gold_customer, cost):
        with pytest.raises(ValueError):
            LoyaltyService(seeded).redeem(gold_customer.id, cost, "Cookie")
