"""
Loyalty Domain Service.

Credits points when an order completes and spends them on redemption.
Points come from a static per-size table (Grande 4, Venti 5 per unit)
scaled by the customer's tier.
"""

import math

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fulfillment.models import CustomerProfile, Order, OrderLine, RewardHistoryEntry
from fulfillment.repositories.customer import CustomerRepository
from fulfillment.repositories.order import OrderRepository
from fulfillment.services.domain.exceptions import (
    AccrualFailedError,
    InsufficientPointsError,
    NotFoundError,
)
from fulfillment.types import AccrualResult
from shared.config.constants import POINTS_PER_UNIT_BY_SIZE, LoyaltyTier, RewardEntryType
from shared.config.logging import loyalty_logger as logger, mask_customer_id
from shared.infrastructure.db import safe_commit


def base_points_for_lines(lines: list[OrderLine]) -> tuple[int, list[str]]:
    """
    Points before the tier multiplier, and the products that earned them.

    Sizes outside the points table (meals, unknown sizes) earn nothing.
    """
    total = 0
    earners: list[str] = []
    for line in lines:
        per_unit = POINTS_PER_UNIT_BY_SIZE.get(line.size or "", 0)
        if per_unit <= 0:
            continue
        total += per_unit * line.quantity
        earners.append(f"{line.product_name} ({line.size}) x{line.quantity}")
    return total, earners


def apply_tier_multiplier(points: int, tier: str | None) -> int:
    multiplier = LoyaltyTier.MULTIPLIERS.get(tier or LoyaltyTier.BRONZE, 1.0)
    return math.floor(points * multiplier)


def earned_description(order: Order, earners: list[str]) -> str:
    return f"Order {order.order_number}: {', '.join(earners)}"


class LoyaltyService:
    """Domain service for points accrual and redemption."""

    def __init__(self, db: Session):
        self._db = db
        self._customers = CustomerRepository(db)
        self._orders = OrderRepository(db)

    def accrue(self, order: Order) -> AccrualResult | None:
        """
        Credit points for a completed order, at most once.

        The ``loyalty_awarded`` claim, the counter increments and the history
        entry commit together. Returns None for walk-in orders with no
        customer.

        Raises:
            AccrualFailedError: profile missing, or the read or write failed;
                nothing was credited and the flag is still false
        """
        customer_id = order.customer_id
        if not customer_id:
            return None

        try:
            order_id, lines, total_cents = order.id, list(order.lines), order.total_cents
            profile = self._customers.get_profile(customer_id)
            if profile is None:
                raise AccrualFailedError(customer_id, "customer profile not found")

            base_points, earners = base_points_for_lines(lines)
            points = apply_tier_multiplier(base_points, profile.tier)
            if points <= 0:
                logger.debug("No points earned", order_id=order_id)
                return AccrualResult(customer_id=customer_id, points=0, applied=False, tier=profile.tier)

            if not self._orders.claim_flag(order_id, "loyalty_awarded"):
                logger.info("Points already awarded, skipping", order_id=order_id)
                return AccrualResult(customer_id=customer_id, points=0, applied=False, tier=profile.tier)

            description = earned_description(order, earners)
            entry = RewardHistoryEntry(
                entry_type=RewardEntryType.EARNED,
                points=points,
                description=description,
                order_id=order_id,
            )
            applied = self._customers.apply_profile_increments(
                customer_id,
                points=points,
                orders=1,
                spent_cents=total_cents,
                history_entry=entry,
            )
            if not applied:
                self._db.rollback()
                raise AccrualFailedError(customer_id, "customer profile disappeared during update")
            safe_commit(self._db)
        except SQLAlchemyError as e:
            # Profile reads fail the same way as writes: nothing credited
            self._db.rollback()
            raise AccrualFailedError(customer_id, f"profile store unavailable ({type(e).__name__})") from e

        try:
            updated = self._customers.get_profile(customer_id)
        except SQLAlchemyError:
            logger.warning("Could not re-read profile after accrual", customer=mask_customer_id(customer_id))
            updated = None
        tier = updated.tier if updated else profile.tier
        logger.info(
            "Points awarded",
            order_id=order_id,
            customer=mask_customer_id(customer_id),
            points=points,
            tier=tier,
        )
        if tier != profile.tier:
            logger.info("Tier upgraded", customer=mask_customer_id(customer_id), old=profile.tier, new=tier)

        return AccrualResult(
            customer_id=customer_id,
            points=points,
            applied=True,
            tier=tier,
            description=description,
        )

    def redeem(self, customer_id: str, points_cost: int, reward_name: str) -> CustomerProfile:
        """
        Spend points on a reward.

        Raises:
            ValueError: non-positive cost
            NotFoundError: unknown customer
            InsufficientPointsError: balance below ``points_cost``
        """
        if points_cost <= 0:
            raise ValueError("points_cost must be positive")

        profile = self._customers.get_profile(customer_id)
        if profile is None:
            raise NotFoundError("Customer", customer_id)

        entry = RewardHistoryEntry(
            entry_type=RewardEntryType.REDEEMED,
            points=-points_cost,
            description=f"Redeemed {reward_name}",
        )
        if not self._customers.redeem_points(customer_id, points_cost, entry):
            self._db.rollback()
            current = self._customers.get_profile(customer_id)
            raise InsufficientPointsError(
                customer_id,
                required=points_cost,
                available=current.current_points if current else 0,
            )
        safe_commit(self._db)

        logger.info(
            "Points redeemed",
            customer=mask_customer_id(customer_id),
            points=points_cost,
            reward=reward_name,
        )
        updated = self._customers.get_profile(customer_id)
        if updated is None:
            raise NotFoundError("Customer", customer_id)
        return updated

    def get_profile(self, customer_id: str) -> CustomerProfile:
        profile = self._customers.get_profile(customer_id)
        if profile is None:
            raise NotFoundError("Customer", customer_id)
        return profile

    def list_history(self, customer_id: str, limit: int = 50) -> list[RewardHistoryEntry]:
        return list(self._customers.list_history(customer_id, limit=limit))
