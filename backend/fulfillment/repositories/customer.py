"""
Customer Repository - loyalty counters and rewards history.
"""

from typing import Sequence

from sqlalchemy import case, literal, select, update

from fulfillment.models import CustomerProfile, RewardHistoryEntry
from shared.config.constants import Limits, LoyaltyTier
from .base import BaseRepository


def _tier_after(points_delta: int):
    """
    SQL expression for the tier once ``points_delta`` lands on lifetime points.

    Evaluated inside the UPDATE, so it sees the row's current lifetime total
    rather than a value read earlier. Tiers never go down.
    """
    new_lifetime = CustomerProfile.lifetime_points + points_delta
    return case(
        (CustomerProfile.tier == LoyaltyTier.GOLD, literal(LoyaltyTier.GOLD)),
        (new_lifetime >= LoyaltyTier.THRESHOLDS[LoyaltyTier.GOLD], literal(LoyaltyTier.GOLD)),
        (CustomerProfile.tier == LoyaltyTier.SILVER, literal(LoyaltyTier.SILVER)),
        (new_lifetime >= LoyaltyTier.THRESHOLDS[LoyaltyTier.SILVER], literal(LoyaltyTier.SILVER)),
        else_=CustomerProfile.tier,
    )


class CustomerRepository(BaseRepository[CustomerProfile]):
    """Repository for CustomerProfile entities."""

    @property
    def model(self) -> type[CustomerProfile]:
        return CustomerProfile

    def get_profile(self, customer_id: str) -> CustomerProfile | None:
        return self._db.execute(
            select(CustomerProfile)
            .where(CustomerProfile.id == customer_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def apply_profile_increments(
        self,
        customer_id: str,
        points: int,
        orders: int,
        spent_cents: int,
        history_entry: RewardHistoryEntry,
    ) -> bool:
        """
        Credit points and order stats, then append one history entry.

        Counters move with signed increments in a single UPDATE; the tier is
        recomputed in the same statement. Returns False if the profile does
        not exist (nothing is written in that case).
        """
        result = self._db.execute(
            update(CustomerProfile)
            .where(CustomerProfile.id == customer_id)
            .values(
                current_points=CustomerProfile.current_points + points,
                lifetime_points=CustomerProfile.lifetime_points + points,
                total_orders=CustomerProfile.total_orders + orders,
                total_spent_cents=CustomerProfile.total_spent_cents + spent_cents,
                tier=_tier_after(points),
            )
            .execution_options(synchronize_session=False)
        )
        if self._rowcount(result) == 0:
            return False

        history_entry.customer_id = customer_id
        self._db.add(history_entry)
        self._db.flush()
        return True

    def redeem_points(
        self,
        customer_id: str,
        points_cost: int,
        history_entry: RewardHistoryEntry,
    ) -> bool:
        """
        Spend points only if the balance covers them.

        ``UPDATE ... SET current_points = current_points - :cost
        WHERE id = :id AND current_points >= :cost``. Two concurrent
        redemptions can never overdraw the balance.
        """
        result = self._db.execute(
            update(CustomerProfile)
            .where(
                CustomerProfile.id == customer_id,
                CustomerProfile.current_points >= points_cost,
            )
            .values(current_points=CustomerProfile.current_points - points_cost)
            .execution_options(synchronize_session=False)
        )
        if self._rowcount(result) == 0:
            return False

        history_entry.customer_id = customer_id
        self._db.add(history_entry)
        self._db.flush()
        return True

    def list_history(self, customer_id: str, limit: int = Limits.DEFAULT_PAGE_SIZE) -> Sequence[RewardHistoryEntry]:
        return self._db.execute(
            select(RewardHistoryEntry)
            .where(RewardHistoryEntry.customer_id == customer_id)
            .order_by(RewardHistoryEntry.id.desc())
            .limit(min(limit, Limits.MAX_PAGE_SIZE))
        ).scalars().all()
