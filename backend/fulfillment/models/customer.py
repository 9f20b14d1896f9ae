"""
Customer Models: CustomerProfile, RewardHistoryEntry.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import LoyaltyTier
from .base import Base, TimestampMixin, new_id


class CustomerProfile(TimestampMixin, Base):
    """
    Loyalty-relevant part of a registered customer's profile.

    Counters are only changed with signed increments at order completion
    or reward redemption.
    """

    __tablename__ = "customer_profile"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text, index=True)

    current_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lifetime_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_orders: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_spent_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tier: Mapped[str] = mapped_column(Text, default=LoyaltyTier.BRONZE, nullable=False)

    rewards_history: Mapped[list["RewardHistoryEntry"]] = relationship(
        back_populates="customer",
        order_by="RewardHistoryEntry.id.desc()",
        cascade="all, delete-orphan",
    )


class RewardHistoryEntry(Base):
    """Append-only record of points earned or redeemed."""

    __tablename__ = "reward_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("customer_profile.id", ondelete="CASCADE"), nullable=False, index=True
    )
    entry_type: Mapped[str] = mapped_column(Text, nullable=False)  # earned, redeemed
    points: Mapped[int] = mapped_column(Integer, nullable=False)  # negative when redeemed
    description: Mapped[str] = mapped_column(Text, nullable=False)
    order_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    customer: Mapped["CustomerProfile"] = relationship(back_populates="rewards_history")
