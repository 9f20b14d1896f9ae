"""
Order Models: Order, OrderLine.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import OrderStatus, OrderType
from .base import Base, TimestampMixin, new_id


class Order(TimestampMixin, Base):
    """
    A customer order placed from the storefront or the POS.

    Lifecycle: waiting -> preparing -> ready -> completed, or cancelled.
    ``status``, ``inventory_deducted`` and ``loyalty_awarded`` are only
    written by OrderService through conditional updates.
    """

    __tablename__ = "customer_order"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    order_number: Mapped[str] = mapped_column(Text, nullable=False, index=True)  # "#20231125-0001"
    status: Mapped[str] = mapped_column(Text, default=OrderStatus.WAITING, nullable=False, index=True)
    order_type: Mapped[str] = mapped_column(Text, default=OrderType.WALK_IN, nullable=False)

    # Amounts (in cents)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    discount_type: Mapped[str] = mapped_column(Text, default="none", nullable=False)
    discount_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    # Payment
    payment_method: Mapped[str] = mapped_column(Text, nullable=False)  # cash, gcash
    payment_reference: Mapped[Optional[str]] = mapped_column(Text)
    amount_received_cents: Mapped[Optional[int]] = mapped_column(Integer)
    change_cents: Mapped[Optional[int]] = mapped_column(Integer)

    # Parties. Walk-in orders have no customer and earn no points.
    customer_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("customer_profile.id"), index=True
    )
    customer_name: Mapped[Optional[str]] = mapped_column(Text)
    employee_id: Mapped[Optional[str]] = mapped_column(Text)

    # Idempotency flags: each side effect runs in the transaction that flips its flag
    inventory_deducted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    loyalty_awarded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)

    # Relationships
    lines: Mapped[list["OrderLine"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", order_by="OrderLine.position"
    )

    __table_args__ = (
        # Live queue query (status + placement time)
        Index("ix_order_status_created", "status", "created_at"),
        # Reconciliation scan for orders whose deduction failed
        Index("ix_order_inventory_deducted", "inventory_deducted"),
        CheckConstraint("total_cents >= 0", name="chk_order_total_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Order(id='{self.id}', number='{self.order_number}', status='{self.status}')>"


class OrderLine(Base):
    """
    A single product entry within an order.
    Name, category and price are copied at placement time for receipts;
    lines are immutable once the order exists.
    """

    __tablename__ = "order_line"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("customer_order.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(Text)
    size: Mapped[Optional[str]] = mapped_column(Text)  # Grande, Venti, Ala Carte, Combo Meal
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    # Customizations
    sugar_level: Mapped[Optional[str]] = mapped_column(Text)
    ice_level: Mapped[Optional[str]] = mapped_column(Text)
    toppings: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    order: Mapped["Order"] = relationship(back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_order_line_quantity_positive"),
        CheckConstraint("unit_price_cents >= 0", name="chk_order_line_price_non_negative"),
    )
