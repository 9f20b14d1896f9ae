"""
Ingredient Model: stock ledger rows for ingredients, toppings and packaging.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class Ingredient(TimestampMixin, Base):
    """
    Ingredient or packaging material held in stock.

    ``stock`` is only ever changed with signed increments
    (``stock = stock + :delta``), never overwritten from a value read
    earlier. It may go negative: orders are not blocked on stock.
    """

    __tablename__ = "ingredient"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # e.g. "cup-grande"
    name: Mapped[str] = mapped_column(Text, nullable=False)
    unit: Mapped[str] = mapped_column(Text, default="g", nullable=False)  # g, ml, pcs
    stock: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    low_stock_threshold: Mapped[float] = mapped_column(Float, default=0, nullable=False)

    # Toppings are looked up by display name when an order is processed
    is_topping: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    portion_size: Mapped[Optional[float]] = mapped_column(Float)
    topping_price_cents: Mapped[Optional[int]] = mapped_column(Integer)

    __table_args__ = (
        Index("ix_ingredient_topping_name", "is_topping", "name"),
    )

    def __repr__(self) -> str:
        return f"<Ingredient(id='{self.id}', stock={self.stock}{self.unit})>"
