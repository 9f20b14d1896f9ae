"""
Catalog Models: Product, ProductSize, RecipeLine.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class Product(TimestampMixin, Base):
    """
    A menu product.
    The category decides which packaging a sold unit consumes.
    """

    __tablename__ = "product"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    sizes: Mapped[list["ProductSize"]] = relationship(
        back_populates="product", cascade="all, delete-orphan", order_by="ProductSize.price_cents"
    )
    recipe: Mapped[list["RecipeLine"]] = relationship(
        back_populates="product", cascade="all, delete-orphan"
    )


class ProductSize(Base):
    """Size option of a product, e.g. Grande (16oz) at 59.00."""

    __tablename__ = "product_size"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)  # Grande, Venti, Ala Carte, Combo Meal
    label: Mapped[Optional[str]] = mapped_column(Text)  # 16oz, 22oz
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    product: Mapped["Product"] = relationship(back_populates="sizes")

    __table_args__ = (
        UniqueConstraint("product_id", "name", name="uq_product_size_name"),
        CheckConstraint("price_cents >= 0", name="chk_product_size_price_non_negative"),
    )


class RecipeLine(Base):
    """
    One ingredient consumed per unit sold of a product.
    Static reference data; never mutated by order processing.
    """

    __tablename__ = "recipe_line"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("ingredient.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity_per_unit: Mapped[float] = mapped_column(Float, nullable=False)

    product: Mapped["Product"] = relationship(back_populates="recipe")

    __table_args__ = (
        UniqueConstraint("product_id", "ingredient_id", name="uq_recipe_line"),
        CheckConstraint("quantity_per_unit > 0", name="chk_recipe_line_quantity_positive"),
    )
