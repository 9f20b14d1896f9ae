"""
Value objects passed between the fulfillment services.

Line items and customizations are closed, immutable structures so that
the deduction engine and the availability checker see exactly the same
input regardless of where an order came from (storefront, POS, admin).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from shared.utils.validators import normalize_toppings

if TYPE_CHECKING:
    from fulfillment.models import OrderLine


# (ingredient_id, signed delta) as written to the stock ledger
Increment = tuple[str, float]


@dataclass(frozen=True)
class Customizations:
    """Drink customizations chosen for a line item."""

    sugar_level: str | None = None
    ice_level: str | None = None
    toppings: frozenset[str] = frozenset()

    @classmethod
    def build(
        cls,
        sugar_level: str | None = None,
        ice_level: str | None = None,
        toppings: list[str] | set[str] | frozenset[str] | None = None,
    ) -> "Customizations":
        return cls(
            sugar_level=sugar_level or None,
            ice_level=ice_level or None,
            toppings=normalize_toppings(toppings),
        )


@dataclass(frozen=True)
class LineItem:
    """One product entry of an order, as seen by the fulfillment engine."""

    product_id: str
    product_name: str
    quantity: int
    size: str | None = None
    unit_price_cents: int = 0
    category: str | None = None
    customizations: Customizations = field(default_factory=Customizations)

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"Line item quantity must be at least 1, got {self.quantity}")

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    @classmethod
    def from_order_line(cls, line: "OrderLine") -> "LineItem":
        return cls(
            product_id=line.product_id,
            product_name=line.product_name,
            quantity=line.quantity,
            size=line.size,
            unit_price_cents=line.unit_price_cents,
            category=line.category,
            customizations=Customizations.build(
                sugar_level=line.sugar_level,
                ice_level=line.ice_level,
                toppings=line.toppings,
            ),
        )


@dataclass(frozen=True)
class ProductInfo:
    """What the catalog knows about a product."""

    product_id: str
    name: str
    category: str
    size_names: tuple[str, ...] = ()
    # ingredient_id -> quantity consumed per unit sold
    recipe: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class StockRecord:
    """Point-in-time view of an ingredient row."""

    ingredient_id: str
    name: str
    stock: float
    unit: str
    is_topping: bool = False
    portion_size: float | None = None


@dataclass
class Requirement:
    """Amount of one ingredient an order needs, and why."""

    ingredient_id: str
    amount: float
    name: str | None = None
    unit: str | None = None
    sources: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PaymentDetails:
    """How an order is paid. Cash needs the amount tendered; GCash a reference."""

    method: str
    reference: str | None = None
    amount_received_cents: int | None = None


# =============================================================================
# Results
# =============================================================================


@dataclass
class DeductionResult:
    """Outcome of a successful ledger write, with soft warnings."""

    increments: list[Increment] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def total_by_ingredient(self) -> dict[str, float]:
        totals: dict[str, float] = {}
        for ingredient_id, delta in self.increments:
            totals[ingredient_id] = totals.get(ingredient_id, 0) + delta
        return totals


@dataclass
class AvailabilityResult:
    available: bool
    insufficient: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class AccrualResult:
    customer_id: str
    points: int = 0
    applied: bool = False
    tier: str | None = None
    description: str | None = None


@dataclass
class TransitionResult:
    order_id: str
    from_status: str
    to_status: str
    inventory_deducted: bool = False
    points_awarded: int = 0
    retried: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass
class CreateOrderResult:
    order_id: str
    order_number: str
    inventory_deducted: bool = False
    warnings: list[str] = field(default_factory=list)
