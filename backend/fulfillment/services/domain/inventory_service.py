"""
Inventory Domain Service.

Computes what an order consumes from the stock ledger and applies it as
one atomic batch of signed decrements.

Per line item, four independent contributions:
1. sugar / ice level (Customization Cost Table)
2. toppings (resolved by name among topping ingredients)
3. recipe ingredients (Catalog Resolver)
4. packaging: cup + lid + straw + napkins for drinks, takeout pack +
   napkins for meals

The availability checker reuses contributions 1-3 through
``compute_consumption`` so the two can never disagree about how much an
order needs.
"""

from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fulfillment.models import Order
from fulfillment.repositories.catalog import CatalogResolver, SqlCatalogResolver
from fulfillment.repositories.order import OrderRepository
from fulfillment.repositories.stock_ledger import (
    LedgerWriteError,
    SqlStockLedger,
    StockLedger,
    merge_increments,
)
from fulfillment.services.domain.customization import resolve_customization_cost
from fulfillment.services.domain.exceptions import DeductionFailedError, NotFoundError
from fulfillment.types import DeductionResult, LineItem, ProductInfo, Requirement, StockRecord
from shared.config.constants import Packaging, ProductCategory, ProductSize
from shared.config.logging import inventory_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit


# Contribution sources
SOURCE_SUGAR = "sugar"
SOURCE_ICE = "ice"
SOURCE_TOPPING = "topping"
SOURCE_RECIPE = "recipe"
SOURCE_PACKAGING = "packaging"

BEVERAGE = "beverage"
MEAL = "meal"


@dataclass(frozen=True)
class Consumption:
    """One positive amount an order line draws from one ingredient."""

    ingredient_id: str
    amount: float
    source: str
    product_name: str
    ingredient_name: str | None = None
    unit: str | None = None


def classify_product(category: str | None, size: str | None) -> str | None:
    """
    Decide which packaging a product uses.

    Category wins; a line with no known category falls back to its size
    name (cup sizes are drinks, ala carte / combo are meals).
    """
    if category in ProductCategory.BEVERAGES:
        return BEVERAGE
    if category in ProductCategory.MEALS_ALL:
        return MEAL
    if size in ProductSize.MEAL_SIZES:
        return MEAL
    if category is None and size in ProductSize.CUP_SIZES:
        return BEVERAGE
    return None


def aggregate_requirements(consumptions: list[Consumption]) -> dict[str, Requirement]:
    """Sum consumptions per ingredient."""
    requirements: dict[str, Requirement] = {}
    for c in consumptions:
        requirement = requirements.get(c.ingredient_id)
        if requirement is None:
            requirement = Requirement(
                ingredient_id=c.ingredient_id,
                amount=0,
                name=c.ingredient_name,
                unit=c.unit,
            )
            requirements[c.ingredient_id] = requirement
        requirement.amount += c.amount
        requirement.sources.append(f"{c.source}:{c.product_name}")
    return requirements


class InventoryService:
    """
    Domain service for stock consumption.

    The ledger and catalog are injectable so tests can run the engine
    against in-memory fakes; by default both are backed by ``db``.
    """

    def __init__(
        self,
        db: Session | None,
        ledger: StockLedger | None = None,
        catalog: CatalogResolver | None = None,
        default_topping_portion: float | None = None,
    ):
        if db is None and (ledger is None or catalog is None):
            raise ValueError("InventoryService needs a session or both a ledger and a catalog")
        self._db = db
        self._ledger = ledger or SqlStockLedger(db)
        self._catalog = catalog or SqlCatalogResolver(db)
        self._default_portion = (
            default_topping_portion
            if default_topping_portion is not None
            else settings.default_topping_portion
        )

    @property
    def ledger(self) -> StockLedger:
        return self._ledger

    @property
    def catalog(self) -> CatalogResolver:
        return self._catalog

    # =========================================================================
    # Requirement computation
    # =========================================================================

    def compute_consumption(
        self,
        items: list[LineItem],
        include_packaging: bool = False,
    ) -> tuple[list[Consumption], list[str]]:
        """
        Everything the given line items draw from stock.

        Returns (consumptions, warnings). Unknown toppings, products or
        customization values become warnings; they never abort the pass.
        """
        consumptions: list[Consumption] = []
        warnings: list[str] = []
        toppings_seen: dict[str, StockRecord | None] = {}

        for item in items:
            consumptions.extend(self._customization_consumption(item, warnings))
            consumptions.extend(self._topping_consumption(item, toppings_seen, warnings))

            product = self._catalog.resolve_product(item.product_id)
            consumptions.extend(self._recipe_consumption(item, product, warnings))
            if include_packaging:
                consumptions.extend(self._packaging_consumption(item, product, warnings))

        return consumptions, warnings

    def _customization_consumption(self, item: LineItem, warnings: list[str]) -> list[Consumption]:
        result = []
        selections = (
            (SOURCE_SUGAR, item.customizations.sugar_level),
            (SOURCE_ICE, item.customizations.ice_level),
        )
        for kind, value in selections:
            if not value:
                continue
            cost = resolve_customization_cost(kind, value)
            if cost is None:
                warnings.append(f"Unknown {kind} level '{value}' for {item.product_name}")
                continue
            if cost.amount > 0:
                result.append(
                    Consumption(
                        ingredient_id=cost.ingredient_id,
                        amount=cost.amount * item.quantity,
                        source=kind,
                        product_name=item.product_name,
                    )
                )
        return result

    def _topping_consumption(
        self,
        item: LineItem,
        toppings_seen: dict[str, StockRecord | None],
        warnings: list[str],
    ) -> list[Consumption]:
        result = []
        for topping_name in sorted(item.customizations.toppings):
            if topping_name not in toppings_seen:
                toppings_seen[topping_name] = self._ledger.find_topping(topping_name)
            topping = toppings_seen[topping_name]

            if topping is None:
                warnings.append(f"Topping '{topping_name}' not found in inventory")
                logger.warning(
                    "Topping not found in inventory",
                    topping=topping_name,
                    product=item.product_name,
                )
                continue

            portion = topping.portion_size or self._default_portion
            result.append(
                Consumption(
                    ingredient_id=topping.ingredient_id,
                    amount=portion * item.quantity,
                    source=SOURCE_TOPPING,
                    product_name=item.product_name,
                    ingredient_name=topping.name,
                    unit=topping.unit,
                )
            )
        return result

    def _recipe_consumption(
        self,
        item: LineItem,
        product: ProductInfo | None,
        warnings: list[str],
    ) -> list[Consumption]:
        if product is None:
            warnings.append(f"Product '{item.product_id}' not found in catalog; recipe not deducted")
            logger.warning("Product not found for recipe deduction", product_id=item.product_id)
            return []
        if not product.recipe:
            warnings.append(f"No recipe for {product.name}; only customizations deducted")
            return []

        return [
            Consumption(
                ingredient_id=ingredient_id,
                amount=quantity_per_unit * item.quantity,
                source=SOURCE_RECIPE,
                product_name=item.product_name,
            )
            for ingredient_id, quantity_per_unit in sorted(product.recipe.items())
        ]

    def _packaging_consumption(
        self,
        item: LineItem,
        product: ProductInfo | None,
        warnings: list[str],
    ) -> list[Consumption]:
        category = item.category or (product.category if product else None)
        kind = classify_product(category, item.size)
        qty = item.quantity

        def packaging(ingredient_id: str, per_unit: int) -> Consumption:
            return Consumption(
                ingredient_id=ingredient_id,
                amount=per_unit * qty,
                source=SOURCE_PACKAGING,
                product_name=item.product_name,
            )

        if kind == BEVERAGE:
            if item.size not in ProductSize.CUP_SIZES:
                warnings.append(f"Unknown cup size '{item.size}' for {item.product_name}; no packaging deducted")
                return []
            return [
                packaging(Packaging.CUP_BY_SIZE[item.size], 1),
                packaging(Packaging.LID_BY_SIZE[item.size], 1),
                packaging(Packaging.STRAW, 1),
                packaging(Packaging.NAPKINS, Packaging.NAPKINS_PER_DRINK),
            ]
        if kind == MEAL:
            return [
                packaging(Packaging.TAKEOUT_PACK, 1),
                packaging(Packaging.NAPKINS, Packaging.NAPKINS_PER_MEAL),
            ]

        warnings.append(f"Cannot classify '{item.product_name}' for packaging")
        return []

    # =========================================================================
    # Deduction
    # =========================================================================

    def plan_deduction(self, items: list[LineItem]) -> DeductionResult:
        """Decrements the items would apply, without touching the ledger."""
        consumptions, warnings = self.compute_consumption(items, include_packaging=True)
        increments = merge_increments((c.ingredient_id, -c.amount) for c in consumptions)
        return DeductionResult(increments=increments, warnings=warnings)

    def apply(self, plan: DeductionResult, order_id: str | None = None) -> None:
        """
        Write a planned deduction to the ledger (no commit).

        Raises:
            DeductionFailedError: if the ledger rejects any key
        """
        if not plan.increments:
            return
        try:
            self._ledger.apply_increments(plan.increments)
        except LedgerWriteError as e:
            raise DeductionFailedError(e.reason, order_id=order_id) from e
        except SQLAlchemyError as e:
            raise DeductionFailedError(f"stock ledger unavailable ({type(e).__name__})", order_id=order_id) from e

    def deduct(self, items: list[LineItem]) -> DeductionResult:
        """
        Deduct everything the items consume as one atomic write.

        Raises:
            DeductionFailedError: nothing was deducted
        """
        try:
            plan = self.plan_deduction(items)
            self.apply(plan)
            self._commit()
        except DeductionFailedError:
            self._rollback()
            raise
        except SQLAlchemyError as e:
            self._rollback()
            raise DeductionFailedError(f"stock ledger unavailable ({type(e).__name__})") from e

        logger.info(
            "Inventory deducted",
            items=len(items),
            ingredients=len(plan.increments),
            warnings=len(plan.warnings),
        )
        return plan

    def deduct_for_order(self, order: Order, commit: bool = True) -> DeductionResult | None:
        """
        Deduct an order's stock exactly once.

        Claims ``inventory_deducted`` with a conditional update and applies
        the decrements in the same transaction. Returns None when the flag
        was already set (by an earlier call or a concurrent request).

        With ``commit=False`` the caller owns the transaction and must roll
        back on DeductionFailedError.

        Raises:
            DeductionFailedError: nothing was deducted and the flag is still false
        """
        if self._db is None:
            raise RuntimeError("deduct_for_order requires a database session")

        order_id, order_number = order.id, order.order_number
        orders = OrderRepository(self._db)
        try:
            if not orders.claim_flag(order_id, "inventory_deducted"):
                logger.info("Inventory already deducted, skipping", order_id=order_id)
                return None

            items = [LineItem.from_order_line(line) for line in order.lines]
            plan = self.plan_deduction(items)
            self.apply(plan, order_id=order_id)
            if commit:
                self._commit()
        except DeductionFailedError:
            if commit:
                self._rollback()
            raise
        except SQLAlchemyError as e:
            # Catalog, topping or ledger reads failed as well as writes
            if commit:
                self._rollback()
            raise DeductionFailedError(f"stock ledger unavailable ({type(e).__name__})", order_id=order_id) from e

        logger.info(
            "Inventory deducted for order",
            order_id=order_id,
            order_number=order_number,
            ingredients=len(plan.increments),
            warnings=len(plan.warnings),
        )
        return plan

    def adjust_stock(self, ingredient_id: str, delta: float, reason: str | None = None) -> StockRecord:
        """
        Administrative signed adjustment (restock, spoilage, reconciliation).

        Raises:
            NotFoundError: unknown ingredient
            DeductionFailedError: the write failed
        """
        try:
            if self._ledger.read_stock(ingredient_id) is None:
                raise NotFoundError("Ingredient", ingredient_id)
            self.apply(DeductionResult(increments=[(ingredient_id, delta)]))
            self._commit()
        except DeductionFailedError:
            self._rollback()
            raise
        except SQLAlchemyError as e:
            self._rollback()
            raise DeductionFailedError(f"stock ledger unavailable ({type(e).__name__})") from e

        logger.info("Stock adjusted", ingredient_id=ingredient_id, delta=delta, reason=reason)
        record = self._ledger.read_stock(ingredient_id)
        if record is None:
            raise NotFoundError("Ingredient", ingredient_id)
        return record

    def _commit(self) -> None:
        if self._db is not None:
            safe_commit(self._db)

    def _rollback(self) -> None:
        if self._db is not None:
            self._db.rollback()
