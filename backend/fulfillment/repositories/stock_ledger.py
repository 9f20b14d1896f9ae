"""
Stock Ledger - keyed store of ingredient and packaging quantities.

Two capabilities matter to order processing: a point read, and an
atomic multi-key signed increment. Increments commute, so concurrent
orders deducting the same ingredient never lose an update.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from fulfillment.models import Ingredient
from fulfillment.types import Increment, StockRecord
from .base import BaseRepository


class LedgerWriteError(Exception):
    """A batch of increments could not be applied."""

    def __init__(self, reason: str, ingredient_id: str | None = None):
        self.reason = reason
        self.ingredient_id = ingredient_id
        super().__init__(reason)


def merge_increments(increments: Iterable[Increment]) -> list[Increment]:
    """
    Collapse increments to one signed delta per ingredient.

    Output is sorted by ingredient id so concurrent batches touch rows in
    the same order.
    """
    totals: dict[str, float] = {}
    for ingredient_id, delta in increments:
        totals[ingredient_id] = totals.get(ingredient_id, 0) + delta
    return [(ingredient_id, totals[ingredient_id]) for ingredient_id in sorted(totals) if totals[ingredient_id]]


class StockLedger(ABC):
    """Storage port for ingredient stock."""

    @abstractmethod
    def read_stock(self, ingredient_id: str) -> StockRecord | None:
        """Current record for an ingredient, or None if unknown."""
        ...

    @abstractmethod
    def find_topping(self, name: str) -> StockRecord | None:
        """Resolve a topping ingredient by display name."""
        ...

    @abstractmethod
    def apply_increments(self, increments: Sequence[Increment]) -> None:
        """
        Apply every increment or none of them.

        Raises:
            LedgerWriteError: if any key is unknown or the store rejects the write
        """
        ...

    def read_many(self, ingredient_ids: Iterable[str]) -> dict[str, StockRecord]:
        records = {}
        for ingredient_id in ingredient_ids:
            record = self.read_stock(ingredient_id)
            if record is not None:
                records[ingredient_id] = record
        return records


def _to_record(ingredient: Ingredient) -> StockRecord:
    return StockRecord(
        ingredient_id=ingredient.id,
        name=ingredient.name,
        stock=ingredient.stock,
        unit=ingredient.unit,
        is_topping=ingredient.is_topping,
        portion_size=ingredient.portion_size,
    )


class SqlStockLedger(BaseRepository[Ingredient], StockLedger):
    """
    Stock ledger backed by the ``ingredient`` table.

    ``apply_increments`` issues ``UPDATE ingredient SET stock = stock + :delta``
    statements inside the session's current transaction; atomicity comes
    from the caller committing or rolling back that transaction as a whole.
    """

    def __init__(self, db: Session):
        super().__init__(db)

    @property
    def model(self) -> type[Ingredient]:
        return Ingredient

    def read_stock(self, ingredient_id: str) -> StockRecord | None:
        # Bypass the identity map: another transaction may have moved stock
        stock_row = self._db.execute(
            select(Ingredient).where(Ingredient.id == ingredient_id).execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return _to_record(stock_row) if stock_row else None

    def read_many(self, ingredient_ids: Iterable[str]) -> dict[str, StockRecord]:
        ids = list(set(ingredient_ids))
        if not ids:
            return {}
        rows = self._db.execute(
            select(Ingredient).where(Ingredient.id.in_(ids)).execution_options(populate_existing=True)
        ).scalars().all()
        return {row.id: _to_record(row) for row in rows}

    def find_topping(self, name: str) -> StockRecord | None:
        topping = self._db.execute(
            select(Ingredient)
            .where(Ingredient.name == name, Ingredient.is_topping.is_(True))
            .order_by(Ingredient.id)
            .limit(1)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return _to_record(topping) if topping else None

    def apply_increments(self, increments: Sequence[Increment]) -> None:
        for ingredient_id, delta in merge_increments(increments):
            result = self._db.execute(
                update(Ingredient)
                .where(Ingredient.id == ingredient_id)
                .values(stock=Ingredient.stock + delta)
                .execution_options(synchronize_session=False)
            )
            if self._rowcount(result) == 0:
                raise LedgerWriteError(
                    f"Ingredient '{ingredient_id}' does not exist",
                    ingredient_id=ingredient_id,
                )

    def list_low_stock(self) -> list[Ingredient]:
        """Ingredients at or below their low-stock threshold."""
        return list(
            self._db.execute(
                select(Ingredient)
                .where(Ingredient.stock <= Ingredient.low_stock_threshold)
                .order_by(Ingredient.name)
            ).scalars().all()
        )


def get_stock_ledger(db: Session) -> SqlStockLedger:
    """Factory used by services and FastAPI dependencies."""
    return SqlStockLedger(db)
