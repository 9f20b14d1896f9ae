"""
Order Repository - Data access for orders and their lines.

Status and idempotency flags are written with conditional UPDATEs so two
staff members acting on the same order cannot both win.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Sequence

from sqlalchemy import Select, select, update
from sqlalchemy.orm import selectinload

from fulfillment.models import Order
from shared.config.constants import Limits
from .base import BaseRepository


# Columns that act as "run exactly once" guards
IDEMPOTENCY_FLAGS = frozenset({"inventory_deducted", "loyalty_awarded"})


@dataclass
class OrderFilters:
    """Filters for listing orders."""

    status: str | None = None
    statuses: list[str] | None = None
    customer_id: str | None = None
    inventory_deducted: bool | None = None
    limit: int = Limits.DEFAULT_PAGE_SIZE
    offset: int = 0

    def __post_init__(self):
        self.limit = min(max(1, self.limit), Limits.MAX_PAGE_SIZE)
        self.offset = max(0, self.offset)


class OrderRepository(BaseRepository[Order]):
    """
    Repository for Order entities.

    Guarantees eager loading of order lines.
    """

    @property
    def model(self) -> type[Order]:
        return Order

    def _base_query(self) -> Select:
        return select(Order).options(selectinload(Order.lines))

    def get(self, order_id: str, refresh: bool = True) -> Order | None:
        """
        Load an order with its lines.

        ``refresh`` overwrites any stale copy held in the session so status
        and flags reflect what is committed.
        """
        query = self._base_query().where(Order.id == order_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        return self._db.scalar(query)

    def add(self, order: Order) -> Order:
        self._db.add(order)
        self._db.flush()
        return order

    def find_all(self, filters: OrderFilters | None = None) -> Sequence[Order]:
        filters = filters or OrderFilters()
        query = self._base_query()

        if filters.status:
            query = query.where(Order.status == filters.status)
        if filters.statuses:
            query = query.where(Order.status.in_(filters.statuses))
        if filters.customer_id:
            query = query.where(Order.customer_id == filters.customer_id)
        if filters.inventory_deducted is not None:
            query = query.where(Order.inventory_deducted.is_(filters.inventory_deducted))

        # Queue order: oldest first
        query = query.order_by(Order.created_at.asc(), Order.id.asc())
        query = query.offset(filters.offset).limit(filters.limit)
        return self._db.execute(query).scalars().unique().all()

    def claim_flag(self, order_id: str, flag: str) -> bool:
        """
        Flip an idempotency flag from false to true.

        Single statement: ``UPDATE ... SET flag = true WHERE id = :id AND flag = false``.
        Returns True only for the caller whose update matched the row; every
        other concurrent caller gets False and must skip the side effect.
        """
        if flag not in IDEMPOTENCY_FLAGS:
            raise ValueError(f"Unknown idempotency flag: {flag}")
        column = getattr(Order, flag)
        result = self._db.execute(
            update(Order)
            .where(Order.id == order_id, column.is_(False))
            .values({flag: True})
            .execution_options(synchronize_session=False)
        )
        return self._rowcount(result) == 1

    def update_status(
        self,
        order_id: str,
        expected_status: str,
        new_status: str,
        **fields: Any,
    ) -> bool:
        """
        Move an order to ``new_status`` only if it is still ``expected_status``.

        Extra columns (completed_at, cancellation_reason, ...) are written in
        the same statement. Returns False when another writer got there first.
        """
        values: dict[str, Any] = {"status": new_status, "updated_at": _utcnow(), **fields}
        result = self._db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected_status)
            .values(values)
            .execution_options(synchronize_session=False)
        )
        return self._rowcount(result) == 1

    def current_status(self, order_id: str) -> str | None:
        return self._db.scalar(select(Order.status).where(Order.id == order_id))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
