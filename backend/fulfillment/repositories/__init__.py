"""
Repository Pattern implementation.
Centralizes data access; repositories never commit.

Usage:
    from fulfillment.repositories import OrderRepository, get_stock_ledger

    orders = OrderRepository(db)
    if orders.claim_flag(order_id, "inventory_deducted"):
        get_stock_ledger(db).apply_increments(increments)
    safe_commit(db)
"""

from .base import BaseRepository
from .catalog import CatalogResolver, SqlCatalogResolver, get_catalog_resolver
from .customer import CustomerRepository
from .order import OrderRepository, OrderFilters, IDEMPOTENCY_FLAGS
from .stock_ledger import (
    StockLedger,
    SqlStockLedger,
    LedgerWriteError,
    merge_increments,
    get_stock_ledger,
)

__all__ = [
    # Base
    "BaseRepository",
    # Catalog
    "CatalogResolver",
    "SqlCatalogResolver",
    "get_catalog_resolver",
    # Customer
    "CustomerRepository",
    # Order
    "OrderRepository",
    "OrderFilters",
    "IDEMPOTENCY_FLAGS",
    # Stock ledger
    "StockLedger",
    "SqlStockLedger",
    "LedgerWriteError",
    "merge_increments",
    "get_stock_ledger",
]
