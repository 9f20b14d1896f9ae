"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class and TimestampMixin
- catalog: Product, ProductSize, RecipeLine
- ingredient: Ingredient (stock ledger rows, toppings, packaging)
- order: Order, OrderLine
- customer: CustomerProfile, RewardHistoryEntry
"""

# Base classes
from .base import Base, TimestampMixin, new_id

# Catalog (menu, sizes, recipes)
from .catalog import Product, ProductSize, RecipeLine

# Stock ledger
from .ingredient import Ingredient

# Customers and loyalty
from .customer import CustomerProfile, RewardHistoryEntry

# Orders
from .order import Order, OrderLine

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "new_id",
    # Catalog
    "Product",
    "ProductSize",
    "RecipeLine",
    # Stock ledger
    "Ingredient",
    # Customers
    "CustomerProfile",
    "RewardHistoryEntry",
    # Orders
    "Order",
    "OrderLine",
]
