"""
Catalog Resolver - read-only product lookups (category, sizes, recipe).
"""

from abc import ABC, abstractmethod

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, selectinload

from fulfillment.models import Product
from fulfillment.types import ProductInfo
from .base import BaseRepository


class CatalogResolver(ABC):
    """Storage port for product reference data."""

    @abstractmethod
    def resolve_product(self, product_id: str) -> ProductInfo | None:
        """Category, sizes and recipe of a product, or None if unknown."""
        ...


class SqlCatalogResolver(BaseRepository[Product], CatalogResolver):
    """
    Catalog resolver backed by the ``product`` tables.

    Results are memoized per instance: recipes are static reference data
    and one order often repeats a product across line items.
    """

    def __init__(self, db: Session):
        super().__init__(db)
        self._cache: dict[str, ProductInfo | None] = {}

    @property
    def model(self) -> type[Product]:
        return Product

    def _base_query(self) -> Select:
        return select(Product).options(
            selectinload(Product.sizes),
            selectinload(Product.recipe),
        )

    def resolve_product(self, product_id: str) -> ProductInfo | None:
        if product_id in self._cache:
            return self._cache[product_id]

        product = self.find_by_id(product_id)
        info = None
        if product is not None:
            info = ProductInfo(
                product_id=product.id,
                name=product.name,
                category=product.category,
                size_names=tuple(size.name for size in product.sizes),
                recipe={line.ingredient_id: line.quantity_per_unit for line in product.recipe},
            )
        self._cache[product_id] = info
        return info

    def list_products(self, category: str | None = None) -> list[Product]:
        query = self._base_query().order_by(Product.category, Product.name)
        if category:
            query = query.where(Product.category == category)
        return list(self._db.execute(query).scalars().unique().all())


def get_catalog_resolver(db: Session) -> SqlCatalogResolver:
    return SqlCatalogResolver(db)
