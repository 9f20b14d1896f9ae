"""
HTTP routers for the fulfillment service.
"""

from .customers import router as customers_router
from .health import router as health_router
from .inventory import router as inventory_router
from .orders import router as orders_router

__all__ = [
    "customers_router",
    "health_router",
    "inventory_router",
    "orders_router",
]
