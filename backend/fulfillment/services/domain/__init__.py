"""
Domain Services - order fulfillment business logic.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access, conditional writes)
        ↓
    Model (entity)

Usage:
    from fulfillment.services.domain import OrderService

    # In router
    service = OrderService(db)
    result = service.transition(order_id, "ready")
"""

from .availability_service import AvailabilityService
from .customization import list_customization_options, resolve_customization_cost
from .exceptions import (
    AccrualFailedError,
    DeductionFailedError,
    FulfillmentError,
    InsufficientPointsError,
    InvalidOrderError,
    InvalidTransitionError,
    NotFoundError,
)
from .inventory_service import InventoryService
from .loyalty_service import LoyaltyService
from .order_service import OrderService, ReconcileOutcome

__all__ = [
    # Services
    "AvailabilityService",
    "InventoryService",
    "LoyaltyService",
    "OrderService",
    "ReconcileOutcome",
    # Customization table
    "list_customization_options",
    "resolve_customization_cost",
    # Errors
    "FulfillmentError",
    "NotFoundError",
    "InvalidTransitionError",
    "InvalidOrderError",
    "DeductionFailedError",
    "AccrualFailedError",
    "InsufficientPointsError",
]
