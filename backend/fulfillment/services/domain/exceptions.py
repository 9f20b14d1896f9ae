"""
Domain errors raised by the fulfillment services.

Routers translate these into HTTP responses (shared.utils.exceptions);
the services themselves know nothing about HTTP.
"""


class FulfillmentError(Exception):
    """Base class for order fulfillment errors."""
    pass


class NotFoundError(FulfillmentError):
    """Unknown order, product, ingredient or customer."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class InvalidTransitionError(FulfillmentError):
    """Requested status is not reachable from the order's current status."""

    def __init__(self, order_id: str, from_status: str, to_status: str):
        self.order_id = order_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Order {order_id} cannot move from '{from_status}' to '{to_status}'"
        )


class DeductionFailedError(FulfillmentError):
    """The atomic stock ledger write did not land; no decrement was applied."""

    def __init__(self, reason: str, order_id: str | None = None):
        self.reason = reason
        self.order_id = order_id
        super().__init__(f"Inventory deduction failed: {reason}")


class AccrualFailedError(FulfillmentError):
    """Loyalty points could not be credited. Never blocks order completion."""

    def __init__(self, customer_id: str, reason: str):
        self.customer_id = customer_id
        self.reason = reason
        super().__init__(f"Loyalty accrual failed for customer {customer_id}: {reason}")


class InsufficientPointsError(FulfillmentError):
    """Customer does not hold enough points for a redemption."""

    def __init__(self, customer_id: str, required: int, available: int):
        self.customer_id = customer_id
        self.required = required
        self.available = available
        super().__init__(
            f"Customer {customer_id} needs {required} points, has {available}"
        )


class InvalidOrderError(FulfillmentError):
    """Order input rejected before anything was written (payment, items, discount)."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
