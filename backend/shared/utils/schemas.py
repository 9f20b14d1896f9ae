"""
Shared Pydantic schemas used across the application.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from shared.config.constants import Limits


# =============================================================================
# Common Types
# =============================================================================

OrderStatusName = Literal["waiting", "preparing", "ready", "completed", "cancelled"]
OrderTypeName = Literal["online", "walk-in"]
PaymentMethodName = Literal["cash", "gcash"]
DiscountTypeName = Literal["none", "senior", "pwd"]
RewardEntryTypeName = Literal["earned", "redeemed"]


class ErrorResponse(BaseModel):
    """Standard error body."""

    detail: str


# =============================================================================
# Order Input Schemas
# =============================================================================


class CustomizationsInput(BaseModel):
    """Closed set of drink customizations."""

    sugar_level: str | None = Field(default=None, max_length=20)
    ice_level: str | None = Field(default=None, max_length=20)
    toppings: list[str] = Field(default_factory=list, max_length=Limits.MAX_TOPPINGS_PER_ITEM)

    model_config = {"extra": "forbid"}


class LineItemInput(BaseModel):
    """One product entry of an order request."""

    product_id: str = Field(min_length=1, max_length=64)
    product_name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    quantity: int = Field(ge=Limits.MIN_QUANTITY, le=Limits.MAX_QUANTITY)
    size: str | None = Field(default=None, max_length=50)
    unit_price_cents: int = Field(default=0, ge=Limits.MIN_PRICE_CENTS, le=Limits.MAX_PRICE_CENTS)
    category: str | None = Field(default=None, max_length=100)
    customizations: CustomizationsInput = Field(default_factory=CustomizationsInput)


class PaymentInput(BaseModel):
    method: PaymentMethodName
    reference: str | None = Field(default=None, max_length=100)
    amount_received_cents: int | None = Field(default=None, ge=0)


class CreateOrderRequest(BaseModel):
    """Request to place an order from the storefront or the POS."""

    items: list[LineItemInput] = Field(min_length=1, max_length=Limits.MAX_ITEMS_PER_ORDER)
    payment: PaymentInput
    customer_id: str | None = Field(default=None, max_length=64)
    customer_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    order_type: OrderTypeName = "walk-in"
    discount_type: DiscountTypeName = "none"
    employee_id: str | None = Field(default=None, max_length=64)


class TransitionRequest(BaseModel):
    """Request to move an order to a new status."""

    status: OrderStatusName
    reason: str | None = Field(default=None, max_length=Limits.MAX_REASON_LENGTH)


class AvailabilityRequest(BaseModel):
    items: list[LineItemInput] = Field(min_length=1, max_length=Limits.MAX_ITEMS_PER_ORDER)


# =============================================================================
# Order Output Schemas
# =============================================================================


class CreateOrderResponse(BaseModel):
    order_id: str
    order_number: str
    inventory_deducted: bool
    warnings: list[str] = []


class OrderLineOutput(BaseModel):
    product_id: str
    product_name: str
    category: str | None = None
    size: str | None = None
    quantity: int
    unit_price_cents: int
    sugar_level: str | None = None
    ice_level: str | None = None
    toppings: list[str] = []

    model_config = {"from_attributes": True}


class OrderOutput(BaseModel):
    id: str
    order_number: str
    status: OrderStatusName
    order_type: str
    subtotal_cents: int
    discount_type: str
    discount_cents: int
    total_cents: int
    payment_method: str
    payment_reference: str | None = None
    amount_received_cents: int | None = None
    change_cents: int | None = None
    customer_id: str | None = None
    customer_name: str | None = None
    inventory_deducted: bool
    loyalty_awarded: bool
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    lines: list[OrderLineOutput] = []

    model_config = {"from_attributes": True}


class TransitionResponse(BaseModel):
    order_id: str
    from_status: str
    to_status: str
    inventory_deducted: bool = False
    points_awarded: int = 0
    retried: bool = False
    warnings: list[str] = []


class ReconcileResponse(BaseModel):
    """Outcome of an administrative deduction retry."""

    order_id: str
    deducted: bool
    already_deducted: bool = False
    increments: dict[str, float] = {}
    warnings: list[str] = []


# =============================================================================
# Inventory Schemas
# =============================================================================


class AvailabilityResponse(BaseModel):
    available: bool
    insufficient: list[str] = []
    warnings: list[str] = []


class StockAdjustRequest(BaseModel):
    """Signed stock correction: positive to restock, negative for waste."""

    delta: float
    reason: str | None = Field(default=None, max_length=Limits.MAX_REASON_LENGTH)

    @field_validator("delta")
    @classmethod
    def delta_not_zero(cls, v: float) -> float:
        if v == 0:
            raise ValueError("delta must not be zero")
        return v


class IngredientOutput(BaseModel):
    id: str
    name: str
    unit: str
    stock: float
    low_stock_threshold: float
    is_topping: bool

    model_config = {"from_attributes": True}


class StockLevelOutput(BaseModel):
    ingredient_id: str
    name: str
    unit: str
    stock: float


# =============================================================================
# Loyalty Schemas
# =============================================================================


class RewardEntryOutput(BaseModel):
    entry_type: RewardEntryTypeName
    points: int
    description: str
    order_id: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class RewardsOutput(BaseModel):
    customer_id: str
    current_points: int
    lifetime_points: int
    total_orders: int
    total_spent_cents: int
    tier: str
    history: list[RewardEntryOutput] = []


class RedeemRequest(BaseModel):
    points_cost: int = Field(gt=0)
    reward_name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
