"""
Centralized constants for the backend application.
Avoids magic strings and repeated constants across services and routers.

Usage:
    from shared.config.constants import OrderStatus, ORDER_TRANSITIONS

    if target in ORDER_TRANSITIONS[order.status]:
        ...
"""

from typing import Final


# =============================================================================
# Order Status
# =============================================================================


class OrderStatus:
    """Order lifecycle status constants."""

    WAITING: Final[str] = "waiting"
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    COMPLETED: Final[str] = "completed"
    CANCELLED: Final[str] = "cancelled"

    ALL: Final[list[str]] = [WAITING, PREPARING, READY, COMPLETED, CANCELLED]
    # Orders still visible in the live queue
    ACTIVE: Final[list[str]] = [WAITING, PREPARING, READY]
    TERMINAL: Final[list[str]] = [COMPLETED, CANCELLED]


# Valid order status transitions (from -> [allowed to states])
# waiting → preparing → ready → completed, cancel from any non-terminal state
ORDER_TRANSITIONS: Final[dict[str, list[str]]] = {
    OrderStatus.WAITING: [OrderStatus.PREPARING, OrderStatus.CANCELLED],
    OrderStatus.PREPARING: [OrderStatus.READY, OrderStatus.CANCELLED],
    OrderStatus.READY: [OrderStatus.COMPLETED, OrderStatus.CANCELLED],
    OrderStatus.COMPLETED: [],  # Terminal state
    OrderStatus.CANCELLED: [],  # Terminal state
}


class OrderType:
    """Where the order was placed."""

    ONLINE: Final[str] = "online"
    WALK_IN: Final[str] = "walk-in"


class PaymentMethod:
    """Payment method constants."""

    CASH: Final[str] = "cash"
    GCASH: Final[str] = "gcash"

    ALL: Final[list[str]] = [CASH, GCASH]


class DiscountType:
    """Statutory discounts applied at the POS."""

    NONE: Final[str] = "none"
    SENIOR: Final[str] = "senior"
    PWD: Final[str] = "pwd"

    # Senior citizen and PWD discounts are both 20%
    PERCENTAGE: Final[dict[str, int]] = {NONE: 0, SENIOR: 20, PWD: 20}


# =============================================================================
# Catalog
# =============================================================================


class ProductCategory:
    """Product categories as shown on the menu."""

    COFFEE_BASED: Final[str] = "Coffee Based"
    NON_COFFEE_BASED: Final[str] = "Non-Coffee Based"
    MATCHA_SERIES: Final[str] = "Matcha Series"
    REFRESHMENTS: Final[str] = "Refreshments"
    MEALS: Final[str] = "Meals"

    BEVERAGES: Final[frozenset[str]] = frozenset(
        {COFFEE_BASED, NON_COFFEE_BASED, MATCHA_SERIES, REFRESHMENTS}
    )
    MEALS_ALL: Final[frozenset[str]] = frozenset({MEALS})


class ProductSize:
    """Size / bundle names a line item can carry."""

    GRANDE: Final[str] = "Grande"
    VENTI: Final[str] = "Venti"
    ALA_CARTE: Final[str] = "Ala Carte"
    COMBO_MEAL: Final[str] = "Combo Meal"

    CUP_SIZES: Final[frozenset[str]] = frozenset({GRANDE, VENTI})
    MEAL_SIZES: Final[frozenset[str]] = frozenset({ALA_CARTE, COMBO_MEAL})


# =============================================================================
# Inventory
# =============================================================================


class Packaging:
    """Ingredient IDs of packaging materials held in the stock ledger."""

    STRAW: Final[str] = "straw"
    NAPKINS: Final[str] = "napkins"
    TAKEOUT_PACK: Final[str] = "takeout-pack"

    CUP_BY_SIZE: Final[dict[str, str]] = {
        ProductSize.GRANDE: "cup-grande",
        ProductSize.VENTI: "cup-venti",
    }
    LID_BY_SIZE: Final[dict[str, str]] = {
        ProductSize.GRANDE: "lid-grande",
        ProductSize.VENTI: "lid-venti",
    }

    NAPKINS_PER_DRINK: Final[int] = 2
    NAPKINS_PER_MEAL: Final[int] = 2


class IngredientUnit:
    """Stock units."""

    GRAMS: Final[str] = "g"
    MILLILITERS: Final[str] = "ml"
    PIECES: Final[str] = "pcs"


# =============================================================================
# Loyalty
# =============================================================================


# Points earned per unit, by size tier
POINTS_PER_UNIT_BY_SIZE: Final[dict[str, int]] = {
    ProductSize.GRANDE: 4,
    ProductSize.VENTI: 5,
}


class LoyaltyTier:
    """Customer loyalty tiers."""

    BRONZE: Final[str] = "bronze"
    SILVER: Final[str] = "silver"
    GOLD: Final[str] = "gold"

    # Lifetime points needed to reach each tier
    THRESHOLDS: Final[dict[str, int]] = {BRONZE: 0, SILVER: 300, GOLD: 1000}
    # Earned points are multiplied (and floored) by the customer's tier
    MULTIPLIERS: Final[dict[str, float]] = {BRONZE: 1.0, SILVER: 1.5, GOLD: 2.0}


class RewardEntryType:
    """Rewards history entry types."""

    EARNED: Final[str] = "earned"
    REDEEMED: Final[str] = "redeemed"


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    # Quantity limits
    MIN_QUANTITY: Final[int] = 1
    MAX_QUANTITY: Final[int] = 99

    # Price limits (in cents)
    MIN_PRICE_CENTS: Final[int] = 0
    MAX_PRICE_CENTS: Final[int] = 100_000_00

    # String lengths
    MAX_NAME_LENGTH: Final[int] = 200
    MAX_TOPPINGS_PER_ITEM: Final[int] = 10
    MAX_ITEMS_PER_ORDER: Final[int] = 50
    MAX_REASON_LENGTH: Final[int] = 500

    # Pagination defaults
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 200
