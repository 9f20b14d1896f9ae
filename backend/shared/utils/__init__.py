"""
Utilities module: Exceptions, validators, schemas.
"""

from shared.utils.exceptions import (
    NotFoundError,
    ValidationError,
    InvalidTransitionError,
    ConflictError,
    ServiceUnavailableError,
)
from shared.utils.validators import (
    normalize_toppings,
    is_valid_order_number,
)
from shared.utils.schemas import ErrorResponse

__all__ = [
    # exceptions
    "NotFoundError",
    "ValidationError",
    "InvalidTransitionError",
    "ConflictError",
    "ServiceUnavailableError",
    # validators
    "normalize_toppings",
    "is_valid_order_number",
    # schemas
    "ErrorResponse",
]
