"""
Shared validators for order input sanitization.
"""

import re

from shared.config.constants import Limits

_WHITESPACE = re.compile(r"\s+")

ORDER_NUMBER_PATTERN = re.compile(r"^#\d{8}-\d{4,}$")


def normalize_name(value: str) -> str:
    """Collapse internal whitespace and strip; topping names are matched exactly."""
    return _WHITESPACE.sub(" ", value).strip()


def normalize_toppings(toppings: list[str] | set[str] | frozenset[str] | None) -> frozenset[str]:
    """
    Normalize a topping selection into a set of display names.

    Blank entries are dropped and duplicates collapse, so "Pearls" twice
    is a single portion of pearls.
    """
    if not toppings:
        return frozenset()
    cleaned = (normalize_name(t) for t in toppings)
    result = frozenset(t for t in cleaned if t)
    if len(result) > Limits.MAX_TOPPINGS_PER_ITEM:
        raise ValueError(f"At most {Limits.MAX_TOPPINGS_PER_ITEM} toppings per item")
    return result


def is_valid_order_number(value: str) -> bool:
    """Check the '#YYYYMMDD-XXXX' order number format."""
    return bool(ORDER_NUMBER_PATTERN.match(value))
