"""
Customization Cost Table.

Static mapping from a sugar or ice level selection to the stock it
consumes per drink. Levels that cost nothing (no sugar, no ice) are listed
with a zero amount so an unknown value can be told apart from a free one.
"""

from dataclasses import dataclass
from typing import Final, Literal

CustomizationKind = Literal["sugar", "ice"]

SUGAR_SYRUP_ID: Final[str] = "sugar-syrup"
ICE_ID: Final[str] = "ice"


@dataclass(frozen=True)
class CustomizationCost:
    """Stock consumed by one unit with a given customization."""

    kind: CustomizationKind
    value: str
    label: str
    ingredient_id: str
    amount: float


SUGAR_LEVELS: Final[tuple[CustomizationCost, ...]] = (
    CustomizationCost("sugar", "full", "100% Sugar", SUGAR_SYRUP_ID, 20),
    CustomizationCost("sugar", "less", "75% Sugar", SUGAR_SYRUP_ID, 15),
    CustomizationCost("sugar", "half", "50% Sugar", SUGAR_SYRUP_ID, 10),
    CustomizationCost("sugar", "quarter", "25% Sugar", SUGAR_SYRUP_ID, 5),
    CustomizationCost("sugar", "none", "No Sugar", SUGAR_SYRUP_ID, 0),
)

ICE_LEVELS: Final[tuple[CustomizationCost, ...]] = (
    CustomizationCost("ice", "extra", "Extra Ice", ICE_ID, 200),
    CustomizationCost("ice", "normal", "Normal Ice", ICE_ID, 150),
    CustomizationCost("ice", "less", "Less Ice", ICE_ID, 100),
    CustomizationCost("ice", "none", "No Ice", ICE_ID, 0),
)

_TABLE: Final[dict[tuple[str, str], CustomizationCost]] = {
    (cost.kind, cost.value): cost for cost in SUGAR_LEVELS + ICE_LEVELS
}


def resolve_customization_cost(kind: CustomizationKind, value: str | None) -> CustomizationCost | None:
    """
    Look up what a customization consumes.

    Returns None when no value was chosen or the value is not in the table.
    """
    if not value:
        return None
    return _TABLE.get((kind, value.strip().lower()))


def list_customization_options() -> dict[str, list[dict[str, object]]]:
    """Options as served to the storefront and POS."""
    return {
        "sugar_levels": [
            {"value": c.value, "label": c.label, "ingredient_id": c.ingredient_id, "amount": c.amount}
            for c in SUGAR_LEVELS
        ],
        "ice_levels": [
            {"value": c.value, "label": c.label, "ingredient_id": c.ingredient_id, "amount": c.amount}
            for c in ICE_LEVELS
        ],
    }
