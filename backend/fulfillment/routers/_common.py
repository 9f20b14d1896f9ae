"""
Helpers shared by the fulfillment routers.
"""

from fulfillment.types import Customizations, LineItem
from shared.utils.schemas import LineItemInput
from shared.utils.exceptions import ValidationError


def to_line_items(items: list[LineItemInput]) -> list[LineItem]:
    """
    Convert request line items into engine value objects.

    Raises ValidationError (400) for input the schema lets through but the
    engine rejects, such as too many distinct toppings after normalization.
    """
    try:
        return [
            LineItem(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                size=item.size,
                unit_price_cents=item.unit_price_cents,
                category=item.category,
                customizations=Customizations.build(
                    sugar_level=item.customizations.sugar_level,
                    ice_level=item.customizations.ice_level,
                    toppings=item.customizations.toppings,
                ),
            )
            for item in items
        ]
    except ValueError as e:
        raise ValidationError(str(e))
