"""
Availability Domain Service.

Read-only pre-flight for an order: does the ledger currently hold enough
of every ingredient the line items would consume?
"""

from sqlalchemy.orm import Session

from fulfillment.repositories.catalog import CatalogResolver
from fulfillment.repositories.stock_ledger import StockLedger
from fulfillment.services.domain.inventory_service import InventoryService, aggregate_requirements
from fulfillment.types import AvailabilityResult, LineItem, Requirement, StockRecord
from shared.config.logging import inventory_logger as logger


def format_amount(value: float) -> str:
    """50.0 -> '50', 12.5 -> '12.5'."""
    return f"{value:g}"


def shortfall_message(requirement: Requirement, record: StockRecord) -> str:
    unit = record.unit or requirement.unit or ""
    return (
        f"{record.name} (need {format_amount(requirement.amount)}{unit}, "
        f"have {format_amount(record.stock)}{unit})"
    )


class AvailabilityService:
    """
    Checks stock sufficiency without writing anything.

    Requirements are computed by the inventory engine itself (packaging
    excluded) and summed per ingredient, so two lines drawing on the same
    stock are checked together.
    """

    def __init__(
        self,
        db: Session | None,
        ledger: StockLedger | None = None,
        catalog: CatalogResolver | None = None,
        inventory: InventoryService | None = None,
    ):
        self._inventory = inventory or InventoryService(db, ledger=ledger, catalog=catalog)

    def check_availability(self, items: list[LineItem]) -> AvailabilityResult:
        consumptions, warnings = self._inventory.compute_consumption(items, include_packaging=False)
        requirements = aggregate_requirements(consumptions)
        records = self._inventory.ledger.read_many(requirements.keys())

        insufficient: list[str] = []
        for ingredient_id in sorted(requirements, key=lambda i: requirements[i].name or i):
            requirement = requirements[ingredient_id]
            record = records.get(ingredient_id)
            if record is None:
                label = requirement.name or ingredient_id
                insufficient.append(f"{label} (not stocked)")
                continue
            if record.stock < requirement.amount:
                insufficient.append(shortfall_message(requirement, record))

        if insufficient:
            logger.info("Availability check failed", shortfalls=len(insufficient), items=len(items))

        return AvailabilityResult(
            available=not insufficient,
            insufficient=insufficient,
            warnings=warnings,
        )
