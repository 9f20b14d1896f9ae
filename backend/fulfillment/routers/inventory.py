"""
Inventory endpoints: availability pre-flight, stock corrections, low-stock list.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fulfillment.repositories.stock_ledger import SqlStockLedger
from fulfillment.routers._common import to_line_items
from fulfillment.services.domain import (
    AvailabilityService,
    DeductionFailedError,
    InventoryService,
    NotFoundError,
    list_customization_options,
)
from shared.infrastructure.db import get_db
from shared.utils import exceptions as http
from shared.utils.schemas import (
    AvailabilityRequest,
    AvailabilityResponse,
    IngredientOutput,
    StockAdjustRequest,
    StockLevelOutput,
)


router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.post("/availability", response_model=AvailabilityResponse)
def check_availability(body: AvailabilityRequest, db: Session = Depends(get_db)) -> AvailabilityResponse:
    """
    Read-only stock check for a prospective order.

    Lists every shortfall at once, e.g. ``Pearls (need 50g, have 10g)``.
    """
    result = AvailabilityService(db).check_availability(to_line_items(body.items))
    return AvailabilityResponse(
        available=result.available,
        insufficient=result.insufficient,
        warnings=result.warnings,
    )


@router.get("/low-stock", response_model=list[IngredientOutput])
def list_low_stock(db: Session = Depends(get_db)) -> list[IngredientOutput]:
    """Ingredients at or below their low-stock threshold."""
    return [IngredientOutput.model_validate(i) for i in SqlStockLedger(db).list_low_stock()]


@router.get("/customizations")
def get_customization_options() -> dict:
    """Sugar and ice levels with what each consumes per drink."""
    return list_customization_options()


@router.post("/{ingredient_id}/adjust", response_model=StockLevelOutput)
def adjust_stock(
    ingredient_id: str,
    body: StockAdjustRequest,
    db: Session = Depends(get_db),
) -> StockLevelOutput:
    """Signed stock correction (restock, waste, reconciliation)."""
    try:
        record = InventoryService(db).adjust_stock(ingredient_id, body.delta, reason=body.reason)
    except NotFoundError as e:
        raise http.NotFoundError(e.entity, e.entity_id)
    except DeductionFailedError as e:
        raise http.ServiceUnavailableError("stock ledger", retry_after=5, reason=e.reason)

    return StockLevelOutput(
        ingredient_id=record.ingredient_id,
        name=record.name,
        unit=record.unit,
        stock=record.stock,
    )
