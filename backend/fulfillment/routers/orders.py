"""
Order endpoints: placement, queue, status transitions, reconciliation.

Thin controllers over OrderService; domain errors are translated to HTTP
errors here and nowhere else.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from fulfillment.repositories.order import OrderFilters
from fulfillment.routers._common import to_line_items
from fulfillment.services.domain import (
    DeductionFailedError,
    InvalidOrderError,
    InvalidTransitionError,
    NotFoundError,
    OrderService,
)
from fulfillment.types import PaymentDetails
from shared.config.constants import Limits
from shared.config.logging import orders_logger as logger
from shared.infrastructure.db import get_db
from shared.utils import exceptions as http
from shared.utils.schemas import (
    CreateOrderRequest,
    CreateOrderResponse,
    OrderOutput,
    OrderStatusName,
    ReconcileResponse,
    TransitionRequest,
    TransitionResponse,
)


router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=CreateOrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(body: CreateOrderRequest, db: Session = Depends(get_db)) -> CreateOrderResponse:
    """
    Place an order.

    Inventory deduction is attempted right away; if it fails the order is
    still created and the failure is returned in ``warnings``.
    """
    service = OrderService(db)
    try:
        result = service.create_order(
            items=to_line_items(body.items),
            payment=PaymentDetails(
                method=body.payment.method,
                reference=body.payment.reference,
                amount_received_cents=body.payment.amount_received_cents,
            ),
            customer_id=body.customer_id,
            customer_name=body.customer_name,
            order_type=body.order_type,
            discount_type=body.discount_type,
            employee_id=body.employee_id,
        )
    except InvalidOrderError as e:
        raise http.ValidationError(e.reason)
    except NotFoundError as e:
        raise http.NotFoundError(e.entity, e.entity_id)

    return CreateOrderResponse(
        order_id=result.order_id,
        order_number=result.order_number,
        inventory_deducted=result.inventory_deducted,
        warnings=result.warnings,
    )


@router.get("", response_model=list[OrderOutput])
def list_orders(
    status_filter: OrderStatusName | None = Query(default=None, alias="status"),
    customer_id: str | None = None,
    limit: int = Query(default=Limits.DEFAULT_PAGE_SIZE, ge=1, le=Limits.MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[OrderOutput]:
    """Order queue, oldest first."""
    orders = OrderService(db).list_orders(
        OrderFilters(status=status_filter, customer_id=customer_id, limit=limit, offset=offset)
    )
    return [OrderOutput.model_validate(order) for order in orders]


@router.get("/{order_id}", response_model=OrderOutput)
def get_order(order_id: str, db: Session = Depends(get_db)) -> OrderOutput:
    try:
        order = OrderService(db).get_order(order_id)
    except NotFoundError as e:
        raise http.NotFoundError(e.entity, e.entity_id)
    return OrderOutput.model_validate(order)


@router.post("/{order_id}/status", response_model=TransitionResponse)
def transition_order(
    order_id: str,
    body: TransitionRequest,
    db: Session = Depends(get_db),
) -> TransitionResponse:
    """
    Move an order along its lifecycle.

    Safe to retry: repeating the current status re-runs only side effects
    that have not happened yet.
    """
    service = OrderService(db)
    try:
        result = service.transition(order_id, body.status, reason=body.reason)
    except NotFoundError as e:
        raise http.NotFoundError(e.entity, e.entity_id)
    except InvalidTransitionError as e:
        raise http.InvalidTransitionError("Order", e.from_status, e.to_status, order_id=order_id)

    return TransitionResponse(
        order_id=result.order_id,
        from_status=result.from_status,
        to_status=result.to_status,
        inventory_deducted=result.inventory_deducted,
        points_awarded=result.points_awarded,
        retried=result.retried,
        warnings=result.warnings,
    )


@router.post("/{order_id}/reconcile-inventory", response_model=ReconcileResponse)
def reconcile_inventory(order_id: str, db: Session = Depends(get_db)) -> ReconcileResponse:
    """Administrative retry for an order whose deduction did not land."""
    service = OrderService(db)
    try:
        plan = service.reconcile_inventory(order_id)
    except NotFoundError as e:
        raise http.NotFoundError(e.entity, e.entity_id)
    except InvalidOrderError as e:
        raise http.ValidationError(e.reason, order_id=order_id)
    except DeductionFailedError as e:
        raise http.ServiceUnavailableError("stock ledger", retry_after=5, order_id=order_id, reason=e.reason)

    if plan is None:
        logger.info("Reconcile requested for already deducted order", order_id=order_id)
        return ReconcileResponse(order_id=order_id, deducted=False, already_deducted=True)

    return ReconcileResponse(
        order_id=order_id,
        deducted=True,
        increments=plan.total_by_ingredient,
        warnings=plan.warnings,
    )
