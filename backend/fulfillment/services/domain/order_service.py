"""
Order Domain Service.

Owns the order lifecycle: placement, status transitions, and the exactly-once
side effects hanging off them (inventory deduction, loyalty accrual).

Lifecycle:
    waiting -> preparing -> ready -> completed
    waiting | preparing | ready -> cancelled

Every status write is conditional on the status that was read, and every
side effect runs in the transaction that claims its idempotency flag. No
in-process locks are involved: two staff members advancing the same order
from different terminals settle through the database.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy.orm import Session

from fulfillment.models import Order, OrderLine
from fulfillment.repositories.customer import CustomerRepository
from fulfillment.repositories.order import OrderFilters, OrderRepository
from fulfillment.services.domain.exceptions import (
    AccrualFailedError,
    DeductionFailedError,
    InvalidOrderError,
    InvalidTransitionError,
    NotFoundError,
)
from fulfillment.services.domain.inventory_service import InventoryService
from fulfillment.services.domain.loyalty_service import LoyaltyService
from fulfillment.types import (
    CreateOrderResult,
    DeductionResult,
    LineItem,
    PaymentDetails,
    TransitionResult,
)
from shared.config.constants import (
    ORDER_TRANSITIONS,
    DiscountType,
    Limits,
    OrderStatus,
    OrderType,
    PaymentMethod,
)
from shared.config.logging import mask_customer_id, orders_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit


@dataclass
class ReconcileOutcome:
    """Result of one reconciliation attempt."""

    order_id: str
    order_number: str
    deducted: bool
    error: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_order_number(now: datetime | None = None, digits: int | None = None) -> str:
    """Human-facing order number: '#YYYYMMDD-XXXX' with a random suffix."""
    now = now or _utcnow()
    digits = digits or settings.order_number_suffix_digits
    suffix = secrets.randbelow(10 ** digits)
    return f"#{now:%Y%m%d}-{suffix:0{digits}d}"


def is_valid_transition(from_status: str, to_status: str) -> bool:
    return to_status in ORDER_TRANSITIONS.get(from_status, [])


class OrderService:
    """
    Domain service for order placement and the order state machine.

    Collaborators are injectable; by default they share this service's
    session so a request works against a single unit of work.
    """

    def __init__(
        self,
        db: Session,
        inventory: InventoryService | None = None,
        loyalty: LoyaltyService | None = None,
    ):
        self._db = db
        self._orders = OrderRepository(db)
        self._customers = CustomerRepository(db)
        self._inventory = inventory or InventoryService(db)
        self._loyalty = loyalty or LoyaltyService(db)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_order(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def list_orders(self, filters: OrderFilters | None = None) -> Sequence[Order]:
        return self._orders.find_all(filters)

    # =========================================================================
    # Placement
    # =========================================================================

    def create_order(
        self,
        items: list[LineItem],
        payment: PaymentDetails,
        customer_id: str | None = None,
        customer_name: str | None = None,
        order_type: str = OrderType.WALK_IN,
        discount_type: str = DiscountType.NONE,
        employee_id: str | None = None,
    ) -> CreateOrderResult:
        """
        Place an order and make an initial deduction attempt.

        The order is committed first. A failed deduction never fails order
        placement: it is reported as a warning and the order keeps
        ``inventory_deducted = false`` for a later retry.

        Raises:
            InvalidOrderError: empty order, bad discount or payment
            NotFoundError: unknown customer id
        """
        if not items:
            raise InvalidOrderError("Order must contain at least one item")
        if len(items) > Limits.MAX_ITEMS_PER_ORDER:
            raise InvalidOrderError(f"At most {Limits.MAX_ITEMS_PER_ORDER} items per order")
        if discount_type not in DiscountType.PERCENTAGE:
            raise InvalidOrderError(f"Unknown discount type '{discount_type}'")
        if order_type not in (OrderType.ONLINE, OrderType.WALK_IN):
            raise InvalidOrderError(f"Unknown order type '{order_type}'")
        if customer_id and self._customers.get_profile(customer_id) is None:
            raise NotFoundError("Customer", customer_id)

        subtotal = sum(item.line_total_cents for item in items)
        discount = subtotal * DiscountType.PERCENTAGE[discount_type] // 100
        total = subtotal - discount
        change = self._validate_payment(payment, total)

        order = Order(
            order_number=generate_order_number(),
            status=OrderStatus.WAITING,
            order_type=order_type,
            subtotal_cents=subtotal,
            discount_type=discount_type,
            discount_cents=discount,
            total_cents=total,
            payment_method=payment.method,
            payment_reference=payment.reference,
            amount_received_cents=payment.amount_received_cents,
            change_cents=change,
            customer_id=customer_id or None,
            customer_name=customer_name,
            employee_id=employee_id,
            lines=[self._build_line(position, item) for position, item in enumerate(items)],
        )
        self._orders.add(order)
        order_id, order_number = order.id, order.order_number
        safe_commit(self._db)

        logger.info(
            "Order created",
            order_id=order_id,
            order_number=order_number,
            items=len(items),
            total_cents=total,
            customer=mask_customer_id(customer_id),
        )

        result = CreateOrderResult(order_id=order_id, order_number=order_number)
        if settings.deduct_on_create:
            order = self.get_order(order_id)
            result.inventory_deducted = self._attempt_deduction(order, result.warnings)
        return result

    def _build_line(self, position: int, item: LineItem) -> OrderLine:
        category = item.category
        if category is None:
            product = self._inventory.catalog.resolve_product(item.product_id)
            category = product.category if product else None

        return OrderLine(
            position=position,
            product_id=item.product_id,
            product_name=item.product_name,
            category=category,
            size=item.size,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            sugar_level=item.customizations.sugar_level,
            ice_level=item.customizations.ice_level,
            toppings=sorted(item.customizations.toppings),
        )

    @staticmethod
    def _validate_payment(payment: PaymentDetails, total_cents: int) -> int | None:
        """Check the payment covers the order. Returns change due (cash only)."""
        if payment.method not in PaymentMethod.ALL:
            raise InvalidOrderError(f"Unknown payment method '{payment.method}'")

        if payment.method == PaymentMethod.CASH:
            if payment.amount_received_cents is None:
                raise InvalidOrderError("Cash payments need the amount received")
            if payment.amount_received_cents < total_cents:
                raise InvalidOrderError("Amount received is less than the order total")
            return payment.amount_received_cents - total_cents

        if not payment.reference:
            raise InvalidOrderError("GCash payments need a reference number")
        return None

    # =========================================================================
    # State machine
    # =========================================================================

    def transition(self, order_id: str, target_status: str, reason: str | None = None) -> TransitionResult:
        """
        Move an order to ``target_status`` and run that status' side effects.

        Re-issuing the current status is an idempotent retry: nothing is
        written to the order, and guarded side effects run again (a no-op
        once their flag is set). Side effects never undo the status change;
        their failures come back as warnings.

        Raises:
            NotFoundError: unknown order
            InvalidTransitionError: edge not in the lifecycle graph, or a
                concurrent writer moved the order somewhere else first
        """
        order = self.get_order(order_id)
        current = order.status
        result = TransitionResult(order_id=order_id, from_status=current, to_status=target_status)

        if target_status not in OrderStatus.ALL:
            raise InvalidTransitionError(order_id, current, target_status)

        if target_status == current:
            result.retried = True
            logger.info("Status re-issued, retrying side effects", order_id=order_id, status=current)
        elif not is_valid_transition(current, target_status):
            raise InvalidTransitionError(order_id, current, target_status)
        else:
            self._write_status(order_id, current, target_status, reason, result)

        order = self.get_order(order_id)
        self._run_side_effects(order, target_status, result)
        return result

    def _write_status(
        self,
        order_id: str,
        current: str,
        target_status: str,
        reason: str | None,
        result: TransitionResult,
    ) -> None:
        fields: dict[str, object] = {}
        if target_status == OrderStatus.COMPLETED:
            fields["completed_at"] = _utcnow()
        elif target_status == OrderStatus.CANCELLED:
            fields["cancelled_at"] = _utcnow()
            if reason:
                fields["cancellation_reason"] = reason[: Limits.MAX_REASON_LENGTH]

        won = self._orders.update_status(order_id, current, target_status, **fields)
        safe_commit(self._db)

        if won:
            logger.info("Order status changed", order_id=order_id, from_status=current, to_status=target_status)
            return

        # Someone else moved the order between our read and our write
        latest = self._orders.current_status(order_id) or current
        if latest != target_status:
            raise InvalidTransitionError(order_id, latest, target_status)
        result.retried = True
        logger.info("Concurrent transition already applied", order_id=order_id, status=target_status)

    def _run_side_effects(self, order: Order, status: str, result: TransitionResult) -> None:
        if status == OrderStatus.READY or (
            status == OrderStatus.PREPARING and settings.deduct_on_preparing
        ):
            result.inventory_deducted = self._attempt_deduction(order, result.warnings)
        elif status == OrderStatus.COMPLETED:
            result.points_awarded = self._attempt_accrual(order, result.warnings)

    def _attempt_deduction(self, order: Order, warnings: list[str]) -> bool:
        """Guarded deduction. True only if this call applied it."""
        order_id, order_number = order.id, order.order_number
        try:
            plan = self._inventory.deduct_for_order(order)
        except DeductionFailedError as e:
            logger.error(
                "Inventory deduction failed; order left for reconciliation",
                order_id=order_id,
                order_number=order_number,
                reason=e.reason,
            )
            warnings.append(str(e))
            return False

        if plan is None:
            return False
        warnings.extend(plan.warnings)
        return True

    def _attempt_accrual(self, order: Order, warnings: list[str]) -> int:
        order_id = order.id
        try:
            accrual = self._loyalty.accrue(order)
        except AccrualFailedError as e:
            logger.warning(
                "Loyalty accrual failed; order still completed",
                order_id=order_id,
                customer=mask_customer_id(e.customer_id),
                reason=e.reason,
            )
            warnings.append(str(e))
            return 0
        return accrual.points if accrual and accrual.applied else 0

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def reconcile_inventory(self, order_id: str) -> DeductionResult | None:
        """
        Administrative retry of a deduction that did not land.

        Returns None if the order was already deducted.

        Raises:
            NotFoundError: unknown order
            InvalidOrderError: order was cancelled
            DeductionFailedError: the ledger write failed again
        """
        order = self.get_order(order_id)
        if order.status == OrderStatus.CANCELLED:
            raise InvalidOrderError("Cancelled orders are not reconciled")
        return self._inventory.deduct_for_order(order)

    def reconcile_pending(self, limit: int = Limits.DEFAULT_PAGE_SIZE) -> list[ReconcileOutcome]:
        """Retry deduction for every live or completed order still missing it."""
        pending = self._orders.find_all(
            OrderFilters(
                statuses=OrderStatus.ACTIVE + [OrderStatus.COMPLETED],
                inventory_deducted=False,
                limit=limit,
            )
        )
        targets = [(order.id, order.order_number) for order in pending]

        outcomes = []
        for order_id, order_number in targets:
            try:
                plan = self.reconcile_inventory(order_id)
                outcomes.append(ReconcileOutcome(order_id, order_number, deducted=plan is not None))
            except DeductionFailedError as e:
                outcomes.append(ReconcileOutcome(order_id, order_number, deducted=False, error=e.reason))

        logger.info(
            "Reconciliation pass finished",
            scanned=len(outcomes),
            deducted=sum(1 for o in outcomes if o.deducted),
            failed=sum(1 for o in outcomes if o.error),
        )
        return outcomes
