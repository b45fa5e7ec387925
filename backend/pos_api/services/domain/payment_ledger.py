"""
Payment Ledger.

Tracks payments against an order and completes the order exactly once
when the running total covers it (within PAYMENT_TOLERANCE_CENTS).

The payment row and the completion transition share one transaction and
the order row lock, so two terminals recording crossing payments at the
same moment cannot both complete the order: the second one sees a
terminal status and gets a ConflictError.
"""

from sqlalchemy.orm import Session

from pos_api.models import Order, Payment
from pos_api.repositories import OrderRepository
from pos_api.services.domain.order_state_machine import OrderStateMachine
from pos_api.services.events.outbox_service import write_order_event
from shared.config.constants import PaymentMethod
from shared.config.logging import billing_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import PAYMENT_RECORDED
from shared.utils.exceptions import (
    AlreadyCompletedError,
    OrderNotFoundError,
    PaymentAmountError,
    ValidationError,
)
from shared.utils.schemas import PaymentResult

ACCEPTED_METHODS = frozenset({PaymentMethod.CASH, PaymentMethod.CARD})


def settlement_method(order: Order) -> str:
    """Label for how an order was paid: the single method used, or 'split'."""
    methods = {p.method for p in order.payments}
    if len(methods) == 1:
        return methods.pop()
    return PaymentMethod.SPLIT


class PaymentLedger:
    """
    Domain service for recording payments.
    """

    def __init__(self, db: Session, *, state_machine: OrderStateMachine | None = None):
        self._db = db
        self._orders = OrderRepository(db)
        self._state_machine = state_machine or OrderStateMachine(db)
        self._tolerance = settings.payment_tolerance_cents

    def _normalize_method(self, method: str) -> str:
        normalized = (method or "").strip().lower()
        if normalized not in ACCEPTED_METHODS:
            raise ValidationError(
                f"Unsupported payment method '{method}'",
                accepted=sorted(ACCEPTED_METHODS),
            )
        return normalized

    def record_payment(
        self,
        order_id: str,
        amount_cents: int,
        method: str,
        tip_cents: int = 0,
    ) -> PaymentResult:
        """
        Append a payment and complete the order once it is covered.

        Raises:
            PaymentAmountError: amount not positive, or above the balance due
            ValidationError: negative tip or unknown method
            OrderNotFoundError: unknown order
            AlreadyCompletedError: order already in a terminal state
            InventoryDepletionError: completion could not deplete stock
                (nothing is recorded; the payment can be retried)
        """
        if amount_cents <= 0:
            raise PaymentAmountError(amount_cents, "must be positive", order_id=order_id)
        if tip_cents < 0:
            raise ValidationError("Tip cannot be negative", order_id=order_id, tip_cents=tip_cents)
        method = self._normalize_method(method)

        with self._state_machine.locks.hold(order_id):
            try:
                result = self._record_locked(order_id, amount_cents, method, tip_cents)
                safe_commit(self._db)
            except Exception:
                self._db.rollback()
                raise

        logger.info(
            "Payment recorded",
            order_id=order_id,
            amount_cents=amount_cents,
            method=method,
            status=result.status,
            remaining_cents=result.remaining_cents,
        )
        return result

    def _record_locked(
        self,
        order_id: str,
        amount_cents: int,
        method: str,
        tip_cents: int,
    ) -> PaymentResult:
        order = self._orders.get_for_update(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.is_terminal:
            raise AlreadyCompletedError(order_id, order.status)

        remaining_before = order.total_cents - order.paid_cents
        if amount_cents > remaining_before + self._tolerance:
            raise PaymentAmountError(
                amount_cents,
                f"exceeds remaining balance of {remaining_before}",
                order_id=order_id,
            )

        payment = Payment(amount_cents=amount_cents, tip_cents=tip_cents, method=method)
        order.payments.append(payment)
        order.tip_cents += tip_cents
        self._db.flush()

        paid = order.paid_cents
        alerts: list[str] = []
        status = "pending"
        if paid >= order.total_cents - self._tolerance:
            alerts = self._state_machine.apply_completion(order, settlement_method(order))
            status = "completed"

        write_order_event(
            self._db,
            PAYMENT_RECORDED,
            order,
            {"payment_id": payment.id, "amount_cents": amount_cents, "method": method},
        )

        return PaymentResult(
            order_id=order_id,
            status=status,
            paid_cents=paid,
            remaining_cents=0 if status == "completed" else max(order.total_cents - paid, 0),
            alerts=alerts,
            payment_id=payment.id,
        )

    def pay_in_full(self, order_id: str, method: str, tip_cents: int = 0) -> PaymentResult:
        """Record one payment for the whole outstanding balance and complete."""
        with self._state_machine.locks.hold(order_id):
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            if order.is_terminal:
                raise AlreadyCompletedError(order_id, order.status)
            outstanding = order.total_cents - order.paid_cents

            if outstanding > 0:
                return self.record_payment(order_id, outstanding, method, tip_cents)

            # Nothing left to pay (zero-total order or already covered)
            alerts = self._state_machine.complete(order_id, settlement_method(order) if order.payments else None)
            return PaymentResult(
                order_id=order_id,
                status="completed",
                paid_cents=order.paid_cents,
                remaining_cents=0,
                alerts=alerts,
            )
