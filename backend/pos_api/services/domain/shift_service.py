"""
Shift Service: clock in, server checkout and blind drop.

Server checkout sums the completed orders an employee rang up since the
start of their shift. Tip-outs are percentages of gross sales; the blind
drop compares the cash the server hands in with the cash sales
(expected cash = cash sales). Cash and card figures come from the
payment rows, so a split check counts each part under its own method.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.models import Employee, Order, Timesheet
from shared.config.constants import OrderStatus, PaymentMethod
from shared.config.logging import get_logger, mask_employee_id
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import ConflictError, NotFoundError
from shared.utils.schemas import CloseShiftResult, ShiftStats, TipOutBreakdown

logger = get_logger(__name__)


def _percent_of(amount_cents: int, percent: float) -> int:
    value = Decimal(amount_cents) * Decimal(str(percent)) / Decimal(100)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_tip_outs(gross_sales_cents: int) -> TipOutBreakdown:
    return TipOutBreakdown(
        busser_cents=_percent_of(gross_sales_cents, settings.tipout_busser_percent),
        bar_cents=_percent_of(gross_sales_cents, settings.tipout_bar_percent),
        runner_cents=_percent_of(gross_sales_cents, settings.tipout_runner_percent),
    )


class ShiftService:
    """Timesheets and end-of-shift figures."""

    def __init__(self, db: Session):
        self._db = db

    def _get_employee(self, employee_id: int) -> Employee:
        employee = self._db.get(Employee, employee_id)
        if employee is None or not employee.is_active:
            raise NotFoundError("Employee", employee_id)
        return employee

    def active_timesheet(self, employee_id: int) -> Timesheet | None:
        return self._db.scalar(
            select(Timesheet)
            .where(Timesheet.employee_id == employee_id, Timesheet.clock_out.is_(None))
            .order_by(Timesheet.clock_in.desc())
            .limit(1)
        )

    def clock_in(self, employee_id: int) -> Timesheet:
        self._get_employee(employee_id)
        if self.active_timesheet(employee_id) is not None:
            raise ConflictError("Employee is already clocked in", employee_id=employee_id)

        timesheet = Timesheet(employee_id=employee_id, clock_in=datetime.now(timezone.utc))
        self._db.add(timesheet)
        safe_commit(self._db)
        self._db.refresh(timesheet)
        logger.info("Clocked in", employee=mask_employee_id(employee_id), timesheet_id=timesheet.id)
        return timesheet

    def get_shift_stats(self, employee_id: int, shift_start: datetime | None = None) -> ShiftStats:
        """
        Checkout figures for orders completed by `employee_id` since
        `shift_start` (defaults to the active shift's clock-in).
        """
        self._get_employee(employee_id)
        if shift_start is None:
            timesheet = self.active_timesheet(employee_id)
            if timesheet is None:
                raise NotFoundError("Active shift", employee_id=employee_id)
            shift_start = timesheet.clock_in

        orders = self._db.scalars(
            select(Order).where(
                Order.employee_id == employee_id,
                Order.status == OrderStatus.COMPLETED,
                Order.created_at >= shift_start,
            )
        ).all()

        gross = food = beverage = cash = card = tips = 0
        for order in orders:
            gross += order.total_cents
            food += order.food_sales_cents
            beverage += order.drink_sales_cents
            tips += order.tip_cents
            if not order.payments:
                # Replayed offline orders may carry only the settlement label
                if order.payment_method == PaymentMethod.CASH:
                    cash += order.total_cents
                else:
                    card += order.total_cents
                continue
            for payment in order.payments:
                if payment.method == PaymentMethod.CASH:
                    cash += payment.amount_cents
                else:
                    card += payment.amount_cents

        tip_outs = compute_tip_outs(gross)
        return ShiftStats(
            employee_id=employee_id,
            shift_start=shift_start,
            order_count=len(orders),
            gross_sales_cents=gross,
            food_sales_cents=food,
            beverage_sales_cents=beverage,
            cash_sales_cents=cash,
            card_sales_cents=card,
            tips_cents=tips,
            tip_outs=tip_outs,
            total_tip_out_cents=tip_outs.total_cents,
            net_tips_cents=tips - tip_outs.total_cents,
            expected_cash_cents=cash,
        )

    def close_shift(
        self,
        employee_id: int,
        cash_drop_cents: int,
        declared_tips_cents: int = 0,
    ) -> CloseShiftResult:
        """Close the active timesheet and report over/short on the drop."""
        timesheet = self.active_timesheet(employee_id)
        if timesheet is None:
            raise NotFoundError("Active shift", employee_id=employee_id)

        stats = self.get_shift_stats(employee_id, timesheet.clock_in)

        timesheet.clock_out = datetime.now(timezone.utc)
        timesheet.cash_drop_cents = cash_drop_cents
        timesheet.declared_tips_cents = declared_tips_cents
        safe_commit(self._db)
        self._db.refresh(timesheet)

        over_short = cash_drop_cents - stats.expected_cash_cents
        logger.info(
            "Shift closed",
            employee=mask_employee_id(employee_id),
            timesheet_id=timesheet.id,
            expected_cash_cents=stats.expected_cash_cents,
            over_short_cents=over_short,
        )
        return CloseShiftResult(
            timesheet_id=timesheet.id,
            employee_id=employee_id,
            clock_in=timesheet.clock_in,
            clock_out=timesheet.clock_out,
            expected_cash_cents=stats.expected_cash_cents,
            cash_drop_cents=cash_drop_cents,
            over_short_cents=over_short,
            declared_tips_cents=declared_tips_cents,
        )
