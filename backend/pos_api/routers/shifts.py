"""
Shifts router: clock in, server checkout stats, blind drop.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pos_api.services.domain.shift_service import ShiftService
from shared.infrastructure.db import get_db
from shared.utils.schemas import ERROR_RESPONSES, CloseShiftRequest, CloseShiftResult, ShiftStats, TimesheetOutput

router = APIRouter(prefix="/api/shifts", tags=["shifts"], responses=ERROR_RESPONSES)


def _get_service(db: Session) -> ShiftService:
    return ShiftService(db)


@router.post("/{employee_id}/clock-in", response_model=TimesheetOutput, status_code=status.HTTP_201_CREATED)
def clock_in(employee_id: int, db: Session = Depends(get_db)) -> TimesheetOutput:
    return TimesheetOutput.model_validate(_get_service(db).clock_in(employee_id))


@router.get("/{employee_id}/stats", response_model=ShiftStats)
def shift_stats(
    employee_id: int,
    shift_start: datetime | None = None,
    db: Session = Depends(get_db),
) -> ShiftStats:
    """Defaults to the active shift's clock-in when `shift_start` is omitted."""
    return _get_service(db).get_shift_stats(employee_id, shift_start)


@router.post("/{employee_id}/close", response_model=CloseShiftResult)
def close_shift(
    employee_id: int,
    body: CloseShiftRequest,
    db: Session = Depends(get_db),
) -> CloseShiftResult:
    return _get_service(db).close_shift(
        employee_id, body.cash_drop_cents, body.declared_tips_cents
    )
