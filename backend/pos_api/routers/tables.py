"""
Tables router: floor status.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pos_api.core.dependencies import terminal_registry
from pos_api.services.domain.table_session import TableService, TerminalRegistry
from shared.infrastructure.db import get_db
from shared.utils.schemas import ERROR_RESPONSES, TableOutput

router = APIRouter(prefix="/api/tables", tags=["tables"], responses=ERROR_RESPONSES)


def _get_service(db: Session) -> TableService:
    return TableService(db)


@router.get("", response_model=list[TableOutput])
def list_tables(db: Session = Depends(get_db)) -> list[TableOutput]:
    return [TableOutput.model_validate(t) for t in _get_service(db).list_tables()]


@router.post("/{table_id}/bill", response_model=TableOutput)
def request_bill(table_id: int, db: Session = Depends(get_db)) -> TableOutput:
    """occupied -> billed"""
    return TableOutput.model_validate(_get_service(db).request_bill(table_id))


@router.post("/{table_id}/clean", response_model=TableOutput)
def mark_clean(
    table_id: int,
    db: Session = Depends(get_db),
    registry: TerminalRegistry = Depends(terminal_registry),
) -> TableOutput:
    """cleaning -> available; parked carts for the table are dropped."""
    table = _get_service(db).mark_clean(table_id)
    registry.forget_table(table_id)
    return TableOutput.model_validate(table)
