"""
Inventory router (read-only stock levels).
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.models import InventoryItem
from pos_api.services.domain.inventory_ledger import InventoryLedger
from shared.infrastructure.db import get_db
from shared.utils.schemas import InventoryItemOutput

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("", response_model=list[InventoryItemOutput])
def list_inventory(db: Session = Depends(get_db)) -> list[InventoryItemOutput]:
    items = db.scalars(select(InventoryItem).order_by(InventoryItem.name)).all()
    return [InventoryItemOutput.model_validate(i) for i in items]


@router.get("/low-stock", response_model=list[InventoryItemOutput])
def list_low_stock(db: Session = Depends(get_db)) -> list[InventoryItemOutput]:
    """Items at or below their threshold."""
    return [InventoryItemOutput.model_validate(i) for i in InventoryLedger(db).list_low_stock()]
