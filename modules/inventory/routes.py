"""
Inventory Routes
=================
Admin-only restock and stock reports.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db, transactional
from modules.auth.deps import require_admin
from modules.inventory.service import inventory_service

router = APIRouter(prefix="/products/{product_id}", tags=["inventory"])


class RestockRequest(BaseModel):
    quantity: int
    reason: Optional[str] = Field(None, max_length=100)


def _tx_dict(tx) -> dict:
    return {
        "id": tx.id,
        "change": tx.change,
        "reason": tx.reason,
        "reference_type": tx.reference_type,
        "reference_id": tx.reference_id,
        "created_at": tx.created_at.isoformat() if tx.created_at else None,
    }


@router.post("/restock")
async def restock_product(
    product_id: int,
    body: RestockRequest,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    with transactional(db):
        inventory = inventory_service.restock(db, product_id, body.quantity, body.reason)
        data = {"product_id": product_id, "quantity": inventory.quantity}
    return data


@router.get("/inventory")
async def product_inventory(
    product_id: int,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    report = inventory_service.get_product_inventory(db, product_id)
    return {
        "product_id": report["product_id"],
        "quantity": report["quantity"],
        "transactions": [_tx_dict(tx) for tx in report["transactions"]],
    }


@router.get("/inventory/history")
async def stock_history(
    product_id: int,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    history = inventory_service.get_stock_history(db, product_id)
    for entry in history:
        entry["created_at"] = entry["created_at"].isoformat() if entry["created_at"] else None
    return {"product_id": product_id, "history": history}


@router.get("/inventory/stats")
async def stock_stats(
    product_id: int,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    stats = inventory_service.get_stock_stats(db, product_id)
    stats["stats"]["stock_value"] = float(stats["stats"]["stock_value"])
    return stats
