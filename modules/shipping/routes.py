"""
Shipping Routes
================
Method list, cost quote, per-order shipping lookup, admin status update.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db, transactional
from modules.auth.deps import require_user, require_admin
from modules.cart.schemas import money
from modules.order.schemas import serialize_shipping
from modules.order.service import order_service
from modules.shipping.service import (
    SHIPPING_METHODS, calculate_shipping_cost, shipping_service,
)

router = APIRouter(prefix="/shipping", tags=["shipping"])


class QuoteRequest(BaseModel):
    shipping_method: str
    item_count: int = Field(1, ge=1)
    total_weight: int = Field(0, ge=0)


class StatusUpdateRequest(BaseModel):
    status: str
    tracking_number: Optional[str] = None


@router.get("/methods")
async def shipping_methods():
    return {"data": SHIPPING_METHODS}


@router.post("/calculate")
async def quote_shipping(body: QuoteRequest, user=Depends(require_user)):
    cost = calculate_shipping_cost(body.shipping_method, body.item_count, body.total_weight)
    method = next(m for m in SHIPPING_METHODS if m["id"] == body.shipping_method)
    return {
        "shipping_method": body.shipping_method,
        "cost": money(cost),
        "estimated_delivery": {"min_days": method["min_days"], "max_days": method["max_days"]},
    }


@router.get("/orders/{order_id}")
async def order_shipping(
    order_id: int,
    user=Depends(require_user),
    db: Session = Depends(get_db),
):
    order = order_service.get_order(db, order_id, user.id)
    return serialize_shipping(shipping_service.get_shipping_by_order_id(db, order.id))


@router.put("/{shipping_id}/status")
async def update_status(
    shipping_id: int,
    body: StatusUpdateRequest,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    with transactional(db):
        shipping = shipping_service.update_shipping_status(db, shipping_id, body.status, body.tracking_number)
        data = serialize_shipping(shipping)
    return data
