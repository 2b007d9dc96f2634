"""
Order Routes
=============
Create (direct items or cart), list, detail, cancel.
Payment processing is queued after the order commits.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.database import get_db, transactional
from modules.auth.deps import require_user
from modules.order.schemas import CreateOrderRequest, serialize_order
from modules.order.service import order_service
from modules.payment.dispatcher import dispatch_payment

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=201)
async def create_order(
    body: CreateOrderRequest,
    user=Depends(require_user),
    db: Session = Depends(get_db),
):
    with transactional(db):
        order = order_service.create_order(
            db, user.id,
            address_id=body.address_id,
            shipping_method=body.shipping_method,
            payment_method=body.payment_method,
            items=[it.model_dump() for it in body.items] if body.items else None,
        )
        data = serialize_order(order)
    dispatch_payment(data["payment_id"])
    return data


@router.get("")
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user=Depends(require_user),
    db: Session = Depends(get_db),
):
    result = order_service.get_user_orders(db, user.id, page=page, limit=limit)
    return {
        "data": [serialize_order(o) for o in result["data"]],
        "pagination": result["pagination"],
    }


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    user=Depends(require_user),
    db: Session = Depends(get_db),
):
    return serialize_order(order_service.get_order(db, order_id, user.id))


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    user=Depends(require_user),
    db: Session = Depends(get_db),
):
    with transactional(db):
        order = order_service.cancel_order(db, order_id, user.id)
        data = serialize_order(order)
    return data
