"""
Cart Routes
=============
JSON cart API. The caller's cart is the account cart when a bearer
token is present, otherwise the guest cart of the session cookie.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.database import get_db, transactional
from modules.auth.deps import get_current_user, require_user, get_session_id
from modules.cart.schemas import AddItemRequest, UpdateItemRequest, serialize_cart
from modules.cart.service import cart_service
from modules.cart.merge_service import cart_merge_service
from modules.order.schemas import CreateOrderRequest, serialize_order
from modules.order.service import order_service
from modules.payment.dispatcher import dispatch_payment

router = APIRouter(prefix="/cart", tags=["cart"])


def _user_id(user):
    return user.id if user else None


# ==========================================
# View / Clear
# ==========================================

@router.get("")
async def get_cart(
    session_id: str = Depends(get_session_id),
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    with transactional(db):
        data = serialize_cart(cart_service.get_or_create_cart(db, session_id, _user_id(user)))
    return data


@router.delete("")
async def clear_cart(
    session_id: str = Depends(get_session_id),
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    with transactional(db):
        data = serialize_cart(cart_service.clear_cart(db, session_id, _user_id(user)))
    return data


# ==========================================
# Items
# ==========================================

@router.post("/items", status_code=201)
async def add_item(
    body: AddItemRequest,
    session_id: str = Depends(get_session_id),
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    with transactional(db):
        cart = cart_service.add_item(db, session_id, body.product_id, body.quantity, _user_id(user))
        data = serialize_cart(cart)
    return data


@router.put("/items/{product_id}")
async def update_item(
    product_id: int,
    body: UpdateItemRequest,
    session_id: str = Depends(get_session_id),
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    with transactional(db):
        cart = cart_service.update_item(db, session_id, product_id, body.quantity, _user_id(user))
        data = serialize_cart(cart)
    return data


@router.delete("/items/{product_id}")
async def remove_item(
    product_id: int,
    session_id: str = Depends(get_session_id),
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    with transactional(db):
        data = serialize_cart(cart_service.remove_item(db, session_id, product_id, _user_id(user)))
    return data


# ==========================================
# Merge / Checkout
# ==========================================

@router.post("/merge")
async def merge_cart(
    session_id: str = Depends(get_session_id),
    user=Depends(require_user),
    db: Session = Depends(get_db),
):
    with transactional(db):
        data = serialize_cart(cart_merge_service.merge_carts(db, session_id, user.id))
    return data


@router.post("/checkout", status_code=201)
async def checkout(
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
