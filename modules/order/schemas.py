"""
Order Module - Schemas
=======================
Request bodies and JSON shapes for orders, shipping and payments.
"""

from typing import Optional, List

from pydantic import BaseModel, Field

from modules.cart.schemas import DirectItem, money
from modules.order.models import Order
from modules.payment.models import Payment
from modules.shipping.models import Shipping


class CreateOrderRequest(BaseModel):
    address_id: int = Field(..., gt=0)
    shipping_method: str = "standard"
    payment_method: str = "credit_card"
    items: Optional[List[DirectItem]] = None


def _iso(value):
    return value.isoformat() if value else None


def serialize_shipping(shipping: Optional[Shipping]) -> Optional[dict]:
    if shipping is None:
        return None
    return {
        "id": shipping.id,
        "order_id": shipping.order_id,
        "address_id": shipping.address_id,
        "shipping_method": shipping.shipping_method,
        "shipping_status": shipping.shipping_status,
        "shipping_cost": money(shipping.shipping_cost),
        "tracking_number": shipping.tracking_number,
        "shipped_at": _iso(shipping.shipped_at),
        "delivered_at": _iso(shipping.delivered_at),
    }


def serialize_payment(payment: Optional[Payment]) -> Optional[dict]:
    if payment is None:
        return None
    return {
        "id": payment.id,
        "order_id": payment.order_id,
        "payment_method": payment.payment_method,
        "payment_status": payment.payment_status,
        "transaction_id": payment.transaction_id,
        "amount": money(payment.amount),
        "attempts": payment.attempts,
        "paid_at": _iso(payment.paid_at),
        "refunded_at": _iso(payment.refunded_at),
    }


def serialize_order(order: Order) -> dict:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "status": order.status,
        "payment_status": order.payment_status,
        "shipping_method": order.shipping_method,
        "shipping_cost": money(order.shipping_cost),
        "subtotal": money(order.subtotal),
        "total": money(order.total),
        "shipping_address_id": order.shipping_address_id,
        "payment_id": order.payment_id,
        "created_at": _iso(order.created_at),
        "cancelled_at": _iso(order.cancelled_at),
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "title": item.product.title if item.product else None,
                "quantity": item.quantity,
                "price": money(item.price),
                "line_total": money(item.line_total),
            }
            for item in order.items
        ],
        "shipping": serialize_shipping(order.shipping),
        "payment": serialize_payment(order.payment),
    }
