"""
Cart Module - Schemas
======================
Request bodies and the JSON shape of a cart.
"""

from pydantic import BaseModel, Field

from common.helpers import to_money
from modules.cart.models import Cart


class AddItemRequest(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(1)


class UpdateItemRequest(BaseModel):
    quantity: int


class DirectItem(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)


def money(value) -> float:
    return float(to_money(value))


def serialize_cart(cart: Cart) -> dict:
    """Cart lines with snapshot price, live price and live stock for display."""
    items = []
    subtotal = to_money(0)
    item_count = 0
    for item in cart.items:
        product = item.product
        line_total = to_money(item.price * item.quantity)
        subtotal += line_total
        item_count += item.quantity
        items.append({
            "id": item.id,
            "product": {
                "id": product.id,
                "title": product.title,
                "author": product.author,
                "selling_price": money(product.selling_price),
                "image": product.primary_image,
                "inventory": product.stock,
            },
            "quantity": item.quantity,
            "price": money(item.price),
            "subtotal": money(line_total),
        })

    return {
        "id": cart.id,
        "is_guest": cart.is_guest,
        "items": items,
        "itemCount": item_count,
        "subtotal": money(subtotal),
        "total": money(subtotal),
    }
