"""
Shipping Module - Service Layer
=================================
Shipping cost table and the per-order shipping record.

Cost (USD):
    base 5.99
    + express 7.99 | overnight 14.99
    + 1.50 per additional order line
    + 2.50 per started 500 g above 1 kg
"""

import logging
import math
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from common.exceptions import (
    InvalidShippingMethodError, InvalidStatusError, NotFoundError, ShipmentClosedError,
)
from common.helpers import now_utc, to_money
from modules.order.models import Order, OrderStatus
from modules.shipping.models import Shipping, ShippingMethod, ShippingStatus

logger = logging.getLogger("folio.shipping")


BASE_COST = Decimal("5.99")
METHOD_SURCHARGE = {
    ShippingMethod.STANDARD.value: Decimal("0"),
    ShippingMethod.EXPRESS.value: Decimal("7.99"),
    ShippingMethod.OVERNIGHT.value: Decimal("14.99"),
}
PER_EXTRA_ITEM = Decimal("1.50")
FREE_WEIGHT_GRAMS = 1000
WEIGHT_STEP_GRAMS = 500
PER_WEIGHT_STEP = Decimal("2.50")

SHIPPING_METHODS = [
    {"id": "standard", "name": "Standard Shipping", "description": "3-5 business days", "min_days": 3, "max_days": 5},
    {"id": "express", "name": "Express Shipping", "description": "1-2 business days", "min_days": 1, "max_days": 2},
    {"id": "overnight", "name": "Overnight Shipping", "description": "Next business day", "min_days": 1, "max_days": 1},
]

# Shipping status -> order status it pushes the order to
_ORDER_CASCADE = {
    ShippingStatus.SHIPPED.value: OrderStatus.SHIPPED.value,
    ShippingStatus.DELIVERED.value: OrderStatus.DELIVERED.value,
}


def validate_shipping_method(method: str) -> str:
    if method not in METHOD_SURCHARGE:
        raise InvalidShippingMethodError(method)
    return method


def calculate_shipping_cost(method: str, item_count: int = 1, total_weight: int = 0) -> Decimal:
    """
    Args:
        method: standard / express / overnight
        item_count: number of distinct order lines
        total_weight: grams across the whole order
    """
    validate_shipping_method(method)
    cost = BASE_COST + METHOD_SURCHARGE[method]
    if item_count > 1:
        cost += PER_EXTRA_ITEM * (item_count - 1)
    if total_weight and total_weight > FREE_WEIGHT_GRAMS:
        steps = math.ceil((total_weight - FREE_WEIGHT_GRAMS) / WEIGHT_STEP_GRAMS)
        cost += PER_WEIGHT_STEP * steps
    return to_money(cost)


class ShippingService:

    def create_shipping_record(
        self,
        db: Session,
        order_id: int,
        address_id: int,
        method: str,
        cost,
    ) -> Shipping:
        shipping = Shipping(
            order_id=order_id,
            address_id=address_id,
            shipping_method=validate_shipping_method(method),
            shipping_status=ShippingStatus.PENDING.value,
            shipping_cost=to_money(cost),
        )
        db.add(shipping)
        db.flush()
        return shipping

    def get_shipping_by_order_id(self, db: Session, order_id: int) -> Shipping:
        shipping = db.query(Shipping).filter(Shipping.order_id == order_id).first()
        if not shipping:
            raise NotFoundError("Shipping record not found")
        return shipping

    def update_shipping_status(
        self,
        db: Session,
        shipping_id: int,
        status: str,
        tracking_number: Optional[str] = None,
    ) -> Shipping:
        """Move a shipment along; shipped/delivered also advance the order."""
        valid = {s.value for s in ShippingStatus}
        if status not in valid:
            raise InvalidStatusError(f"Invalid shipping status: {status}")

        shipping = db.query(Shipping).filter(Shipping.id == shipping_id).with_for_update().first()
        if not shipping:
            raise NotFoundError("Shipping record not found")

        # Cancelled, refunded and delivered orders are final; so is a cancelled shipment
        order = db.query(Order).filter(Order.id == shipping.order_id).with_for_update().first()
        if shipping.shipping_status == ShippingStatus.CANCELLED.value:
            raise ShipmentClosedError("shipment cancelled")
        if order and order.is_terminal:
            raise ShipmentClosedError(f"order {order.status}")

        shipping.shipping_status = status
        if tracking_number:
            shipping.tracking_number = tracking_number
        if status == ShippingStatus.SHIPPED.value:
            shipping.shipped_at = now_utc()
        elif status == ShippingStatus.DELIVERED.value:
            shipping.delivered_at = now_utc()

        order_status = _ORDER_CASCADE.get(status)
        if order_status and order:
            order.status = order_status

        db.flush()
        logger.info(f"Shipping #{shipping.id} (order #{shipping.order_id}) -> {status}")
        return shipping


# Singleton
shipping_service = ShippingService()
