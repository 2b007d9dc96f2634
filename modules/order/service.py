"""
Order Module - Service Layer
===============================
Checkout (order creation with inventory decrement), cancellation, queries.

Everything in create_order/cancel_order runs in the caller's transaction;
routes wrap the call in transactional(db) so any failure rolls back
the order, its items, shipping, payment and every ledger row together.
"""

import logging
import math
from decimal import Decimal
from typing import Callable, List, Optional, Dict, Any

from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc

from common.exceptions import (
    AddressNotFoundError, EmptyOrderError, DuplicateProductError,
    InsufficientStockError, ProductNotFoundError, OrderNotFoundError,
    OrderNotCancellableError, InvalidQuantityError,
)
from common.helpers import now_utc, to_money
from common.notifications import notify_order_event
from modules.order.models import Order, OrderItem, OrderStatus
from modules.cart.service import cart_service
from modules.catalog.models import Product
from modules.inventory.service import inventory_service
from modules.payment.service import payment_service, validate_payment_method
from modules.shipping.models import Shipping, ShippingStatus
from modules.shipping.service import (
    shipping_service, calculate_shipping_cost, validate_shipping_method,
)
from modules.user.models import Address

logger = logging.getLogger("folio.order")


class OrderService:

    def __init__(self, shipping_cost_fn: Callable[..., Decimal] = calculate_shipping_cost):
        self.shipping_cost_fn = shipping_cost_fn

    # ==========================================
    # Checkout
    # ==========================================

    def create_order(
        self,
        db: Session,
        user_id: int,
        address_id: int,
        shipping_method: str = "standard",
        payment_method: str = "credit_card",
        items: Optional[List[Dict[str, int]]] = None,
    ) -> Order:
        """
        Create an order from a direct item list or from the user's cart:
        1. Verify the address belongs to the user
        2. Resolve lines (items, else cart lines)
        3. Check product/stock/duplicates, price at the live selling price
        4. Add shipping cost
        5. Insert order + items, decrement inventory, clear the cart if used
        6. Create Shipping (pending) and Payment (pending), link payment_id

        items: [{"product_id": int, "quantity": int}, ...]
        """
        address = db.query(Address).filter(
            Address.id == address_id,
            Address.user_id == user_id,
        ).first()
        if not address:
            raise AddressNotFoundError()
        validate_shipping_method(shipping_method)
        validate_payment_method(payment_method)

        cart = None
        if items:
            lines = [(int(it["product_id"]), it["quantity"]) for it in items]
        else:
            cart = cart_service.find_cart(db, None, user_id)
            lines = [(it.product_id, it.quantity) for it in cart.items] if cart else []
        if not lines:
            raise EmptyOrderError()

        prepared = self._prepare_order_items(db, lines)

        subtotal = sum((p["price"] * p["quantity"] for p in prepared), Decimal("0"))
        total_weight = sum(p["weight"] for p in prepared)
        shipping_cost = to_money(self.shipping_cost_fn(shipping_method, len(prepared), total_weight))

        order = Order(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            payment_status="pending",
            total=to_money(subtotal + shipping_cost),
            shipping_address_id=address.id,
            shipping_method=shipping_method,
            shipping_cost=shipping_cost,
            items=[
                OrderItem(product_id=p["product"].id, quantity=p["quantity"], price=p["price"])
                for p in prepared
            ],
        )
        db.add(order)
        db.flush()

        for p in prepared:
            inventory_service.decrement(
                db, p["product"].id, p["quantity"],
                reference_id=order.id, product_name=p["product"].title,
            )

        if cart is not None:
            cart_service.clear_cart_by_id(db, cart.id)

        shipping_service.create_shipping_record(db, order.id, address.id, shipping_method, shipping_cost)
        payment = payment_service.create_payment(db, order, payment_method)
        order.payment_id = payment.id
        db.flush()

        logger.info(
            f"Order #{order.id} created for user #{user_id}: {len(prepared)} lines, "
            f"total {order.total} ({shipping_method} shipping {shipping_cost})"
        )
        notify_order_event(user_id, order.id, "order_created", total=str(order.total))
        return order

    def _prepare_order_items(self, db: Session, lines) -> List[Dict[str, Any]]:
        """Validate each line against the live catalog and stock."""
        prepared = []
        seen = set()
        for product_id, quantity in lines:
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise InvalidQuantityError("Quantity must be at least 1")

            product = db.get(Product, product_id)
            if not product:
                raise ProductNotFoundError(product_id)

            available = inventory_service.get_quantity(db, product_id)
            if available < quantity:
                raise InsufficientStockError(product.title, product_id=product_id)

            if product_id in seen:
                raise DuplicateProductError()
            seen.add(product_id)

            prepared.append({
                "product": product,
                "quantity": quantity,
                "price": to_money(product.selling_price),
                "weight": (product.weight_grams or 0) * quantity,
            })
        return prepared

    # ==========================================
    # Cancel
    # ==========================================

    def cancel_order(self, db: Session, order_id: int, user_id: int) -> Order:
        """Only pending orders can be cancelled; stock goes back through the ledger."""
        order = db.query(Order).filter(
            Order.id == order_id,
            Order.user_id == user_id,
        ).with_for_update().first()
        if not order:
            raise OrderNotFoundError()
        if order.status != OrderStatus.PENDING.value:
            raise OrderNotCancellableError(order.status)

        order.status = OrderStatus.CANCELLED.value
        order.cancelled_at = now_utc()

        for item in order.items:
            inventory_service.restore_on_cancel(db, item.product_id, item.quantity, reference_id=order.id)

        db.query(Shipping).filter(Shipping.order_id == order.id).update(
            {Shipping.shipping_status: ShippingStatus.CANCELLED.value},
            synchronize_session="fetch",
        )
        db.flush()

        logger.info(f"Order #{order.id} cancelled by user #{user_id}")
        notify_order_event(user_id, order.id, "order_cancelled")
        return order

    # ==========================================
    # Queries
    # ==========================================

    def get_order(self, db: Session, order_id: int, user_id: Optional[int] = None) -> Order:
        q = db.query(Order).options(
            joinedload(Order.items).joinedload(OrderItem.product),
            joinedload(Order.shipping),
            joinedload(Order.payment),
            joinedload(Order.shipping_address),
        ).filter(Order.id == order_id)
        if user_id is not None:
            q = q.filter(Order.user_id == user_id)
        order = q.first()
        if not order:
            raise OrderNotFoundError()
        return order

    def get_user_orders(self, db: Session, user_id: int, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """Newest first, paginated."""
        page = max(page, 1)
        limit = max(min(limit, 100), 1)
        base = db.query(Order).filter(Order.user_id == user_id)
        total = base.count()
        orders = (
            base.options(joinedload(Order.items).joinedload(OrderItem.product), joinedload(Order.shipping))
            .order_by(desc(Order.created_at), desc(Order.id))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "data": orders,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "total_pages": math.ceil(total / limit) if total else 0,
            },
        }


# Singleton
order_service = OrderService(shipping_cost_fn=calculate_shipping_cost)
