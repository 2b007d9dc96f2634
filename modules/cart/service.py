"""
Cart Module - Service Layer
==============================
Cart management: resolve the caller's cart (user or guest session),
add/update/remove lines, clear.

Identity: a user_id selects the account cart (is_guest=false); otherwise the
session_id selects the guest cart (is_guest=true). Every mutator flushes and
returns the cart reloaded with items -> product -> inventory.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError

from common.exceptions import (
    AuthenticationError, ProductNotFoundError, OutOfStockError,
    InvalidQuantityError, CartItemNotFoundError,
)
from modules.cart.models import Cart, CartItem
from modules.catalog.models import Product
from modules.inventory.service import inventory_service

logger = logging.getLogger("folio.cart")


def validate_cart_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError("Quantity must be an integer")
    if quantity < 1:
        raise InvalidQuantityError("Quantity must be at least 1")
    return quantity


class CartService:

    # ==========================================
    # Lookup
    # ==========================================

    def _identity_filter(self, session_id: Optional[str], user_id: Optional[int]):
        if user_id is not None:
            return [Cart.user_id == user_id, Cart.is_guest == False]  # noqa: E712
        if session_id:
            return [Cart.session_id == session_id, Cart.is_guest == True]  # noqa: E712
        raise AuthenticationError("No session or user to identify the cart")

    def find_cart(self, db: Session, session_id: Optional[str], user_id: Optional[int] = None) -> Optional[Cart]:
        return db.query(Cart).filter(*self._identity_filter(session_id, user_id)).first()

    def find_guest_cart(self, db: Session, session_id: str) -> Optional[Cart]:
        if not session_id:
            return None
        return db.query(Cart).filter(
            Cart.session_id == session_id,
            Cart.is_guest == True,  # noqa: E712
        ).with_for_update().first()

    def load_cart(self, db: Session, cart_id: int) -> Cart:
        """Fresh copy of the cart with items, products and inventory eagerly loaded."""
        return (
            db.query(Cart)
            .options(
                joinedload(Cart.items)
                .joinedload(CartItem.product)
                .joinedload(Product.inventory)
            )
            .filter(Cart.id == cart_id)
            .populate_existing()
            .one()
        )

    def get_or_create_cart(self, db: Session, session_id: Optional[str], user_id: Optional[int] = None) -> Cart:
        """Find-or-create the caller's cart. A user id wins over the session id."""
        filters = self._identity_filter(session_id, user_id)
        cart = db.query(Cart).filter(*filters).first()
        if not cart:
            if user_id is not None:
                new_cart = Cart(user_id=user_id, session_id=None, is_guest=False)
            else:
                new_cart = Cart(user_id=None, session_id=session_id, is_guest=True)
            try:
                with db.begin_nested():
                    db.add(new_cart)
                cart = new_cart
                logger.debug(f"Cart #{cart.id} created ({'user #' + str(user_id) if user_id else 'guest'})")
            except IntegrityError:
                # Concurrent request created it first
                cart = db.query(Cart).filter(*filters).one()
        return self.load_cart(db, cart.id)

    # ==========================================
    # Mutators
    # ==========================================

    def add_item(
        self,
        db: Session,
        session_id: Optional[str],
        product_id: int,
        quantity: int = 1,
        user_id: Optional[int] = None,
    ) -> Cart:
        """
        Add a product. An existing line accumulates through update_item;
        a new line is capped at available stock and snapshots the selling price.
        """
        validate_cart_quantity(quantity)
        cart = self.get_or_create_cart(db, session_id, user_id)

        product = db.get(Product, product_id)
        if not product:
            raise ProductNotFoundError(product_id)
        available = inventory_service.get_quantity(db, product_id)
        if available <= 0:
            raise OutOfStockError(product_id)

        existing = self._find_line(db, cart.id, product_id)
        if existing:
            return self.update_item(db, session_id, product_id, existing.quantity + quantity, user_id)

        db.add(CartItem(
            cart_id=cart.id,
            product_id=product_id,
            quantity=min(quantity, available),
            price=product.selling_price,
        ))
        db.flush()
        return self.load_cart(db, cart.id)

    def update_item(
        self,
        db: Session,
        session_id: Optional[str],
        product_id: int,
        quantity: int,
        user_id: Optional[int] = None,
    ) -> Cart:
        """Set a line's quantity. Zero or less removes it. Stock is checked at checkout, not here."""
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidQuantityError("Quantity must be an integer")
        if quantity <= 0:
            return self.remove_item(db, session_id, product_id, user_id)

        cart = self.get_or_create_cart(db, session_id, user_id)
        item = self._find_line(db, cart.id, product_id)
        if not item:
            raise CartItemNotFoundError()
        item.quantity = quantity
        db.flush()
        return self.load_cart(db, cart.id)

    def remove_item(
        self,
        db: Session,
        session_id: Optional[str],
        product_id: int,
        user_id: Optional[int] = None,
    ) -> Cart:
        cart = self.get_or_create_cart(db, session_id, user_id)
        item = self._find_line(db, cart.id, product_id)
        if not item:
            raise CartItemNotFoundError()
        cart.items.remove(item)
        db.flush()
        return self.load_cart(db, cart.id)

    def clear_cart(self, db: Session, session_id: Optional[str], user_id: Optional[int] = None) -> Cart:
        """Remove all lines from the caller's cart."""
        cart = self.get_or_create_cart(db, session_id, user_id)
        self.clear_cart_by_id(db, cart.id)
        return self.load_cart(db, cart.id)

    def clear_cart_by_id(self, db: Session, cart_id: int):
        db.query(CartItem).filter(CartItem.cart_id == cart_id).delete(synchronize_session=False)
        db.flush()

    # ==========================================
    # Private helpers
    # ==========================================

    def _find_line(self, db: Session, cart_id: int, product_id: int) -> Optional[CartItem]:
        return db.query(CartItem).filter(
            CartItem.cart_id == cart_id,
            CartItem.product_id == product_id,
        ).first()


# Singleton
cart_service = CartService()
