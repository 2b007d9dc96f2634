"""
Cart Module - Merge Service
=============================
Folds a guest (session) cart into the user's account cart at login.

Conflict policy: when both carts hold the same product, the larger quantity
wins. Lines only in the guest cart are copied with their snapshot price.
The guest cart is deleted afterwards, so re-running the merge is a no-op.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from modules.cart.models import Cart, CartItem
from modules.cart.service import cart_service

logger = logging.getLogger("folio.cart")


class CartMergeService:

    def merge_carts(self, db: Session, session_id: Optional[str], user_id: int) -> Cart:
        """Runs in the caller's transaction (login/register). Returns the merged user cart."""
        guest = cart_service.find_guest_cart(db, session_id)
        if not guest:
            return cart_service.get_or_create_cart(db, None, user_id)

        user_cart = cart_service.get_or_create_cart(db, None, user_id)
        user_lines = {item.product_id: item for item in user_cart.items}

        added = 0
        raised = 0
        for line in guest.items:
            current = user_lines.get(line.product_id)
            if current is None:
                db.add(CartItem(
                    cart_id=user_cart.id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price=line.price,
                ))
                added += 1
            elif line.quantity > current.quantity:
                current.quantity = line.quantity
                raised += 1

        guest_id = guest.id
        db.delete(guest)
        db.flush()

        logger.info(
            f"Merged guest cart #{guest_id} into cart #{user_cart.id} of user #{user_id} "
            f"(added {added}, raised {raised})"
        )
        return cart_service.load_cart(db, user_cart.id)


# Singleton
cart_merge_service = CartMergeService()
