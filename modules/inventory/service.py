"""
Inventory Module - Service Layer
==================================
Stock ledger: every quantity change writes an InventoryTransaction in the
same flush as the counter update, inside the caller's transaction.

Usage:
    inventory_service.restock(db, product_id=42, quantity=10)
    inventory_service.decrement(db, product_id=42, quantity=3, reference_id=order.id)
    inventory_service.restore_on_cancel(db, product_id=42, quantity=3, reference_id=order.id)
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Dict, Any

from sqlalchemy import update, func as sa_func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from common.exceptions import (
    InvalidQuantityError, InsufficientStockError, ProductNotFoundError,
)
from common.helpers import now_utc, as_utc, to_money
from config.settings import LOW_STOCK_THRESHOLD
from modules.catalog.models import Product
from modules.inventory.models import Inventory, InventoryTransaction, InventoryReason

logger = logging.getLogger("folio.inventory")


def validate_stock_change(quantity) -> int:
    """A ledger movement must be a positive whole number of units."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError("Quantity must be an integer")
    if quantity <= 0:
        raise InvalidQuantityError("Quantity must be greater than 0")
    return quantity


class InventoryService:
    """Stateless service - call methods with db session."""

    # ------------------------------------------
    # Query
    # ------------------------------------------

    def get_quantity(self, db: Session, product_id: int) -> int:
        qty = db.query(Inventory.quantity).filter(Inventory.product_id == product_id).scalar()
        return qty or 0

    def get_quantities(self, db: Session, product_ids: List[int]) -> Dict[int, int]:
        """Batch lookup {product_id: quantity}; missing rows count as 0."""
        if not product_ids:
            return {}
        rows = db.query(Inventory.product_id, Inventory.quantity).filter(
            Inventory.product_id.in_(product_ids),
        ).all()
        found = {pid: qty for pid, qty in rows}
        return {pid: found.get(pid, 0) for pid in product_ids}

    def get_product_inventory(self, db: Session, product_id: int) -> Dict[str, Any]:
        """Current quantity plus the ledger, newest first."""
        self._require_product(db, product_id)
        transactions = (
            db.query(InventoryTransaction)
            .filter(InventoryTransaction.product_id == product_id)
            .order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
            .all()
        )
        return {
            "product_id": product_id,
            "quantity": self.get_quantity(db, product_id),
            "transactions": transactions,
        }

    def get_stock_history(self, db: Session, product_id: int) -> List[Dict[str, Any]]:
        """Ledger oldest first, each entry annotated with the running stock after it."""
        self._require_product(db, product_id)
        transactions = (
            db.query(InventoryTransaction)
            .filter(InventoryTransaction.product_id == product_id)
            .order_by(InventoryTransaction.created_at.asc(), InventoryTransaction.id.asc())
            .all()
        )
        running = 0
        history = []
        for tx in transactions:
            running += tx.change
            history.append({
                "id": tx.id,
                "change": tx.change,
                "reason": tx.reason,
                "reference_type": tx.reference_type,
                "reference_id": tx.reference_id,
                "created_at": tx.created_at,
                "stock_after": running,
            })
        return history

    def stock_at(self, db: Session, product_id: int, at: Optional[datetime] = None) -> int:
        """Running stock at `at`: sum of every change recorded up to and including it."""
        q = db.query(sa_func.coalesce(sa_func.sum(InventoryTransaction.change), 0)).filter(
            InventoryTransaction.product_id == product_id,
        )
        if at is not None:
            q = q.filter(InventoryTransaction.created_at <= at)
        return int(q.scalar() or 0)

    def get_stock_stats(self, db: Session, product_id: int) -> Dict[str, Any]:
        """Sales/restock statistics derived from the ledger."""
        product = self._require_product(db, product_id)
        current_stock = self.get_quantity(db, product_id)
        transactions = (
            db.query(InventoryTransaction)
            .filter(InventoryTransaction.product_id == product_id)
            .order_by(InventoryTransaction.created_at.asc())
            .all()
        )

        total_sold = 0
        total_restocked = 0
        sales_last_30_days = 0
        thirty_days_ago = now_utc() - timedelta(days=30)

        for tx in transactions:
            if tx.change < 0 and tx.reason == InventoryReason.ORDER:
                total_sold += abs(tx.change)
                if as_utc(tx.created_at) >= thirty_days_ago:
                    sales_last_30_days += abs(tx.change)
            elif tx.change > 0 and tx.reason == InventoryReason.RESTOCK:
                total_restocked += tx.change

        average_daily_sales = round(sales_last_30_days / 30, 2)
        days_until_empty = int(current_stock // average_daily_sales) if average_daily_sales > 0 else None

        if current_stock == 0:
            status = "Out of Stock"
        elif current_stock < LOW_STOCK_THRESHOLD:
            status = "Low Stock"
        else:
            status = "In Stock"

        return {
            "product_id": product.id,
            "title": product.title,
            "current_stock": current_stock,
            "stats": {
                "total_sold": total_sold,
                "total_restocked": total_restocked,
                "sales_last_30_days": sales_last_30_days,
                "average_daily_sales": average_daily_sales,
                "days_until_empty": days_until_empty,
                "stock_value": to_money(current_stock * product.cost_price),
            },
            "status": status,
        }

    # ------------------------------------------
    # Core ledger writer
    # ------------------------------------------

    def _get_or_create_inventory(self, db: Session, product_id: int) -> Inventory:
        inventory = db.query(Inventory).filter(Inventory.product_id == product_id).first()
        if inventory:
            return inventory
        try:
            with db.begin_nested():
                inventory = Inventory(product_id=product_id, quantity=0)
                db.add(inventory)
        except IntegrityError:
            # Lost a race with a concurrent first restock; the row exists now
            inventory = db.query(Inventory).filter(Inventory.product_id == product_id).one()
        return inventory

    def _apply_change(
        self,
        db: Session,
        product_id: int,
        change: int,
        reason: str,
        reference_type: Optional[str] = None,
        reference_id=None,
    ) -> Optional[InventoryTransaction]:
        """
        Move stock by `change` and append the matching ledger row.
        A negative change only applies while quantity >= |change|; the guard is
        part of the UPDATE itself so concurrent writers cannot drive it below zero.
        Returns None when the guard rejects the change.
        """
        stmt = update(Inventory).where(Inventory.product_id == product_id)
        if change < 0:
            stmt = stmt.where(Inventory.quantity >= -change)
        result = db.execute(
            stmt.values(quantity=Inventory.quantity + change)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None

        # Refresh any copy already in the identity map
        db.query(Inventory).filter(Inventory.product_id == product_id).populate_existing().first()

        entry = InventoryTransaction(
            product_id=product_id,
            change=change,
            reason=reason,
            reference_type=reference_type,
            reference_id=str(reference_id) if reference_id is not None else None,
        )
        db.add(entry)
        db.flush()
        return entry

    # ------------------------------------------
    # Public operations
    # ------------------------------------------

    def set_initial_stock(self, db: Session, product_id: int, quantity: int) -> Optional[InventoryTransaction]:
        """Create the inventory row for a new product; a positive amount is logged as initial_stock."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise InvalidQuantityError("Initial stock must be a non-negative integer")
        self._get_or_create_inventory(db, product_id)
        if quantity == 0:
            return None
        entry = self._apply_change(db, product_id, quantity, InventoryReason.INITIAL_STOCK.value)
        logger.info(f"Initial stock for product #{product_id}: {quantity}")
        return entry

    def restock(
        self,
        db: Session,
        product_id: int,
        quantity: int,
        reason: str = InventoryReason.RESTOCK.value,
    ) -> Inventory:
        """
        Add stock, creating the inventory row (at 0) if the product has none.
        `reason` is recorded on the ledger entry; blank falls back to "restock".
        """
        validate_stock_change(quantity)
        reason = (reason or "").strip() or InventoryReason.RESTOCK.value
        self._require_product(db, product_id)
        inventory = self._get_or_create_inventory(db, product_id)
        self._apply_change(db, product_id, quantity, reason)
        logger.info(f"Restocked product #{product_id} by {quantity} ({reason}) -> {inventory.quantity}")
        return inventory

    def decrement(
        self,
        db: Session,
        product_id: int,
        quantity: int,
        reference_id=None,
        product_name: str = "",
    ) -> InventoryTransaction:
        """Take stock for a sale. Raises InsufficientStockError instead of going negative."""
        validate_stock_change(quantity)
        entry = self._apply_change(
            db, product_id, -quantity, InventoryReason.ORDER.value,
            reference_type="order" if reference_id is not None else None,
            reference_id=reference_id,
        )
        if entry is None:
            if not product_name:
                product = db.get(Product, product_id)
                product_name = product.title if product else str(product_id)
            raise InsufficientStockError(product_name, product_id=product_id)
        return entry

    def restore_on_cancel(
        self,
        db: Session,
        product_id: int,
        quantity: int,
        reference_id=None,
    ) -> InventoryTransaction:
        """Put stock from a cancelled order back on the shelf."""
        validate_stock_change(quantity)
        self._get_or_create_inventory(db, product_id)
        return self._apply_change(
            db, product_id, quantity, InventoryReason.CANCEL_RESTORE.value,
            reference_type="order" if reference_id is not None else None,
            reference_id=reference_id,
        )

    # ------------------------------------------
    # Private helpers
    # ------------------------------------------

    def _require_product(self, db: Session, product_id: int) -> Product:
        product = db.get(Product, product_id)
        if not product:
            raise ProductNotFoundError(product_id)
        return product


# Singleton
inventory_service = InventoryService()
