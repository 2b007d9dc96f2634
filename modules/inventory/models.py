"""
Inventory Module - Models
==========================
Per-product stock counter plus an append-only ledger of every change.

Invariant: Inventory.quantity == SUM(InventoryTransaction.change) per product.
Both rows are only ever written together by the inventory service.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey,
    CheckConstraint, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base
from common.helpers import now_utc


class InventoryReason(str, enum.Enum):
    INITIAL_STOCK = "initial_stock"
    RESTOCK = "restock"
    ORDER = "order"
    CANCEL_RESTORE = "cancel-restore"


class Inventory(Base):
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), unique=True, nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="inventory")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_qty_nonneg"),
    )


class InventoryTransaction(Base):
    __tablename__ = "inventory_transactions"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    change = Column(Integer, nullable=False)
    reason = Column(String, nullable=False)
    reference_type = Column(String, nullable=True)   # e.g. "order"
    reference_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)

    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("change <> 0", name="ck_inventory_txn_nonzero"),
        Index("ix_inventory_txn_product_created", "product_id", "created_at"),
    )
