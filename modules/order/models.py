"""
Order Module - Models
======================
Order with price snapshot per item for audit trail.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, ForeignKey, DateTime,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base
from common.helpers import now_utc


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


TERMINAL_ORDER_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(String, default=OrderStatus.PENDING.value, nullable=False)
    payment_status = Column(String, default="pending", nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    shipping_address_id = Column(Integer, ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True)
    shipping_method = Column(String, nullable=True)
    shipping_cost = Column(Numeric(10, 2), default=0, nullable=False)
    # Points at the current Payment row; payments.order_id is the real FK
    payment_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")
    shipping = relationship("Shipping", back_populates="order", uselist=False, cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="order", cascade="all, delete-orphan", order_by="Payment.id")
    payment = relationship(
        "Payment",
        primaryjoin="foreign(Order.payment_id) == Payment.id",
        uselist=False,
        viewonly=True,
    )
    shipping_address = relationship("Address")

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_order_total_nonneg"),
    )

    @property
    def subtotal(self):
        return self.total - (self.shipping_cost or 0)

    @property
    def is_terminal(self) -> bool:
        return self.status in {s.value for s in TERMINAL_ORDER_STATUSES}


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Price snapshot at time of purchase
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_item_qty"),
    )

    @property
    def line_total(self):
        return self.price * self.quantity
