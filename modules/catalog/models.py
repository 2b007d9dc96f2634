"""
Catalog Module - Models
========================
Books sold as products. Prices are captured onto cart and order lines,
so a product row can change price without rewriting history.
"""

from sqlalchemy import (
    Column, Integer, String, Text, Numeric, DateTime, JSON,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    author = Column(String, nullable=True)
    selling_price = Column(Numeric(10, 2), nullable=False)
    cost_price = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)
    images = Column(JSON, nullable=True)
    weight_grams = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    inventory = relationship("Inventory", back_populates="product", uselist=False)

    __table_args__ = (
        CheckConstraint("selling_price >= cost_price", name="ck_product_price_margin"),
        CheckConstraint("cost_price >= 0", name="ck_product_cost_nonneg"),
    )

    @property
    def stock(self) -> int:
        return self.inventory.quantity if self.inventory else 0

    @property
    def primary_image(self):
        return self.images[0] if self.images else None
