"""
Catalog Module - Service Layer
================================
Minimal product creation and lookup. Full catalog management lives elsewhere;
this exists for seeding and for the checkout pipeline's product checks.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.orm import Session

from common.exceptions import InvalidPriceError, ProductNotFoundError
from common.helpers import to_money
from modules.catalog.models import Product
from modules.inventory.service import inventory_service

logger = logging.getLogger("folio.catalog")


def validate_prices(selling_price, cost_price):
    """Both prices must be non-negative and selling_price >= cost_price. Returns (selling, cost)."""
    try:
        selling = Decimal(str(selling_price))
        cost = Decimal(str(cost_price))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPriceError("Prices must be numbers")
    if cost < 0 or selling < 0:
        raise InvalidPriceError("Prices cannot be negative")
    if selling < cost:
        raise InvalidPriceError("Selling price must be greater than or equal to cost price")
    return to_money(selling), to_money(cost)


class CatalogService:

    def get_product(self, db: Session, product_id: int) -> Product:
        product = db.get(Product, product_id)
        if not product:
            raise ProductNotFoundError(product_id)
        return product

    def create_product(
        self,
        db: Session,
        title: str,
        selling_price,
        cost_price,
        author: Optional[str] = None,
        description: Optional[str] = None,
        images: Optional[list] = None,
        metadata: Optional[dict] = None,
        weight_grams: int = 0,
        initial_stock: int = 0,
    ) -> Product:
        """Create a product with its inventory row; positive initial stock goes through the ledger."""
        selling, cost = validate_prices(selling_price, cost_price)
        product = Product(
            title=title,
            author=author,
            selling_price=selling,
            cost_price=cost,
            description=description,
            images=images or [],
            metadata_=metadata or {},
            weight_grams=weight_grams or 0,
        )
        db.add(product)
        db.flush()

        inventory_service.set_initial_stock(db, product.id, initial_stock)
        logger.info(f"Product #{product.id} created: {title} (stock {initial_stock})")
        return product


catalog_service = CatalogService()
