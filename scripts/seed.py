"""
Folio - Demo Data Seeder
==========================
Creates the schema and seeds a demo admin, a demo customer with an
address, and a handful of books with initial stock.

Usage:
    python scripts/seed.py          # Seed (idempotent: existing rows are kept)
    python scripts/seed.py --reset  # Drop all tables and reseed
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import SessionLocal, Base, engine
from common.security import hash_password
from modules.user.models import User, Address
from modules.catalog.models import Product
from modules.catalog.service import catalog_service
# Remaining tables must be registered before create_all
from modules.cart.models import Cart  # noqa: F401
from modules.order.models import Order  # noqa: F401
from modules.shipping.models import Shipping  # noqa: F401
from modules.payment.models import Payment  # noqa: F401


USERS = [
    {"name": "Store Admin", "email": "admin@folio.test", "password": "admin123", "is_admin": True},
    {"name": "Demo Reader", "email": "reader@folio.test", "password": "reader123", "is_admin": False},
]

BOOKS = [
    {"title": "The Left Hand of Darkness", "author": "Ursula K. Le Guin",
     "selling_price": "14.99", "cost_price": "7.50", "weight_grams": 320, "initial_stock": 25},
    {"title": "Invisible Cities", "author": "Italo Calvino",
     "selling_price": "12.50", "cost_price": "6.00", "weight_grams": 210, "initial_stock": 12},
    {"title": "The Name of the Rose", "author": "Umberto Eco",
     "selling_price": "18.00", "cost_price": "9.25", "weight_grams": 640, "initial_stock": 8},
    {"title": "Gödel, Escher, Bach", "author": "Douglas Hofstadter",
     "selling_price": "24.95", "cost_price": "13.00", "weight_grams": 1150, "initial_stock": 5},
    {"title": "A Wizard of Earthsea", "author": "Ursula K. Le Guin",
     "selling_price": "9.99", "cost_price": "4.10", "weight_grams": 180, "initial_stock": 0},
]


def ensure_tables(reset: bool = False):
    if reset:
        print("[0/3] Dropping all tables...")
        Base.metadata.drop_all(bind=engine)
    print("[0/3] Ensuring all tables exist...")
    Base.metadata.create_all(bind=engine)


def seed(reset: bool = False):
    ensure_tables(reset)
    db = SessionLocal()
    try:
        print("\n[1/3] Users")
        for data in USERS:
            existing = db.query(User).filter(User.email == data["email"]).first()
            if existing:
                print(f"  = exists: {data['email']}")
                continue
            db.add(User(
                name=data["name"],
                email=data["email"],
                password_hash=hash_password(data["password"]),
                is_admin=data["is_admin"],
            ))
            print(f"  + {data['email']} / {data['password']}")
        db.flush()

        print("\n[2/3] Addresses")
        reader = db.query(User).filter(User.email == "reader@folio.test").one()
        if not reader.addresses:
            db.add(Address(user_id=reader.id, line1="12 Library Lane", city="Portland",
                           postal_code="97201", country="US", is_default=True))
            print("  + default address for reader@folio.test")
        else:
            print("  = exists")

        print("\n[3/3] Books")
        for data in BOOKS:
            if db.query(Product.id).filter(Product.title == data["title"]).first():
                print(f"  = exists: {data['title']}")
                continue
            catalog_service.create_product(db, **data)
            print(f"  + {data['title']} (stock {data['initial_stock']})")

        db.commit()
        print("\nDone.")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed(reset="--reset" in sys.argv)
