"""
Shared fixtures: in-memory SQLite per test, factories, API client.

The API client shares the test's Session, so data created by factories is
visible to requests and request side effects are visible to assertions.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_PROCESS_PAYMENTS"] = "false"
os.environ["PAYMENT_GATEWAY_DELAY_SECONDS"] = "0"
os.environ["BCRYPT_ROUNDS"] = "4"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from config.database import Base, get_db, enable_sqlite_transactions
from common.security import create_token, hash_password
from modules.catalog.models import Product
from modules.catalog.service import catalog_service
from modules.inventory.service import inventory_service
from modules.payment.gateways import (
    BaseGateway, GatewayChargeResult, GatewayRefundResult,
)
from modules.user.models import User, Address


# ==========================================
# Database
# ==========================================

@pytest.fixture
def engine():
    eng = enable_sqlite_transactions(create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    ))
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


# ==========================================
# Factories
# ==========================================

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(email=None, password="secret123", name="Reader", is_admin=False, user_id=None):
        counter["n"] += 1
        email = email or f"reader{counter['n']}@folio.test"
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            is_admin=is_admin,
        )
        if user_id is not None:
            user.id = user_id
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_address(db):
    def _make(user, city="Portland"):
        address = Address(user_id=user.id, line1="1 Main St", city=city, postal_code="97201")
        db.add(address)
        db.commit()
        return address

    return _make


@pytest.fixture
def make_product(db):
    counter = {"n": 0}

    def _make(stock=10, selling_price="12.50", cost_price="6.00", title=None, weight_grams=0, product_id=None):
        counter["n"] += 1
        title = title or f"Book {counter['n']}"
        if product_id is None:
            product = catalog_service.create_product(
                db, title=title, selling_price=selling_price, cost_price=cost_price,
                weight_grams=weight_grams, initial_stock=stock,
            )
        else:
            product = Product(
                id=product_id, title=title,
                selling_price=Decimal(selling_price), cost_price=Decimal(cost_price),
                weight_grams=weight_grams,
            )
            db.add(product)
            db.flush()
            inventory_service.set_initial_stock(db, product.id, stock)
        db.commit()
        return product

    return _make


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_token({'sub': str(user.id)})}"}


# ==========================================
# Payments
# ==========================================

class ScriptedGateway(BaseGateway):
    """Returns the given outcomes in order; declines once they run out."""
    name = "scripted"

    def __init__(self, outcomes=()):
        self.outcomes = list(outcomes)
        self.charges = 0
        self.refunds = []

    def charge(self, req):
        self.charges += 1
        approved = self.outcomes.pop(0) if self.outcomes else False
        if approved:
            return GatewayChargeResult(success=True, transaction_id=f"txn_test_{self.charges}")
        return GatewayChargeResult(success=False, error_message="Card declined")

    def refund(self, transaction_id, amount, reason=""):
        self.refunds.append((transaction_id, amount, reason))
        return GatewayRefundResult(success=True)


@pytest.fixture
def scripted_gateway():
    return ScriptedGateway
