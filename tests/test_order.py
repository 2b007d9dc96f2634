from decimal import Decimal

import pytest

from common.exceptions import (
    AddressNotFoundError, EmptyOrderError, DuplicateProductError,
    InsufficientStockError, OrderNotCancellableError, OrderNotFoundError,
    InvalidShippingMethodError, InvalidPaymentMethodError, ProductNotFoundError,
)
from config.database import transactional
from modules.cart.models import CartItem
from modules.cart.service import cart_service
from modules.inventory.models import Inventory, InventoryTransaction
from modules.inventory.service import inventory_service
from modules.order.models import Order, OrderItem
from modules.order.service import order_service, OrderService
from modules.payment.models import Payment
from modules.shipping.models import Shipping


@pytest.fixture
def buyer(make_user, make_address):
    user = make_user()
    address = make_address(user)
    return user, address


def fill_cart(db, user, *lines):
    with transactional(db):
        for product, qty in lines:
            cart_service.add_item(db, None, product.id, qty, user_id=user.id)


def stock(db, product):
    return inventory_service.get_quantity(db, product.id)


class TestCreateOrder:

    def test_scenario_express_checkout_from_cart(self, db, make_user, make_address, make_product):
        user = make_user(user_id=7)
        address = make_address(user)
        product = make_product(stock=5, product_id=42, selling_price="10.00", cost_price="4.00")
        fill_cart(db, user, (product, 3))
        product.selling_price = Decimal("11.00")
        db.commit()

        with transactional(db):
            order = order_service.create_order(db, 7, address.id, shipping_method="express")

        assert order.status == "pending"
        assert order.shipping_cost == Decimal("13.98")
        assert order.total == Decimal("3") * Decimal("11.00") + Decimal("13.98")
        assert [(i.product_id, i.quantity, i.price) for i in order.items] == [(42, 3, Decimal("11.00"))]

        assert stock(db, product) == 2
        order_txs = db.query(InventoryTransaction).filter_by(product_id=42, reason="order").all()
        assert [(t.change, t.reference_id) for t in order_txs] == [(-3, str(order.id))]

        shipping = db.query(Shipping).filter_by(order_id=order.id).one()
        payment = db.query(Payment).filter_by(order_id=order.id).one()
        assert shipping.shipping_status == "pending"
        assert payment.payment_status == "pending"
        assert payment.amount == order.total
        assert order.payment_id == payment.id

        assert db.query(CartItem).count() == 0

    def test_direct_items_leave_cart_alone(self, db, buyer, make_product):
        user, address = buyer
        a = make_product(stock=5)
        b = make_product(stock=5)
        fill_cart(db, user, (a, 1))

        with transactional(db):
            order = order_service.create_order(
                db, user.id, address.id,
                items=[{"product_id": b.id, "quantity": 2}],
            )
        assert [(i.product_id, i.quantity) for i in order.items] == [(b.id, 2)]
        assert db.query(CartItem).count() == 1
        assert stock(db, a) == 5
        assert stock(db, b) == 3

    def test_shipping_cost_counts_lines_and_weight(self, db, buyer, make_product):
        user, address = buyer
        a = make_product(stock=5, weight_grams=600)
        b = make_product(stock=5, weight_grams=400)
        with transactional(db):
            order = order_service.create_order(
                db, user.id, address.id, shipping_method="standard",
                items=[{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 1}],
            )
        # 5.99 + 1.50 for the second line + 2 x 2.50 for 1600 g (two started 500 g steps over 1 kg)
        assert order.shipping_cost == Decimal("12.49")

    def test_injected_shipping_cost_function(self, db, buyer, make_product):
        user, address = buyer
        product = make_product(stock=5, selling_price="10.00", cost_price="1.00")
        calls = []

        def flat_rate(method, item_count, total_weight):
            calls.append((method, item_count, total_weight))
            return Decimal("1.00")

        service = OrderService(shipping_cost_fn=flat_rate)
        with transactional(db):
            order = service.create_order(db, user.id, address.id, items=[{"product_id": product.id, "quantity": 1}])
        assert calls == [("standard", 1, 0)]
        assert order.total == Decimal("11.00")

    def test_address_must_belong_to_user(self, db, buyer, make_user, make_address, make_product):
        user, _ = buyer
        other_address = make_address(make_user())
        product = make_product(stock=5)
        with pytest.raises(AddressNotFoundError):
            order_service.create_order(db, user.id, other_address.id, items=[{"product_id": product.id, "quantity": 1}])

    def test_empty_cart(self, db, buyer):
        user, address = buyer
        with pytest.raises(EmptyOrderError):
            order_service.create_order(db, user.id, address.id)

    def test_duplicate_products(self, db, buyer, make_product):
        user, address = buyer
        product = make_product(stock=10)
        with pytest.raises(DuplicateProductError):
            order_service.create_order(db, user.id, address.id, items=[
                {"product_id": product.id, "quantity": 1},
                {"product_id": product.id, "quantity": 2},
            ])

    def test_unknown_product(self, db, buyer):
        user, address = buyer
        with pytest.raises(ProductNotFoundError):
            order_service.create_order(db, user.id, address.id, items=[{"product_id": 999, "quantity": 1}])

    def test_insufficient_stock_names_product(self, db, buyer, make_product):
        user, address = buyer
        product = make_product(stock=2, title="Solaris")
        with pytest.raises(InsufficientStockError) as exc:
            order_service.create_order(db, user.id, address.id, items=[{"product_id": product.id, "quantity": 3}])
        assert "Solaris" in exc.value.message

    def test_invalid_methods(self, db, buyer, make_product):
        user, address = buyer
        product = make_product(stock=2)
        items = [{"product_id": product.id, "quantity": 1}]
        with pytest.raises(InvalidShippingMethodError):
            order_service.create_order(db, user.id, address.id, shipping_method="teleport", items=items)
        with pytest.raises(InvalidPaymentMethodError):
            order_service.create_order(db, user.id, address.id, payment_method="barter", items=items)


class TestAtomicity:

    def test_failure_on_third_of_four_decrements_rolls_back_everything(self, db, buyer, make_product, monkeypatch):
        user, address = buyer
        products = [make_product(stock=5) for _ in range(4)]
        fill_cart(db, user, *[(p, 1) for p in products])
        ledger_before = db.query(InventoryTransaction).count()

        real_decrement = inventory_service.decrement
        calls = {"n": 0}

        def flaky_decrement(db_, product_id, quantity, **kwargs):
            calls["n"] += 1
            if calls["n"] == 3:
                raise InsufficientStockError("third line", product_id=product_id)
            return real_decrement(db_, product_id, quantity, **kwargs)

        monkeypatch.setattr(inventory_service, "decrement", flaky_decrement)

        with pytest.raises(InsufficientStockError):
            with transactional(db):
                order_service.create_order(db, user.id, address.id)

        assert calls["n"] == 3
        assert db.query(Order).count() == 0
        assert db.query(OrderItem).count() == 0
        assert db.query(Shipping).count() == 0
        assert db.query(Payment).count() == 0
        assert db.query(InventoryTransaction).count() == ledger_before
        assert [q for (q,) in db.query(Inventory.quantity).order_by(Inventory.product_id)] == [5, 5, 5, 5]
        assert db.query(CartItem).count() == 4

    def test_stale_stock_read_is_caught_at_write(self, db, buyer, make_product, monkeypatch):
        user, address = buyer
        product = make_product(stock=2)
        # Another checkout took the stock after this one read it
        monkeypatch.setattr(inventory_service, "get_quantity", lambda db_, pid: 10)

        with pytest.raises(InsufficientStockError):
            with transactional(db):
                order_service.create_order(db, user.id, address.id, items=[{"product_id": product.id, "quantity": 3}])

        monkeypatch.undo()
        assert stock(db, product) == 2
        assert db.query(Order).count() == 0

    def test_sequential_checkouts_cannot_oversell(self, db, make_user, make_address, make_product):
        product = make_product(stock=5)
        buyers = []
        for _ in range(2):
            user = make_user()
            buyers.append((user, make_address(user)))

        with transactional(db):
            order_service.create_order(db, buyers[0][0].id, buyers[0][1].id,
                                       items=[{"product_id": product.id, "quantity": 3}])
        with pytest.raises(InsufficientStockError):
            with transactional(db):
                order_service.create_order(db, buyers[1][0].id, buyers[1][1].id,
                                           items=[{"product_id": product.id, "quantity": 3}])
        assert stock(db, product) == 2
        assert inventory_service.stock_at(db, product.id) == 2


class TestStockConservation:

    def test_counter_matches_ledger_through_mixed_operations(self, db, buyer, make_product):
        user, address = buyer
        product = make_product(stock=5)

        def assert_conserved(expected):
            assert stock(db, product) == expected
            assert inventory_service.stock_at(db, product.id) == inventory_service.get_quantity(db, product.id)

        assert_conserved(5)

        with transactional(db):
            inventory_service.restock(db, product.id, 3)
        assert_conserved(8)

        with transactional(db):
            order = order_service.create_order(
                db, user.id, address.id, items=[{"product_id": product.id, "quantity": 6}],
            )
        assert_conserved(2)

        with pytest.raises(InsufficientStockError):
            with transactional(db):
                order_service.create_order(
                    db, user.id, address.id, items=[{"product_id": product.id, "quantity": 3}],
                )
        assert_conserved(2)

        with transactional(db):
            order_service.cancel_order(db, order.id, user.id)
        assert_conserved(8)

        with transactional(db):
            order_service.create_order(
                db, user.id, address.id, items=[{"product_id": product.id, "quantity": 8}],
            )
        assert_conserved(0)


class TestCancel:

    def _order(self, db, buyer, product, qty=3):
        user, address = buyer
        with transactional(db):
            return order_service.create_order(
                db, user.id, address.id, shipping_method="express",
                items=[{"product_id": product.id, "quantity": qty}],
            )

    def test_cancel_restores_stock_and_cancels_shipping(self, db, buyer, make_product):
        product = make_product(stock=5)
        order = self._order(db, buyer, product)
        assert stock(db, product) == 2

        with transactional(db):
            cancelled = order_service.cancel_order(db, order.id, buyer[0].id)

        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_at is not None
        assert stock(db, product) == 5
        last = db.query(InventoryTransaction).order_by(InventoryTransaction.id.desc()).first()
        assert (last.change, last.reason) == (3, "cancel-restore")
        assert db.query(Shipping).filter_by(order_id=order.id).one().shipping_status == "cancelled"
        assert inventory_service.stock_at(db, product.id) == 5

    def test_cancel_twice_conflicts(self, db, buyer, make_product):
        product = make_product(stock=5)
        order = self._order(db, buyer, product)
        with transactional(db):
            order_service.cancel_order(db, order.id, buyer[0].id)
        with pytest.raises(OrderNotCancellableError):
            with transactional(db):
                order_service.cancel_order(db, order.id, buyer[0].id)
        assert stock(db, product) == 5

    def test_cannot_cancel_someone_elses_order(self, db, buyer, make_user, make_product):
        product = make_product(stock=5)
        order = self._order(db, buyer, product)
        with pytest.raises(OrderNotFoundError):
            order_service.cancel_order(db, order.id, make_user().id)


class TestQueries:

    def test_get_order_scoped_to_user(self, db, buyer, make_user, make_product):
        user, address = buyer
        product = make_product(stock=5)
        with transactional(db):
            order = order_service.create_order(db, user.id, address.id, items=[{"product_id": product.id, "quantity": 1}])
        found = order_service.get_order(db, order.id, user.id)
        assert found.shipping.shipping_status == "pending"
        assert found.payment.payment_status == "pending"
        with pytest.raises(OrderNotFoundError):
            order_service.get_order(db, order.id, make_user().id)

    def test_user_orders_paginated_newest_first(self, db, buyer, make_product):
        user, address = buyer
        product = make_product(stock=10)
        ids = []
        for _ in range(3):
            with transactional(db):
                ids.append(order_service.create_order(
                    db, user.id, address.id, items=[{"product_id": product.id, "quantity": 1}],
                ).id)

        page1 = order_service.get_user_orders(db, user.id, page=1, limit=2)
        page2 = order_service.get_user_orders(db, user.id, page=2, limit=2)
        assert [o.id for o in page1["data"]] == [ids[2], ids[1]]
        assert [o.id for o in page2["data"]] == [ids[0]]
        assert page1["pagination"] == {"total": 3, "page": 1, "limit": 2, "total_pages": 2}
