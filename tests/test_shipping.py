from decimal import Decimal

import pytest

from common.exceptions import (
    InvalidShippingMethodError, InvalidStatusError, NotFoundError, ShipmentClosedError,
)
from config.database import transactional
from modules.order.service import order_service
from modules.payment.service import PaymentService
from modules.shipping.service import calculate_shipping_cost, shipping_service


class TestShippingCost:

    @pytest.mark.parametrize("method, expected", [
        ("standard", "5.99"),
        ("express", "13.98"),
        ("overnight", "20.98"),
    ])
    def test_method_surcharge(self, method, expected):
        assert calculate_shipping_cost(method, 1, 0) == Decimal(expected)

    def test_additional_lines(self):
        assert calculate_shipping_cost("standard", 3, 0) == Decimal("8.99")

    @pytest.mark.parametrize("grams, expected", [
        (1000, "5.99"),
        (1001, "8.49"),
        (1500, "8.49"),
        (1501, "10.99"),
    ])
    def test_weight_steps_over_one_kilo(self, grams, expected):
        assert calculate_shipping_cost("standard", 1, grams) == Decimal(expected)

    def test_unknown_method(self):
        with pytest.raises(InvalidShippingMethodError):
            calculate_shipping_cost("pigeon", 1, 0)


class TestShippingStatus:

    @pytest.fixture
    def shipped_order(self, db, make_user, make_address, make_product):
        user = make_user()
        address = make_address(user)
        product = make_product(stock=5)
        with transactional(db):
            order = order_service.create_order(
                db, user.id, address.id, items=[{"product_id": product.id, "quantity": 1}],
            )
        return order, shipping_service.get_shipping_by_order_id(db, order.id)

    def test_shipped_stamps_and_cascades(self, db, shipped_order):
        order, shipping = shipped_order
        with transactional(db):
            shipping_service.update_shipping_status(db, shipping.id, "shipped", tracking_number="1Z999")
        db.refresh(shipping)
        db.refresh(order)
        assert shipping.shipping_status == "shipped"
        assert shipping.tracking_number == "1Z999"
        assert shipping.shipped_at is not None
        assert order.status == "shipped"

    def test_delivered_cascades(self, db, shipped_order):
        order, shipping = shipped_order
        with transactional(db):
            shipping_service.update_shipping_status(db, shipping.id, "delivered")
        db.refresh(order)
        assert order.status == "delivered"
        assert order.is_terminal

    def test_cancelled_order_cannot_be_shipped(self, db, shipped_order):
        order, shipping = shipped_order
        with transactional(db):
            order_service.cancel_order(db, order.id, order.user_id)

        with pytest.raises(ShipmentClosedError):
            with transactional(db):
                shipping_service.update_shipping_status(db, shipping.id, "shipped")

        db.refresh(order)
        db.refresh(shipping)
        assert order.status == "cancelled"
        assert shipping.shipping_status == "cancelled"
        assert shipping.shipped_at is None

    def test_refunded_order_cannot_be_delivered(self, db, shipped_order, scripted_gateway):
        order, shipping = shipped_order
        service = PaymentService(gateway=scripted_gateway([True]))
        with transactional(db):
            service.process_payment(db, order.payment_id)
        with transactional(db):
            service.process_refund(db, order.payment_id)

        with pytest.raises(ShipmentClosedError):
            shipping_service.update_shipping_status(db, shipping.id, "delivered")
        db.refresh(order)
        assert order.status == "refunded"

    def test_delivered_is_final(self, db, shipped_order):
        order, shipping = shipped_order
        with transactional(db):
            shipping_service.update_shipping_status(db, shipping.id, "delivered")
        with pytest.raises(ShipmentClosedError):
            shipping_service.update_shipping_status(db, shipping.id, "shipped")
        db.refresh(order)
        assert order.status == "delivered"

    def test_invalid_status(self, db, shipped_order):
        _, shipping = shipped_order
        with pytest.raises(InvalidStatusError):
            shipping_service.update_shipping_status(db, shipping.id, "lost")

    def test_missing_record(self, db):
        with pytest.raises(NotFoundError):
            shipping_service.get_shipping_by_order_id(db, 9999)
