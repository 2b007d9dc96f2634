from datetime import timedelta

import pytest

from common.exceptions import InsufficientStockError, InvalidQuantityError, ProductNotFoundError
from common.helpers import now_utc
from config.database import transactional
from modules.inventory.models import Inventory, InventoryTransaction
from modules.inventory.service import inventory_service, validate_stock_change


def ledger_sum(db, product_id):
    return inventory_service.stock_at(db, product_id)


def quantity(db, product_id):
    return inventory_service.get_quantity(db, product_id)


class TestValidateStockChange:

    @pytest.mark.parametrize("value", [0, -1, 1.5, "3", True, None])
    def test_rejects_non_positive_or_non_integer(self, value):
        with pytest.raises(InvalidQuantityError):
            validate_stock_change(value)

    def test_accepts_positive_integer(self):
        assert validate_stock_change(4) == 4


class TestRestock:

    def test_initial_stock_is_logged(self, db, make_product):
        product = make_product(stock=5)
        txs = db.query(InventoryTransaction).filter_by(product_id=product.id).all()
        assert [(t.change, t.reason) for t in txs] == [(5, "initial_stock")]
        assert quantity(db, product.id) == 5

    def test_restock_adds_and_logs(self, db, make_product):
        product = make_product(stock=5)
        with transactional(db):
            inventory = inventory_service.restock(db, product.id, 7)
        assert inventory.quantity == 12
        last = db.query(InventoryTransaction).order_by(InventoryTransaction.id.desc()).first()
        assert (last.change, last.reason) == (7, "restock")
        assert ledger_sum(db, product.id) == 12

    def test_restock_records_given_reason(self, db, make_product):
        product = make_product(stock=2)
        with transactional(db):
            inventory_service.restock(db, product.id, 4, reason="supplier delivery")
        with transactional(db):
            inventory_service.restock(db, product.id, 1, reason="  ")
        reasons = [
            r for (r,) in db.query(InventoryTransaction.reason)
            .filter_by(product_id=product.id).order_by(InventoryTransaction.id)
        ]
        assert reasons == ["initial_stock", "supplier delivery", "restock"]
        assert quantity(db, product.id) == 7

    def test_restock_creates_missing_inventory_row(self, db, make_product):
        product = make_product(stock=0)
        db.query(Inventory).filter_by(product_id=product.id).delete()
        db.commit()

        with transactional(db):
            inventory_service.restock(db, product.id, 3)
        assert quantity(db, product.id) == 3

    def test_restock_unknown_product(self, db):
        with pytest.raises(ProductNotFoundError):
            inventory_service.restock(db, 9999, 3)

    def test_restock_rejects_zero(self, db, make_product):
        product = make_product(stock=2)
        with pytest.raises(InvalidQuantityError):
            inventory_service.restock(db, product.id, 0)


class TestDecrement:

    def test_decrement_writes_negative_order_entry(self, db, make_product):
        product = make_product(stock=5)
        with transactional(db):
            entry = inventory_service.decrement(db, product.id, 3, reference_id=77)
        assert (entry.change, entry.reason, entry.reference_id) == (-3, "order", "77")
        assert quantity(db, product.id) == 2

    def test_decrement_never_goes_negative(self, db, make_product):
        product = make_product(stock=5, title="Dune")
        with pytest.raises(InsufficientStockError) as exc:
            with transactional(db):
                inventory_service.decrement(db, product.id, 6)
        assert "Dune" in exc.value.message
        assert quantity(db, product.id) == 5
        assert ledger_sum(db, product.id) == 5

    def test_exhausting_stock_then_one_more_fails(self, db, make_product):
        product = make_product(stock=4)
        with transactional(db):
            inventory_service.decrement(db, product.id, 2)
            inventory_service.decrement(db, product.id, 2)
        with pytest.raises(InsufficientStockError):
            with transactional(db):
                inventory_service.decrement(db, product.id, 1)
        assert quantity(db, product.id) == 0

    def test_restore_on_cancel(self, db, make_product):
        product = make_product(stock=5)
        with transactional(db):
            inventory_service.decrement(db, product.id, 3, reference_id=1)
            inventory_service.restore_on_cancel(db, product.id, 3, reference_id=1)
        assert quantity(db, product.id) == 5
        reasons = [t.reason for t in db.query(InventoryTransaction).order_by(InventoryTransaction.id)]
        assert reasons == ["initial_stock", "order", "cancel-restore"]


class TestReports:

    def test_history_running_totals(self, db, make_product):
        product = make_product(stock=10)
        with transactional(db):
            inventory_service.decrement(db, product.id, 4)
            inventory_service.restock(db, product.id, 6)
        history = inventory_service.get_stock_history(db, product.id)
        assert [h["stock_after"] for h in history] == [10, 6, 12]
        assert history[-1]["stock_after"] == quantity(db, product.id)

    def test_stock_at_timestamp(self, db, make_product):
        product = make_product(stock=10)
        with transactional(db):
            inventory_service.decrement(db, product.id, 4)
        first = db.query(InventoryTransaction).filter_by(reason="initial_stock").one()
        first.created_at = now_utc() - timedelta(days=2)
        db.commit()

        assert inventory_service.stock_at(db, product.id, now_utc() - timedelta(days=1)) == 10
        assert inventory_service.stock_at(db, product.id) == 6

    def test_product_inventory_newest_first(self, db, make_product):
        product = make_product(stock=3)
        with transactional(db):
            inventory_service.restock(db, product.id, 2)
        report = inventory_service.get_product_inventory(db, product.id)
        assert report["quantity"] == 5
        assert [t.change for t in report["transactions"]] == [2, 3]

    def test_stats(self, db, make_product):
        product = make_product(stock=20, cost_price="5.00", selling_price="9.00")
        with transactional(db):
            inventory_service.decrement(db, product.id, 12)
            inventory_service.restock(db, product.id, 1)

        stats = inventory_service.get_stock_stats(db, product.id)
        assert stats["current_stock"] == 9
        assert stats["status"] == "Low Stock"
        assert stats["stats"]["total_sold"] == 12
        assert stats["stats"]["total_restocked"] == 1
        assert stats["stats"]["sales_last_30_days"] == 12
        assert stats["stats"]["average_daily_sales"] == 0.4
        assert stats["stats"]["days_until_empty"] == 22
        assert float(stats["stats"]["stock_value"]) == 45.0

    def test_stats_status_bands(self, db, make_product):
        assert inventory_service.get_stock_stats(db, make_product(stock=0).id)["status"] == "Out of Stock"
        assert inventory_service.get_stock_stats(db, make_product(stock=10).id)["status"] == "In Stock"
