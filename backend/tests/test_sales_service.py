# Overview: Pytest coverage for sale recording, reversal and listing.

"""
Sales Recorder Tests

- A sale either fully happens (sale row + decrement + movement) or not at all
- Insufficient stock is rejected, never clamped
- Cost/total/profit are snapshotted at sale time
- Reversal restores stock exactly and logs a return movement
"""

from datetime import datetime

import pytest

from gebeyanet.errors import InsufficientStockError, NotFoundError, ValidationError
from gebeyanet.extensions import db
from gebeyanet.models import InventoryItem, Sale, StockMovement
from gebeyanet.services import inventory_service, sales_service


def _movements(item_id):
    return db.session.query(StockMovement).filter_by(item_id=item_id).order_by(StockMovement.id.asc()).all()


class TestRecordSale:
    def test_sale_snapshot_and_decrement(self, owner, make_item):
        item = make_item(quantity=10, cost_price_cents=100, selling_price_cents=150)

        sale = sales_service.record_sale(owner.id, item.id, 3, 150)

        assert sale.total_amount_cents == 450
        assert sale.profit_amount_cents == 150
        assert sale.cost_price_cents == 100
        assert sale.payment_method == "cash"
        assert db.session.get(InventoryItem, item.id).quantity == 7

        movement = _movements(item.id)[-1]
        assert movement.movement_type == "sale"
        assert movement.quantity_change == -3
        assert movement.reference_sale_id == sale.id
        assert movement.note == f"Sale #{sale.id}"

    def test_price_defaults_to_selling_price(self, owner, make_item):
        item = make_item(cost_price_cents=100, selling_price_cents=180)
        sale = sales_service.record_sale(owner.id, item.id, 2)
        assert sale.unit_price_cents == 180
        assert sale.total_amount_cents == 360

    def test_insufficient_stock_changes_nothing(self, owner, make_item):
        item = make_item(quantity=5)

        with pytest.raises(InsufficientStockError) as exc:
            sales_service.record_sale(owner.id, item.id, 6, 1000)

        assert exc.value.available == 5
        assert db.session.query(Sale).count() == 0
        assert len(_movements(item.id)) == 1
        assert db.session.get(InventoryItem, item.id).quantity == 5

    def test_selling_exact_stock(self, owner, make_item):
        item = make_item(quantity=4)
        sales_service.record_sale(owner.id, item.id, 4)
        assert db.session.get(InventoryItem, item.id).quantity == 0

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_bad_quantity(self, owner, make_item, quantity):
        item = make_item()
        with pytest.raises(ValidationError):
            sales_service.record_sale(owner.id, item.id, quantity)

    def test_negative_price_rejected(self, owner, make_item):
        item = make_item()
        with pytest.raises(ValidationError):
            sales_service.record_sale(owner.id, item.id, 1, -5)

    def test_unknown_or_foreign_item(self, owner, other_owner, make_item):
        item = make_item(owner_id=other_owner.id)
        with pytest.raises(NotFoundError):
            sales_service.record_sale(owner.id, item.id, 1)
        with pytest.raises(NotFoundError):
            sales_service.record_sale(owner.id, 9999, 1)

    def test_later_price_edit_does_not_touch_sale(self, owner, make_item):
        item = make_item(cost_price_cents=100, selling_price_cents=150)
        sale = sales_service.record_sale(owner.id, item.id, 2)

        inventory_service.update_item(owner.id, item.id, {"cost_price_cents": 120, "selling_price_cents": 200})

        reloaded = sales_service.get_sale(owner.id, sale.id)
        assert reloaded.unit_price_cents == 150
        assert reloaded.cost_price_cents == 100
        assert reloaded.profit_amount_cents == 100

    def test_metadata_is_stored(self, owner, make_item):
        item = make_item()
        when = datetime(2026, 3, 1, 12, 0)
        sale = sales_service.record_sale(
            owner.id, item.id, 1,
            payment_method="mobile_money",
            customer_name="Abebe",
            customer_phone="+251911000000",
            notes="Paid later",
            sale_date=when,
        )
        data = sale.to_dict()
        assert data["payment_method"] == "mobile_money"
        assert data["customer_name"] == "Abebe"
        assert data["sale_date"] == "2026-03-01T12:00:00Z"
        assert data["item_name"] == item.name


class TestReverseSale:
    def test_round_trip_restores_stock(self, owner, make_item):
        item = make_item(quantity=10)
        sale = sales_service.record_sale(owner.id, item.id, 4)

        sales_service.reverse_sale(owner.id, sale.id)

        assert db.session.get(InventoryItem, item.id).quantity == 10
        assert db.session.get(Sale, sale.id) is None

        types = [m.movement_type for m in _movements(item.id)]
        assert types == ["purchase", "sale", "return"]
        ret = _movements(item.id)[-1]
        assert ret.previous_quantity == 6
        assert ret.quantity_change == 4
        assert ret.reference_sale_id == sale.id

    def test_unknown_sale(self, owner):
        with pytest.raises(NotFoundError):
            sales_service.reverse_sale(owner.id, 12345)

    def test_other_owner_cannot_reverse(self, owner, other_owner, make_item):
        item = make_item()
        sale = sales_service.record_sale(owner.id, item.id, 1)
        with pytest.raises(NotFoundError):
            sales_service.reverse_sale(other_owner.id, sale.id)
        assert db.session.get(Sale, sale.id) is not None

    def test_deleted_item_blocks_reversal(self, owner, make_item):
        item = make_item(quantity=5)
        sale = sales_service.record_sale(owner.id, item.id, 2)
        inventory_service.delete_item(owner.id, item.id)

        with pytest.raises(NotFoundError):
            sales_service.reverse_sale(owner.id, sale.id)
        assert db.session.get(Sale, sale.id) is not None
        assert db.session.get(InventoryItem, item.id).quantity == 3


class TestUpdateSale:
    def test_metadata_update(self, owner, make_item):
        item = make_item()
        sale = sales_service.record_sale(owner.id, item.id, 1)
        updated = sales_service.update_sale(owner.id, sale.id, {"customer_name": "Sara", "payment_method": "card"})
        assert updated.customer_name == "Sara"
        assert updated.payment_method == "card"

    def test_amounts_are_immutable(self, owner, make_item):
        item = make_item()
        sale = sales_service.record_sale(owner.id, item.id, 1)
        with pytest.raises(ValidationError):
            sales_service.update_sale(owner.id, sale.id, {"quantity": 5})

    def test_empty_patch(self, owner, make_item):
        item = make_item()
        sale = sales_service.record_sale(owner.id, item.id, 1)
        with pytest.raises(ValidationError):
            sales_service.update_sale(owner.id, sale.id, {})


class TestListing:
    def test_list_and_summary(self, owner, make_item):
        milk = make_item("Milk", quantity=20, cost_price_cents=100, selling_price_cents=150)
        bread = make_item("Bread", quantity=20, cost_price_cents=50, selling_price_cents=80)
        sales_service.record_sale(owner.id, milk.id, 2, sale_date=datetime(2026, 3, 1, 8, 0))
        sales_service.record_sale(owner.id, bread.id, 5, sale_date=datetime(2026, 3, 2, 8, 0))
        sales_service.record_sale(owner.id, milk.id, 1, sale_date=datetime(2026, 3, 3, 8, 0))

        rows, total = sales_service.list_sales(owner.id, limit=2)
        assert total == 3
        assert [s.sale_date.day for s in rows] == [3, 2]

        rows, total = sales_service.list_sales(owner.id, item_id=milk.id)
        assert total == 2

        rows, total = sales_service.list_sales(owner.id, start=datetime(2026, 3, 2))
        assert total == 2

        summary = sales_service.sales_summary(owner.id)
        assert summary == {
            "total_sales": 3,
            "total_items_sold": 8,
            "total_revenue_cents": 850,
            "total_profit_cents": 300,
            "average_sale_cents": 283,
        }

    def test_empty_summary(self, owner):
        assert sales_service.sales_summary(owner.id)["average_sale_cents"] == 0
