# Overview: Pytest coverage for expired-stock write-offs.

from datetime import date, datetime

import pytest

from gebeyanet.errors import NotFoundError, ValidationError
from gebeyanet.extensions import db
from gebeyanet.models import InventoryItem, Sale, StockMovement
from gebeyanet.services import inventory_service, waste_service
from gebeyanet.services.alert_service import ALERT_EXPIRED, generate_alerts
from gebeyanet.services.expiry_service import item_view

NOW = datetime(2026, 3, 10, 9, 30, 0)
YESTERDAY = date(2026, 3, 9)


def _waste_movements(owner_id):
    return db.session.query(StockMovement).filter_by(owner_id=owner_id, movement_type="waste").all()


def test_expired_item_is_visible_everywhere(owner, make_item):
    item = make_item("Yogurt", quantity=4, expiry_date=YESTERDAY)

    view = item_view(item, NOW)
    assert view["is_expired"] is True
    assert view["days_until_expiry"] == -1
    assert view["priority"] == "high"

    alerts = generate_alerts(inventory_service.active_items(owner.id), NOW)
    assert [(a.item_id, a.alert_type) for a in alerts] == [(item.id, ALERT_EXPIRED)]

    assert [i.id for i in waste_service.expired_candidates(owner.id, NOW)] == [item.id]


class TestRemovePartialQuantity:
    def test_writes_off_as_waste(self, owner, make_item):
        item = make_item(quantity=10, expiry_date=YESTERDAY)

        item, movement = waste_service.remove_partial_quantity(owner.id, item.id, 4, NOW)

        assert item.quantity == 6
        assert movement.movement_type == "waste"
        assert movement.quantity_change == -4
        assert movement.note == "Expired stock removed"
        assert db.session.query(Sale).count() == 0

    def test_clamps_to_stock(self, owner, make_item):
        item = make_item(quantity=3, expiry_date=YESTERDAY)
        item, movement = waste_service.remove_partial_quantity(owner.id, item.id, 10, NOW)
        assert item.quantity == 0
        assert movement.quantity_change == -3

    @pytest.mark.parametrize("requested", [0, -3])
    def test_rejects_non_positive_request(self, owner, make_item, requested):
        item = make_item(quantity=4, expiry_date=YESTERDAY)
        with pytest.raises(ValidationError):
            waste_service.remove_partial_quantity(owner.id, item.id, requested, NOW)
        assert db.session.get(InventoryItem, item.id).quantity == 4
        assert _waste_movements(owner.id) == []

    def test_rejects_item_with_no_stock(self, owner, make_item):
        item = make_item(quantity=0, expiry_date=YESTERDAY)
        with pytest.raises(ValidationError, match="Nothing to remove"):
            waste_service.remove_partial_quantity(owner.id, item.id, 5, NOW)
        assert _waste_movements(owner.id) == []

    def test_rejects_unexpired_item(self, owner, make_item):
        item = make_item(quantity=3, expiry_date=date(2026, 3, 10))
        with pytest.raises(ValidationError):
            waste_service.remove_partial_quantity(owner.id, item.id, 1, NOW)
        assert _waste_movements(owner.id) == []

    def test_rejects_undated_item(self, owner, make_item):
        item = make_item(quantity=3)
        with pytest.raises(ValidationError):
            waste_service.remove_partial_quantity(owner.id, item.id, 1, NOW)

    def test_non_integer(self, owner, make_item):
        item = make_item(quantity=3, expiry_date=YESTERDAY)
        with pytest.raises(ValidationError):
            waste_service.remove_partial_quantity(owner.id, item.id, "2", NOW)

    def test_foreign_item(self, other_owner, make_item):
        item = make_item(quantity=3, expiry_date=YESTERDAY)
        with pytest.raises(NotFoundError):
            waste_service.remove_partial_quantity(other_owner.id, item.id, 1, NOW)


class TestRemoveAllExpired:
    def test_purges_only_expired(self, owner, make_item):
        old = make_item("Old", quantity=4, expiry_date=YESTERDAY)
        empty = make_item("Empty", quantity=0, expiry_date=date(2026, 3, 1))
        fresh = make_item("Fresh", quantity=4, expiry_date=date(2026, 3, 20))

        removed = waste_service.remove_all_expired(owner.id, NOW)

        assert sorted(i.id for i in removed) == sorted([old.id, empty.id])
        assert db.session.get(InventoryItem, old.id).is_active is False
        assert db.session.get(InventoryItem, old.id).quantity == 0
        assert db.session.get(InventoryItem, fresh.id).is_active is True

        waste = _waste_movements(owner.id)
        assert [(m.item_id, m.quantity_change) for m in waste] == [(old.id, -4)]

    def test_nothing_to_purge(self, owner, make_item):
        make_item(quantity=4, expiry_date=date(2026, 3, 20))
        assert waste_service.remove_all_expired(owner.id, NOW) == []


def test_waste_value(owner, make_item):
    make_item("A", quantity=4, cost_price_cents=100, selling_price_cents=150, expiry_date=YESTERDAY)
    make_item("B", quantity=2, cost_price_cents=300, selling_price_cents=350, expiry_date=date(2026, 3, 1))
    make_item("C", quantity=9, cost_price_cents=300, selling_price_cents=350, expiry_date=date(2026, 4, 1))

    assert waste_service.waste_value(owner.id, NOW) == {
        "expired_items": 2,
        "expired_quantity": 6,
        "waste_value_cents": 1000,
    }
