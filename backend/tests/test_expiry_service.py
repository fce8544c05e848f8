# Overview: Pytest coverage for expiry arithmetic and priority ordering.

"""
Expiry Calculator Tests

Pure functions, no database: items are plain namespaces and "now" is fixed.
"""

from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from gebeyanet.services.expiry_service import (
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    days_until_expiry,
    expiry_status,
    expiry_status_text,
    is_expired,
    priority_for_days,
    priority_of,
    sort_by_priority,
)

NOW = datetime(2026, 3, 10, 9, 30, 0)


def _item(name, expiry_date=None, quantity=1):
    return SimpleNamespace(name=name, expiry_date=expiry_date, quantity=quantity)


class TestDaysUntilExpiry:
    @pytest.mark.parametrize("expiry, expected", [
        (date(2026, 3, 9), -1),
        (date(2026, 3, 10), 0),
        (date(2026, 3, 11), 1),
        (date(2026, 3, 13), 3),
        (date(2026, 3, 14), 4),
        (date(2026, 3, 17), 7),
        (date(2026, 3, 18), 8),
    ])
    def test_rounds_partial_days_up(self, expiry, expected):
        assert days_until_expiry(expiry, NOW) == expected

    def test_exact_midnight_is_zero(self):
        assert days_until_expiry(date(2026, 3, 10), datetime(2026, 3, 10)) == 0

    def test_aware_now_is_normalized_to_utc(self):
        aware = datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc)
        assert days_until_expiry(date(2026, 3, 13), aware) == 3

    def test_expiry_day_itself_is_not_expired(self):
        assert is_expired(date(2026, 3, 10), NOW) is False
        assert is_expired(date(2026, 3, 9), NOW) is True

    def test_missing_date_is_never_expired(self):
        assert is_expired(None, NOW) is False


class TestPriority:
    @pytest.mark.parametrize("days, expected", [
        (None, PRIORITY_LOW),
        (-5, PRIORITY_HIGH),
        (0, PRIORITY_HIGH),
        (3, PRIORITY_HIGH),
        (4, PRIORITY_MEDIUM),
        (7, PRIORITY_MEDIUM),
        (8, PRIORITY_LOW),
    ])
    def test_tier_boundaries(self, days, expected):
        assert priority_for_days(days) == expected

    def test_item_without_date_is_low(self):
        assert priority_of(_item("salt"), NOW) == PRIORITY_LOW

    def test_expired_item_is_high(self):
        assert priority_of(_item("yogurt", date(2026, 3, 9), 4), NOW) == PRIORITY_HIGH


class TestStatusText:
    def test_status_buckets(self):
        assert expiry_status(date(2026, 3, 1), NOW) == "expired"
        assert expiry_status(date(2026, 3, 17), NOW) == "expiring"
        assert expiry_status(date(2026, 4, 1), NOW) == "fresh"

    def test_text(self):
        assert expiry_status_text(-2) == "Expired 2 days ago"
        assert expiry_status_text(0) == "Expires today"
        assert expiry_status_text(1) == "Expires tomorrow"
        assert expiry_status_text(5) == "Expires in 5 days"


class TestSortByPriority:
    def test_order(self):
        items = [
            _item("undated"),
            _item("fresh", date(2026, 4, 1)),
            _item("soon", date(2026, 3, 12)),
            _item("expired", date(2026, 3, 1)),
            _item("week", date(2026, 3, 16)),
        ]
        ordered = [i.name for i in sort_by_priority(items, NOW)]
        assert ordered == ["expired", "soon", "week", "fresh", "undated"]

    def test_lower_stock_first_on_same_day(self):
        items = [
            _item("big", date(2026, 3, 12), quantity=50),
            _item("small", date(2026, 3, 12), quantity=2),
        ]
        assert [i.name for i in sort_by_priority(items, NOW)] == ["small", "big"]

    def test_stable_for_equal_keys(self):
        items = [_item(f"n{i}") for i in range(5)]
        assert [i.name for i in sort_by_priority(items, NOW)] == ["n0", "n1", "n2", "n3", "n4"]

    def test_does_not_mutate_input(self):
        items = [_item("b", date(2026, 4, 1)), _item("a", date(2026, 3, 1))]
        sort_by_priority(items, NOW)
        assert [i.name for i in items] == ["b", "a"]

    def test_idempotent(self):
        items = [_item("x", date(2026, 3, 20)), _item("y", date(2026, 3, 11)), _item("z")]
        once = sort_by_priority(items, NOW)
        assert sort_by_priority(once, NOW) == once
