# Overview: Read-only analytics rollups over sales history and the current ledger.

"""
Dashboard-feeding queries. These never raise on empty history: sums are
COALESCEd to zero, ratios over a zero denominator are zero, and a storage
failure is logged and degrades to the empty result shape so the dashboard
still renders.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from functools import wraps

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Category, InventoryItem, Sale
from ..time_utils import to_utc_z
from .inventory_service import active_items, inventory_summary

PERIODS = ("day", "week", "month")


def profit_margin(profit: int, revenue: int) -> float:
    """profit / revenue * 100, or 0 when there is no revenue."""
    if not revenue:
        return 0.0
    return round(profit / revenue * 100.0, 2)


def percent_change(current, previous) -> float:
    """
    (current - previous) / |previous| * 100.

    The sign follows the direction of change even when previous is a loss:
    -100 to 50 is +150%.
    From nothing to something counts as +100%; nothing to nothing is 0.
    """
    if not previous:
        return 100.0 if current and current > 0 else 0.0
    return round((current - previous) / abs(previous) * 100.0, 2)


def period_bounds(now: datetime, period: str) -> tuple[datetime, datetime]:
    """[start, end) of the day / ISO week (Monday start) / month containing now."""
    today = datetime.combine(now.date(), time.min)
    if period == "day":
        return today, today + timedelta(days=1)
    if period == "week":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=7)
    if period == "month":
        start = today.replace(day=1)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
        return start, end
    raise ValueError(f"period must be one of: {', '.join(PERIODS)}")


def previous_period_bounds(now: datetime, period: str) -> tuple[datetime, datetime]:
    start, _ = period_bounds(now, period)
    return period_bounds(start - timedelta(microseconds=1), period)


def _empty_totals() -> dict:
    return {
        "sales_count": 0,
        "items_sold": 0,
        "revenue_cents": 0,
        "profit_cents": 0,
        "profit_margin": 0.0,
    }


def _degrades_to(empty_factory):
    """Turn storage failures into the empty result; the failure is logged."""
    def decorator(func_):
        @wraps(func_)
        def wrapper(*args, **kwargs):
            try:
                return func_(*args, **kwargs)
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception("Analytics query %s failed; returning empty result", func_.__name__)
                return empty_factory()
        return wrapper
    return decorator


def _sales_in(owner_id: int, start: datetime | None, end: datetime | None):
    query = db.session.query(Sale).filter(Sale.owner_id == owner_id)
    if start is not None:
        query = query.filter(Sale.sale_date >= start)
    if end is not None:
        query = query.filter(Sale.sale_date < end)
    return query


@_degrades_to(_empty_totals)
def period_totals(owner_id: int, start: datetime | None, end: datetime | None) -> dict:
    row = _sales_in(owner_id, start, end).with_entities(
        func.count(Sale.id).label("sales_count"),
        func.coalesce(func.sum(Sale.quantity), 0).label("items_sold"),
        func.coalesce(func.sum(Sale.total_amount_cents), 0).label("revenue"),
        func.coalesce(func.sum(Sale.profit_amount_cents), 0).label("profit"),
    ).one()

    revenue = int(row.revenue or 0)
    profit = int(row.profit or 0)
    return {
        "sales_count": int(row.sales_count or 0),
        "items_sold": int(row.items_sold or 0),
        "revenue_cents": revenue,
        "profit_cents": profit,
        "profit_margin": profit_margin(profit, revenue),
    }


@_degrades_to(list)
def top_items(owner_id: int, start: datetime | None, end: datetime | None, limit: int = 10) -> list[dict]:
    rows = _sales_in(owner_id, start, end).join(
        InventoryItem, InventoryItem.id == Sale.item_id,
    ).with_entities(
        Sale.item_id.label("item_id"),
        InventoryItem.name.label("name"),
        func.sum(Sale.quantity).label("total_sold"),
        func.sum(Sale.total_amount_cents).label("revenue"),
        func.sum(Sale.profit_amount_cents).label("profit"),
    ).group_by(
        Sale.item_id, InventoryItem.name,
    ).order_by(
        func.sum(Sale.quantity).desc(),
        Sale.item_id.asc(),
    ).limit(limit).all()

    return [
        {
            "item_id": row.item_id,
            "name": row.name,
            "total_sold": int(row.total_sold or 0),
            "revenue_cents": int(row.revenue or 0),
            "profit_cents": int(row.profit or 0),
            "profit_margin": profit_margin(int(row.profit or 0), int(row.revenue or 0)),
        }
        for row in rows
    ]


@_degrades_to(list)
def category_breakdown(owner_id: int, start: datetime | None, end: datetime | None) -> list[dict]:
    rows = _sales_in(owner_id, start, end).join(
        InventoryItem, InventoryItem.id == Sale.item_id,
    ).outerjoin(
        Category, Category.id == InventoryItem.category_id,
    ).with_entities(
        Category.id.label("category_id"),
        Category.name.label("category_name"),
        func.count(Sale.id).label("sales_count"),
        func.sum(Sale.quantity).label("items_sold"),
        func.sum(Sale.total_amount_cents).label("revenue"),
        func.sum(Sale.profit_amount_cents).label("profit"),
    ).group_by(
        Category.id, Category.name,
    ).order_by(
        func.sum(Sale.total_amount_cents).desc(),
    ).all()

    return [
        {
            "category_id": row.category_id,
            "category_name": row.category_name or "Uncategorized",
            "sales_count": int(row.sales_count or 0),
            "items_sold": int(row.items_sold or 0),
            "revenue_cents": int(row.revenue or 0),
            "profit_cents": int(row.profit or 0),
            "profit_margin": profit_margin(int(row.profit or 0), int(row.revenue or 0)),
        }
        for row in rows
    ]


@_degrades_to(list)
def daily_sales(owner_id: int, now: datetime, days: int = 7) -> list[dict]:
    """One row per calendar day for the last `days` days (today included), oldest first."""
    end = datetime.combine(now.date(), time.min) + timedelta(days=1)
    start = end - timedelta(days=days)

    day_expr = func.date(Sale.sale_date)
    rows = _sales_in(owner_id, start, end).with_entities(
        day_expr.label("day"),
        func.count(Sale.id).label("sales_count"),
        func.sum(Sale.total_amount_cents).label("revenue"),
        func.sum(Sale.profit_amount_cents).label("profit"),
    ).group_by(day_expr).all()

    by_day = {str(row.day): row for row in rows}
    series = []
    for offset in range(days):
        day: date = (start + timedelta(days=offset)).date()
        row = by_day.get(day.isoformat())
        series.append({
            "date": day.isoformat(),
            "sales_count": int(row.sales_count or 0) if row else 0,
            "revenue_cents": int(row.revenue or 0) if row else 0,
            "profit_cents": int(row.profit or 0) if row else 0,
        })
    return series


def _bucket(moment: datetime, group_by: str) -> str:
    day = moment.date()
    if group_by == "week":
        return (day - timedelta(days=day.weekday())).isoformat()
    if group_by == "month":
        return day.strftime("%Y-%m")
    return day.isoformat()


def _bucket_keys(start: datetime, end: datetime, group_by: str) -> list[str]:
    keys = []
    cursor = start.date()
    last = (end - timedelta(microseconds=1)).date()
    while cursor <= last:
        key = _bucket(datetime.combine(cursor, time.min), group_by)
        if not keys or keys[-1] != key:
            keys.append(key)
        cursor += timedelta(days=1)
    return keys


def _empty_bucket(period: str) -> dict:
    return {
        "period": period,
        "sales_count": 0,
        "items_sold": 0,
        "revenue_cents": 0,
        "cost_cents": 0,
        "profit_cents": 0,
    }


@_degrades_to(list)
def sales_series(
    owner_id: int,
    start: datetime | None,
    end: datetime | None,
    group_by: str = "day",
) -> list[dict]:
    """
    Sales per day, ISO week (keyed by its Monday) or month ("YYYY-MM").

    Buckets are filled in Python so the grouping is the same on every
    database. With both bounds given, empty buckets are included.
    """
    if group_by not in PERIODS:
        raise ValueError(f"group_by must be one of: {', '.join(PERIODS)}")

    rows = _sales_in(owner_id, start, end).with_entities(
        Sale.sale_date,
        Sale.quantity,
        Sale.cost_price_cents,
        Sale.total_amount_cents,
        Sale.profit_amount_cents,
    ).all()

    buckets = {}
    if start is not None and end is not None:
        buckets = {key: _empty_bucket(key) for key in _bucket_keys(start, end, group_by)}

    for row in rows:
        key = _bucket(row.sale_date, group_by)
        bucket = buckets.setdefault(key, _empty_bucket(key))
        bucket["sales_count"] += 1
        bucket["items_sold"] += row.quantity
        bucket["revenue_cents"] += row.total_amount_cents
        bucket["cost_cents"] += row.cost_price_cents * row.quantity
        bucket["profit_cents"] += row.profit_amount_cents

    series = [buckets[key] for key in sorted(buckets)]
    for bucket in series:
        bucket["profit_margin"] = profit_margin(bucket["profit_cents"], bucket["revenue_cents"])
        bucket["average_sale_cents"] = (
            bucket["revenue_cents"] // bucket["sales_count"] if bucket["sales_count"] else 0
        )
    return series


@_degrades_to(list)
def payment_method_breakdown(owner_id: int, start: datetime | None, end: datetime | None) -> list[dict]:
    rows = _sales_in(owner_id, start, end).with_entities(
        Sale.payment_method.label("payment_method"),
        func.count(Sale.id).label("sales_count"),
        func.sum(Sale.total_amount_cents).label("revenue"),
        func.sum(Sale.profit_amount_cents).label("profit"),
    ).group_by(
        Sale.payment_method,
    ).order_by(
        func.sum(Sale.total_amount_cents).desc(),
        Sale.payment_method.asc(),
    ).all()

    return [
        {
            "payment_method": row.payment_method,
            "sales_count": int(row.sales_count or 0),
            "revenue_cents": int(row.revenue or 0),
            "profit_cents": int(row.profit or 0),
        }
        for row in rows
    ]


def _empty_hours() -> list[dict]:
    return [{"hour": hour, "sales_count": 0, "revenue_cents": 0} for hour in range(24)]


@_degrades_to(_empty_hours)
def hourly_distribution(owner_id: int, start: datetime | None, end: datetime | None) -> list[dict]:
    """24 rows, one per hour of day (UTC)."""
    hours = _empty_hours()
    rows = _sales_in(owner_id, start, end).with_entities(
        Sale.sale_date, Sale.total_amount_cents,
    ).all()
    for row in rows:
        slot = hours[row.sale_date.hour]
        slot["sales_count"] += 1
        slot["revenue_cents"] += row.total_amount_cents
    return hours


def dashboard(owner_id: int, now: datetime) -> dict:
    summary = {"as_of": to_utc_z(now)}
    for label, period in (("today", "day"), ("week", "week"), ("month", "month")):
        start, end = period_bounds(now, period)
        summary[label] = period_totals(owner_id, start, end)

    month_start, month_end = period_bounds(now, "month")
    summary["top_items"] = top_items(owner_id, month_start, month_end, limit=5)
    summary["daily_sales"] = daily_sales(owner_id, now, days=7)
    return summary


def comparison(owner_id: int, now: datetime, period: str = "month") -> dict:
    if period not in ("week", "month"):
        raise ValueError("period must be week or month")

    current = period_totals(owner_id, *period_bounds(now, period))
    previous = period_totals(owner_id, *previous_period_bounds(now, period))

    return {
        "period": period,
        "current": current,
        "previous": previous,
        "changes": {
            key: percent_change(current[key], previous[key])
            for key in ("sales_count", "items_sold", "revenue_cents", "profit_cents")
        },
    }


def _empty_overview() -> dict:
    return {
        "total_items": 0,
        "total_quantity": 0,
        "total_inventory_value_cents": 0,
        "total_selling_value_cents": 0,
        "low_stock_items": 0,
        "out_of_stock_items": 0,
        "markup": {"average": 0.0, "minimum": 0.0, "maximum": 0.0},
    }


@_degrades_to(_empty_overview)
def inventory_overview(owner_id: int) -> dict:
    overview = inventory_summary(owner_id)
    items = active_items(owner_id)

    overview["total_selling_value_cents"] = sum(i.quantity * i.selling_price_cents for i in items)

    markups = [
        (i.selling_price_cents - i.cost_price_cents) / i.cost_price_cents * 100.0
        for i in items if i.cost_price_cents > 0
    ]
    if markups:
        overview["markup"] = {
            "average": round(sum(markups) / len(markups), 2),
            "minimum": round(min(markups), 2),
            "maximum": round(max(markups), 2),
        }
    else:
        overview["markup"] = {"average": 0.0, "minimum": 0.0, "maximum": 0.0}
    return overview
