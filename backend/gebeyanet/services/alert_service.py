# Overview: Expiry alerts and sale recommendations, recomputed from current item state on every call.

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date
from typing import Iterable

from ..time_utils import to_iso_date
from .expiry_service import (
    SOON_DAYS,
    WEEK_DAYS,
    PRIORITY_HIGH,
    PRIORITY_MEDIUM,
    days_until_expiry,
    priority_for_days,
    sort_by_priority,
)

ALERT_EXPIRED = "expired"
ALERT_EXPIRING_SOON = "expiring_soon"
ALERT_EXPIRING_THIS_WEEK = "expiring_this_week"


@dataclass(frozen=True)
class ExpiryAlert:
    id: str
    item_id: int
    item_name: str
    expiry_date: date
    days_until_expiry: int
    quantity: int
    alert_type: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["expiry_date"] = to_iso_date(self.expiry_date)
        return data


@dataclass(frozen=True)
class SaleRecommendation:
    item_id: int
    name: str
    quantity: int
    priority: str
    days_until_expiry: int | None
    reason: str
    action: str

    def to_dict(self) -> dict:
        return asdict(self)


def classify_days(days: int) -> str | None:
    if days < 0:
        return ALERT_EXPIRED
    if days <= SOON_DAYS:
        return ALERT_EXPIRING_SOON
    if days <= WEEK_DAYS:
        return ALERT_EXPIRING_THIS_WEEK
    return None


def generate_alerts(items: Iterable, now, limit: int | None = None) -> list[ExpiryAlert]:
    """
    Alerts for in-stock dated items expiring within a week (or already expired),
    most urgent first. Items without an expiry date or with zero quantity are skipped.
    """
    alerts = []
    for item in items:
        if item.expiry_date is None or not item.quantity:
            continue

        days = days_until_expiry(item.expiry_date, now)
        alert_type = classify_days(days)
        if alert_type is None:
            continue

        alerts.append(ExpiryAlert(
            id=f"alert-{item.id}",
            item_id=item.id,
            item_name=item.name,
            expiry_date=item.expiry_date,
            days_until_expiry=days,
            quantity=item.quantity,
            alert_type=alert_type,
        ))

    alerts.sort(key=lambda a: a.days_until_expiry)
    if limit is not None:
        alerts = alerts[:max(0, limit)]
    return alerts


def summarize_alerts(alerts: Iterable[ExpiryAlert]) -> dict:
    counts = {ALERT_EXPIRED: 0, ALERT_EXPIRING_SOON: 0, ALERT_EXPIRING_THIS_WEEK: 0}
    for alert in alerts:
        counts[alert.alert_type] += 1
    counts["total"] = sum(counts.values())
    return counts


def _recommendation_reason(days: int | None) -> tuple[str, str]:
    if days is not None and days < 0:
        return "Expired - remove from sale", "Remove from inventory"
    if days is not None and days <= SOON_DAYS:
        return "Expires very soon", "Sell immediately or discount"
    return "Expires this week", "Promote for quick sale"


def recommend_sales(items: Iterable, now, limit: int = 5) -> list[SaleRecommendation]:
    """In-stock items worth pushing first: high/medium priority, in priority order."""
    recommendations = []
    for item in sort_by_priority(items, now):
        if len(recommendations) >= limit:
            break
        if not item.quantity or item.expiry_date is None:
            continue

        days = days_until_expiry(item.expiry_date, now)
        priority = priority_for_days(days)
        if priority not in (PRIORITY_HIGH, PRIORITY_MEDIUM):
            continue

        reason, action = _recommendation_reason(days)
        recommendations.append(SaleRecommendation(
            item_id=item.id,
            name=item.name,
            quantity=item.quantity,
            priority=priority,
            days_until_expiry=days,
            reason=reason,
            action=action,
        ))
    return recommendations
