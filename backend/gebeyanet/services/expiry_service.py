# Overview: Expiry calculator and priority sorter; pure functions over items and a caller-supplied "now".

"""
Expiry semantics (authoritative)

- An expiry date is a calendar date, taken at 00:00 UTC.
- days_until_expiry = ceil((expiry - now) / 1 day). Negative once the day
  has fully passed; 0 on the expiry day itself ("Expires today").
- "now" is always passed in. Nothing here reads the wall clock, so every
  item in one batch is judged against the same instant.

Priority tiers:
    no expiry date      -> low
    days < 0 (expired)  -> high
    days <= 3           -> high
    days <= 7           -> medium
    otherwise           -> low
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable

SOON_DAYS = 3
WEEK_DAYS = 7

PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"
PRIORITY_LOW = "low"

_SECONDS_PER_DAY = timedelta(days=1).total_seconds()


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raise TypeError(f"expected date or datetime, got {type(value).__name__}")


def days_until_expiry(expiry_date, now) -> int:
    """Whole days until expiry, rounded up. Negative if already past."""
    delta = _as_datetime(expiry_date) - _as_datetime(now)
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def is_expired(expiry_date, now) -> bool:
    if expiry_date is None:
        return False
    return days_until_expiry(expiry_date, now) < 0


def priority_for_days(days: int | None) -> str:
    if days is None:
        return PRIORITY_LOW
    if days < 0 or days <= SOON_DAYS:
        return PRIORITY_HIGH
    if days <= WEEK_DAYS:
        return PRIORITY_MEDIUM
    return PRIORITY_LOW


def priority_of(item, now) -> str:
    expiry = getattr(item, "expiry_date", None)
    if expiry is None:
        return PRIORITY_LOW
    return priority_for_days(days_until_expiry(expiry, now))


def expiry_status(expiry_date, now) -> str:
    """'expired' | 'expiring' (within a week) | 'fresh'."""
    days = days_until_expiry(expiry_date, now)
    if days < 0:
        return "expired"
    if days <= WEEK_DAYS:
        return "expiring"
    return "fresh"


def expiry_status_text(days: int) -> str:
    if days < 0:
        return f"Expired {abs(days)} days ago"
    if days == 0:
        return "Expires today"
    if days == 1:
        return "Expires tomorrow"
    return f"Expires in {days} days"


def _priority_key(item, now):
    expiry = getattr(item, "expiry_date", None)
    quantity = getattr(item, "quantity", 0) or 0
    if expiry is None:
        return (1, 0, 0, quantity)
    days = days_until_expiry(expiry, now)
    return (0, 0 if days < 0 else 1, days, quantity)


def sort_by_priority(items: Iterable, now) -> list:
    """
    Most urgent first: dated before undated, expired before unexpired,
    then fewest days left, then lowest stock. Stable for equal keys; the
    input is not modified.
    """
    return sorted(items, key=lambda item: _priority_key(item, now))


def item_view(item, now) -> dict:
    """
    Serialized item with derived fields computed against `now`.

    This is the only place derived expiry state is produced; it is never
    written back to the row.
    """
    data = item.to_dict()

    if item.expiry_date is not None:
        days = days_until_expiry(item.expiry_date, now)
        data["days_until_expiry"] = days
        data["is_expired"] = days < 0
        data["expiry_status"] = expiry_status(item.expiry_date, now)
        data["expiry_status_text"] = expiry_status_text(days)
    else:
        data["days_until_expiry"] = None
        data["is_expired"] = False
        data["expiry_status"] = None
        data["expiry_status_text"] = None
    data["priority"] = priority_of(item, now)

    data["is_low_stock"] = item.quantity <= item.min_threshold
    data["profit_per_unit_cents"] = item.selling_price_cents - item.cost_price_cents
    data["total_cost_value_cents"] = item.quantity * item.cost_price_cents
    data["total_selling_value_cents"] = item.quantity * item.selling_price_cents
    return data
