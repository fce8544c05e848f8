# Overview: Waste manager; removes expired stock without touching sales revenue.

"""
Waste is non-revenue depletion. Every write-off is logged as a StockMovement
with movement_type='waste', so reporting can separate it from sales and from
manual adjustments.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import InventoryItem, StockMovement
from .concurrency import begin_write_transaction, run_with_retry
from .expiry_service import is_expired
from .inventory_service import apply_stock_change, expired, get_item


def remove_partial_quantity(
    owner_id: int,
    item_id: int,
    quantity_to_remove: int,
    now: datetime,
) -> tuple[InventoryItem, StockMovement]:
    """
    Write off part of an expired item's stock.

    quantity_to_remove is capped at the item's quantity. A request that
    would remove nothing is rejected so no empty movement is recorded.
    """
    if isinstance(quantity_to_remove, bool) or not isinstance(quantity_to_remove, int):
        raise ValidationError("quantity must be an integer")

    def _op():
        begin_write_transaction()
        item = get_item(owner_id, item_id, lock=True)
        if not is_expired(item.expiry_date, now):
            raise ValidationError("Only expired items can be written off as waste")

        to_remove = min(max(0, quantity_to_remove), item.quantity)
        if to_remove <= 0:
            raise ValidationError("Nothing to remove")
        movement = apply_stock_change(
            item,
            -to_remove,
            movement_type="waste",
            note="Expired stock removed",
        )
        db.session.commit()
        current_app.logger.info(
            "Wrote off %d expired units of item %s (movement %s)",
            to_remove, item.id, movement.id,
        )
        return item, movement

    return run_with_retry(_op)


def expired_candidates(owner_id: int, now: datetime) -> list[InventoryItem]:
    return expired(owner_id, now)


def remove_all_expired(owner_id: int, now: datetime) -> list[InventoryItem]:
    """
    Stop tracking every expired item: any remaining stock is written off as
    waste, then the item is removed from the active ledger.
    """
    def _op():
        begin_write_transaction()
        removed = []
        for item in expired(owner_id, now):
            if item.quantity > 0:
                apply_stock_change(
                    item,
                    -item.quantity,
                    movement_type="waste",
                    note="Expired item removed",
                )
            item.is_active = False
            removed.append(item)
        db.session.commit()
        return removed

    removed = run_with_retry(_op)
    if removed:
        current_app.logger.info(
            "Removed %d expired items for owner %s: %s",
            len(removed), owner_id, [item.id for item in removed],
        )
    return removed


def waste_value(owner_id: int, now: datetime) -> dict:
    """Cost of stock currently sitting in expired items."""
    items = expired(owner_id, now)
    return {
        "expired_items": len(items),
        "expired_quantity": sum(item.quantity for item in items),
        "waste_value_cents": sum(item.quantity * item.cost_price_cents for item in items),
    }
