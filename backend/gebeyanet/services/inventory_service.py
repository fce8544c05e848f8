# Overview: Inventory ledger; owns item records and the stock-movement trail.

# backend/gebeyanet/services/inventory_service.py

"""
Inventory Ledger Invariants (authoritative)

Quantity model:
- InventoryItem.quantity is the stock on hand and is always >= 0.
- Every change to quantity writes exactly one StockMovement in the same DB
  transaction, with previous_quantity + quantity_change == new_quantity.
- The movement records the change actually applied, not the one requested.

Clamp vs reject:
- Manual paths (update_item quantity, adjust_stock, waste) clamp at zero via
  max(0, ...) and log the clamped delta.
- Sales never clamp; sales_service rejects with InsufficientStockError.

Ownership:
- Every operation is scoped by owner_id; items of another owner are NotFound.
- Soft-deleted items (is_active=False) are invisible to every query here.

Time:
- Derived expiry fields are computed against a caller-supplied `now`
  (expiry_service.item_view); nothing here stores them.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from flask import current_app
from sqlalchemy import case, func

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Category, InventoryItem, StockMovement
from ..time_utils import utcnow
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .expiry_service import days_until_expiry, is_expired

ITEM_STATUSES = ("low_stock", "out_of_stock", "expired", "expiring")

REQUIRED_ITEM_FIELDS = ("name", "cost_price_cents", "selling_price_cents")


def _get_active_item(owner_id: int, item_id: int, *, lock: bool = False) -> InventoryItem:
    query = db.session.query(InventoryItem).filter_by(id=item_id, owner_id=owner_id, is_active=True)
    if lock:
        query = lock_for_update(query)
    item = query.first()
    if item is None:
        raise NotFoundError("Inventory item", item_id)
    return item


def _check_margin(cost_price_cents: int, selling_price_cents: int) -> None:
    if selling_price_cents <= cost_price_cents:
        raise ValidationError("selling_price_cents must be greater than cost_price_cents")


def _check_unique(owner_id: int, *, name=None, barcode=None, exclude_id=None) -> None:
    base = db.session.query(InventoryItem.id).filter(
        InventoryItem.owner_id == owner_id,
        InventoryItem.is_active.is_(True),
    )
    if exclude_id is not None:
        base = base.filter(InventoryItem.id != exclude_id)

    if name is not None and base.filter(InventoryItem.name == name).first() is not None:
        raise ConflictError("Item with this name already exists", field="name")

    if barcode and base.filter(InventoryItem.barcode == barcode).first() is not None:
        raise ConflictError("Item with this barcode already exists", field="barcode")


def _check_category(category_id) -> None:
    if category_id is None:
        return
    category = db.session.query(Category).filter_by(id=category_id, is_active=True).first()
    if category is None:
        raise NotFoundError("Category", category_id)


def record_movement(
    item: InventoryItem,
    *,
    movement_type: str,
    previous_quantity: int,
    new_quantity: int,
    note: str | None = None,
    reference_sale_id: int | None = None,
) -> StockMovement:
    """Append one movement for a quantity change already applied to `item`."""
    movement = StockMovement(
        owner_id=item.owner_id,
        item_id=item.id,
        movement_type=movement_type,
        quantity_change=new_quantity - previous_quantity,
        previous_quantity=previous_quantity,
        new_quantity=new_quantity,
        reference_sale_id=reference_sale_id,
        note=note,
        created_at=utcnow(),
    )
    db.session.add(movement)
    return movement


def apply_stock_change(
    item: InventoryItem,
    requested_delta: int,
    *,
    movement_type: str,
    note: str | None = None,
    reference_sale_id: int | None = None,
) -> StockMovement:
    """
    Core clamp-and-record step without locking, retry, or commit.

    quantity := max(0, quantity + requested_delta); the movement carries the
    delta that was actually applied. Called by adjust_stock, update_item,
    waste_service and sales reversal.
    """
    previous = item.quantity
    new = max(0, previous + requested_delta)
    item.quantity = new
    # Flush now so a stale version_id fails before the movement is written
    db.session.flush()
    movement = record_movement(
        item,
        movement_type=movement_type,
        previous_quantity=previous,
        new_quantity=new,
        note=note,
        reference_sale_id=reference_sale_id,
    )
    db.session.flush()
    return movement


def add_item(owner_id: int, fields: dict) -> InventoryItem:
    """
    Create an item. Initial quantity > 0 is logged as a purchase movement
    ("Initial stock") in the same transaction.
    """
    missing = [k for k in REQUIRED_ITEM_FIELDS if fields.get(k) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    _check_margin(fields["cost_price_cents"], fields["selling_price_cents"])

    quantity = fields.get("quantity") or 0
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")

    def _op():
        begin_write_transaction()
        _check_unique(owner_id, name=fields["name"], barcode=fields.get("barcode"))
        _check_category(fields.get("category_id"))

        item = InventoryItem(
            uuid=str(uuid.uuid4()),
            owner_id=owner_id,
            category_id=fields.get("category_id"),
            name=fields["name"],
            description=fields.get("description"),
            barcode=fields.get("barcode") or None,
            sku=fields.get("sku"),
            unit=fields.get("unit") or "pieces",
            quantity=quantity,
            cost_price_cents=fields["cost_price_cents"],
            selling_price_cents=fields["selling_price_cents"],
            min_threshold=(
                fields["min_threshold"] if fields.get("min_threshold") is not None
                else current_app.config.get("DEFAULT_MIN_THRESHOLD", 5)
            ),
            max_threshold=fields.get("max_threshold", current_app.config.get("DEFAULT_MAX_THRESHOLD", 1000)),
            expiry_date=fields.get("expiry_date"),
            batch_number=fields.get("batch_number"),
            supplier=fields.get("supplier"),
            is_active=True,
        )
        db.session.add(item)
        db.session.flush()

        if quantity > 0:
            record_movement(
                item,
                movement_type="purchase",
                previous_quantity=0,
                new_quantity=quantity,
                note="Initial stock",
            )

        db.session.commit()
        return item

    return run_with_retry(_op)


UPDATABLE_FIELDS = {
    "name", "description", "category_id", "barcode", "sku", "unit",
    "quantity", "cost_price_cents", "selling_price_cents",
    "min_threshold", "max_threshold", "expiry_date", "batch_number", "supplier",
}


def update_item(owner_id: int, item_id: int, fields: dict) -> InventoryItem:
    """
    Merge `fields` into the item. A quantity change is clamped at zero and
    logged as an adjustment movement ("Manual adjustment").
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    def _op():
        begin_write_transaction()
        item = _get_active_item(owner_id, item_id, lock=True)

        if "name" in fields and fields["name"] != item.name:
            if not fields["name"]:
                raise ValidationError("name cannot be blank")
            _check_unique(owner_id, name=fields["name"], exclude_id=item.id)
        if fields.get("barcode") and fields["barcode"] != item.barcode:
            _check_unique(owner_id, barcode=fields["barcode"], exclude_id=item.id)
        if "category_id" in fields:
            _check_category(fields["category_id"])

        if "cost_price_cents" in fields or "selling_price_cents" in fields:
            cost = fields.get("cost_price_cents", item.cost_price_cents)
            selling = fields.get("selling_price_cents", item.selling_price_cents)
            if cost is None or selling is None:
                raise ValidationError("prices cannot be null")
            _check_margin(cost, selling)

        for key, value in fields.items():
            if key == "quantity":
                continue
            setattr(item, key, value)

        new_quantity = fields.get("quantity")
        if new_quantity is not None and new_quantity != item.quantity:
            apply_stock_change(
                item,
                new_quantity - item.quantity,
                movement_type="adjustment",
                note="Manual adjustment",
            )

        db.session.commit()
        return item

    return run_with_retry(_op)


def delete_item(owner_id: int, item_id: int) -> None:
    """Soft delete: the row and its movements/sales stay for history."""
    def _op():
        begin_write_transaction()
        item = _get_active_item(owner_id, item_id, lock=True)
        item.is_active = False
        db.session.commit()

    run_with_retry(_op)


def adjust_stock(
    owner_id: int,
    item_id: int,
    delta: int,
    *,
    note: str | None = None,
) -> tuple[InventoryItem, StockMovement]:
    """
    quantity := max(0, quantity + delta).

    The returned movement's quantity_change is the applied delta, e.g.
    quantity 10 adjusted by -12 ends at 0 with quantity_change == -10.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("quantity_change must be an integer")
    if delta == 0:
        raise ValidationError("quantity_change must be non-zero")

    def _op():
        begin_write_transaction()
        item = _get_active_item(owner_id, item_id, lock=True)
        movement = apply_stock_change(
            item,
            delta,
            movement_type="adjustment",
            note=note or "Stock adjustment",
        )
        db.session.commit()
        return item, movement

    return run_with_retry(_op)


def get_item(owner_id: int, item_id: int, *, lock: bool = False) -> InventoryItem:
    return _get_active_item(owner_id, item_id, lock=lock)


def _active_items_query(owner_id: int):
    return db.session.query(InventoryItem).filter(
        InventoryItem.owner_id == owner_id,
        InventoryItem.is_active.is_(True),
    )


def active_items(owner_id: int) -> list[InventoryItem]:
    return _active_items_query(owner_id).order_by(InventoryItem.id.asc()).all()


def low_stock(owner_id: int) -> list[InventoryItem]:
    return _active_items_query(owner_id).filter(
        InventoryItem.quantity <= InventoryItem.min_threshold,
    ).order_by(InventoryItem.quantity.asc(), InventoryItem.id.asc()).all()


def out_of_stock(owner_id: int) -> list[InventoryItem]:
    return _active_items_query(owner_id).filter(
        InventoryItem.quantity == 0,
    ).order_by(InventoryItem.id.asc()).all()


def _dated_items(owner_id: int) -> list[InventoryItem]:
    return _active_items_query(owner_id).filter(
        InventoryItem.expiry_date.isnot(None),
    ).order_by(InventoryItem.expiry_date.asc(), InventoryItem.id.asc()).all()


def expiring(owner_id: int, now: datetime, within_days: int = 7) -> list[InventoryItem]:
    """Not yet expired, and expiring within `within_days` days of `now`."""
    return [
        item for item in _dated_items(owner_id)
        if 0 <= days_until_expiry(item.expiry_date, now) <= within_days
    ]


def expired(owner_id: int, now: datetime) -> list[InventoryItem]:
    return [item for item in _dated_items(owner_id) if is_expired(item.expiry_date, now)]


def list_items(
    owner_id: int,
    *,
    now: datetime,
    status: str | None = None,
    search: str | None = None,
    category_id: int | None = None,
) -> list[InventoryItem]:
    if status is not None and status not in ITEM_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ITEM_STATUSES)}")

    if status == "low_stock":
        items = low_stock(owner_id)
    elif status == "out_of_stock":
        items = out_of_stock(owner_id)
    elif status == "expired":
        items = expired(owner_id, now)
    elif status == "expiring":
        items = expiring(owner_id, now)
    else:
        items = _active_items_query(owner_id).order_by(
            InventoryItem.created_at.desc(),
            InventoryItem.id.desc(),
        ).all()

    if search:
        needle = search.strip().lower()
        items = [
            item for item in items
            if needle in item.name.lower()
            or (item.description and needle in item.description.lower())
            or (item.barcode and needle == item.barcode.lower())
        ]
    if category_id is not None:
        items = [item for item in items if item.category_id == category_id]
    return items


def inventory_summary(owner_id: int) -> dict:
    row = db.session.query(
        func.count(InventoryItem.id).label("total_items"),
        func.coalesce(func.sum(InventoryItem.quantity), 0).label("total_quantity"),
        func.coalesce(
            func.sum(InventoryItem.quantity * InventoryItem.cost_price_cents), 0
        ).label("total_inventory_value_cents"),
        func.coalesce(func.sum(
            case((InventoryItem.quantity <= InventoryItem.min_threshold, 1), else_=0)
        ), 0).label("low_stock_items"),
        func.coalesce(func.sum(
            case((InventoryItem.quantity == 0, 1), else_=0)
        ), 0).label("out_of_stock_items"),
    ).filter(
        InventoryItem.owner_id == owner_id,
        InventoryItem.is_active.is_(True),
    ).one()

    return {
        "total_items": int(row.total_items or 0),
        "total_quantity": int(row.total_quantity or 0),
        "total_inventory_value_cents": int(row.total_inventory_value_cents or 0),
        "low_stock_items": int(row.low_stock_items or 0),
        "out_of_stock_items": int(row.out_of_stock_items or 0),
    }


def list_movements(owner_id: int, item_id: int, limit: int = 50) -> list[StockMovement]:
    _get_active_item(owner_id, item_id)
    return db.session.query(StockMovement).filter_by(
        owner_id=owner_id,
        item_id=item_id,
    ).order_by(
        StockMovement.created_at.desc(),
        StockMovement.id.desc(),
    ).limit(limit).all()


def list_categories() -> list[Category]:
    return db.session.query(Category).filter_by(is_active=True).order_by(Category.name.asc()).all()


def create_category(name: str, description: str | None = None) -> Category:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")

    def _op():
        existing = db.session.query(Category).filter(
            func.lower(Category.name) == name.lower()
        ).first()
        if existing is not None:
            raise ConflictError("Category with this name already exists", field="name")
        category = Category(name=name, description=description, is_active=True)
        db.session.add(category)
        db.session.commit()
        return category

    return run_with_retry(_op)
