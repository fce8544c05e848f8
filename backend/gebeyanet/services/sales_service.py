"""
Sale Reconciler - couples a Sale row with its inventory decrement

WHY: A sale is only real if stock, sale row and movement agree. Recording
and reversal each run as one DB transaction; nothing is half-applied.

State per attempt:
    Validating -> Reserving -> Committing -> Committed
    Validating -> Rejected            (NotFound / InsufficientStock / Validation)
    Reserving  -> Failed (rolled back, retried on lock/version contention)

Concurrency: the item row is write-locked (BEGIN IMMEDIATE on SQLite,
SELECT ... FOR UPDATE elsewhere) before the stock check, and the decrement
is guarded by the item's version_id. Two sales that together exceed stock
cannot both commit; the loser re-validates and gets InsufficientStockError.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Sale, InventoryItem
from ..time_utils import utcnow
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .inventory_service import apply_stock_change, record_movement

# Customer-facing metadata; everything else on a sale is immutable
SALE_METADATA_FIELDS = {"customer_name", "customer_phone", "notes", "payment_method"}


def _lock_item(owner_id: int, item_id: int) -> InventoryItem:
    item = lock_for_update(
        db.session.query(InventoryItem).filter_by(id=item_id, owner_id=owner_id)
    ).first()
    if item is None or not item.is_active:
        raise NotFoundError("Inventory item", item_id)
    return item


def _get_sale(owner_id: int, sale_id: int, *, lock: bool = False) -> Sale:
    query = db.session.query(Sale).filter_by(id=sale_id, owner_id=owner_id)
    if lock:
        query = lock_for_update(query)
    sale = query.first()
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def record_sale(
    owner_id: int,
    item_id: int,
    quantity: int,
    unit_price_cents: int | None = None,
    *,
    payment_method: str = "cash",
    customer_name: str | None = None,
    customer_phone: str | None = None,
    notes: str | None = None,
    sale_date: datetime | None = None,
) -> Sale:
    """
    Record a sale and decrement stock atomically.

    unit_price_cents defaults to the item's current selling price. The
    item's cost price is snapshotted onto the sale; total and profit are
    computed once from the snapshot.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer")
    if unit_price_cents is not None and (
        isinstance(unit_price_cents, bool) or not isinstance(unit_price_cents, int) or unit_price_cents < 0
    ):
        raise ValidationError("unit_price_cents must be a non-negative integer")

    def _op():
        # Validating
        begin_write_transaction()
        item = _lock_item(owner_id, item_id)
        if quantity > item.quantity:
            raise InsufficientStockError(available=item.quantity, requested=quantity)

        # Reserving / Committing
        price = item.selling_price_cents if unit_price_cents is None else unit_price_cents
        cost = item.cost_price_cents
        previous = item.quantity

        sale = Sale(
            uuid=str(uuid.uuid4()),
            owner_id=owner_id,
            item_id=item.id,
            quantity=quantity,
            unit_price_cents=price,
            cost_price_cents=cost,
            total_amount_cents=quantity * price,
            profit_amount_cents=quantity * (price - cost),
            payment_method=payment_method or "cash",
            customer_name=customer_name,
            customer_phone=customer_phone,
            notes=notes,
            sale_date=sale_date or utcnow(),
        )
        db.session.add(sale)

        item.quantity = previous - quantity
        # version_id guard: a concurrent writer makes this flush raise StaleDataError
        db.session.flush()

        record_movement(
            item,
            movement_type="sale",
            previous_quantity=previous,
            new_quantity=item.quantity,
            note=f"Sale #{sale.id}",
            reference_sale_id=sale.id,
        )

        db.session.commit()
        return sale

    return run_with_retry(_op)


def reverse_sale(owner_id: int, sale_id: int) -> None:
    """
    Undo a sale: restore stock, log a return movement, delete the sale row.

    The previous quantity is read under the lock before the restore. If the
    item is gone (missing or soft-deleted) the whole reversal is rejected and
    the sale row stays.
    """
    def _op():
        begin_write_transaction()
        sale = _get_sale(owner_id, sale_id, lock=True)
        item = _lock_item(owner_id, sale.item_id)

        apply_stock_change(
            item,
            sale.quantity,
            movement_type="return",
            note=f"Sale reversal #{sale.id}",
            reference_sale_id=sale.id,
        )

        db.session.delete(sale)
        db.session.commit()

    run_with_retry(_op)


def update_sale(owner_id: int, sale_id: int, fields: dict) -> Sale:
    """Only customer-facing metadata may change after a sale is recorded."""
    immutable = set(fields) - SALE_METADATA_FIELDS
    if immutable:
        raise ValidationError(f"Field cannot be changed after sale: {', '.join(sorted(immutable))}")
    if not fields:
        raise ValidationError("No fields to update")
    if "payment_method" in fields and not fields["payment_method"]:
        raise ValidationError("payment_method cannot be blank")

    def _op():
        sale = _get_sale(owner_id, sale_id, lock=True)
        for key, value in fields.items():
            setattr(sale, key, value)
        db.session.commit()
        return sale

    return run_with_retry(_op)


def get_sale(owner_id: int, sale_id: int) -> Sale:
    return _get_sale(owner_id, sale_id)


def _filtered_sales(owner_id: int, *, start=None, end=None, item_id=None):
    query = db.session.query(Sale).filter(Sale.owner_id == owner_id)
    if start is not None:
        query = query.filter(Sale.sale_date >= start)
    if end is not None:
        query = query.filter(Sale.sale_date <= end)
    if item_id is not None:
        query = query.filter(Sale.item_id == item_id)
    return query


def list_sales(
    owner_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    item_id: int | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Sale], int]:
    query = _filtered_sales(owner_id, start=start, end=end, item_id=item_id)
    total = query.count()
    rows = query.order_by(
        Sale.sale_date.desc(),
        Sale.id.desc(),
    ).limit(limit).offset(offset).all()
    return rows, total


def sales_summary(
    owner_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    item_id: int | None = None,
) -> dict:
    query = _filtered_sales(owner_id, start=start, end=end, item_id=item_id)
    row = query.with_entities(
        func.count(Sale.id).label("total_sales"),
        func.coalesce(func.sum(Sale.quantity), 0).label("total_items_sold"),
        func.coalesce(func.sum(Sale.total_amount_cents), 0).label("total_revenue_cents"),
        func.coalesce(func.sum(Sale.profit_amount_cents), 0).label("total_profit_cents"),
    ).one()

    total_sales = int(row.total_sales or 0)
    revenue = int(row.total_revenue_cents or 0)
    return {
        "total_sales": total_sales,
        "total_items_sold": int(row.total_items_sold or 0),
        "total_revenue_cents": revenue,
        "total_profit_cents": int(row.total_profit_cents or 0),
        "average_sale_cents": (revenue // total_sales) if total_sales else 0,
    }
