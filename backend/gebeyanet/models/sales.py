from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    One revenue-generating depletion of one item.

    cost_price_cents is snapshotted from the item at recording time;
    total_amount_cents and profit_amount_cents are computed once from the
    snapshot and never recomputed from current item prices.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
        db.Index("ix_sales_owner_date", "owner_id", "sale_date"),
        db.Index("ix_sales_owner_item", "owner_id", "item_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True)

    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    profit_amount_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("InventoryItem", backref=db.backref("sales", lazy="dynamic"))

    def __repr__(self) -> str:
        return f"<Sale id={self.id} item_id={self.item_id} qty={self.quantity} total={self.total_amount_cents}>"

    def to_dict(self) -> dict:
        item = self.item
        return {
            "id": self.id,
            "uuid": self.uuid,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "cost_price_cents": self.cost_price_cents,
            "total_amount_cents": self.total_amount_cents,
            "profit_amount_cents": self.profit_amount_cents,
            "payment_method": self.payment_method,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "notes": self.notes,
            "sale_date": to_utc_z(self.sale_date),
            "created_at": to_utc_z(self.created_at),
            # Item display fields
            "item_name": item.name if item else None,
            "item_unit": item.unit if item else None,
            "category_name": item.category.name if item is not None and item.category else None,
        }
