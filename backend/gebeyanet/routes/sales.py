# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/gebeyanet/routes/sales.py
"""
Sales API routes.

A sale is recorded and stock is decremented in one transaction. Only the
customer-facing metadata of a sale can be edited afterwards; anything else
goes through a reversal (DELETE) and a new sale.
"""

from flask import Blueprint, g, jsonify, request

from ..errors import ValidationError
from ..models import Sale
from ..time_utils import parse_iso_datetime, to_utc_z
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_sale
from ..decorators import require_auth
from ..services import sales_service
from ..services.sales_service import SALE_METADATA_FIELDS


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

SALE_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "item_id",
        "quantity",
        "unit_price_cents",
        "payment_method",
        "customer_name",
        "customer_phone",
        "notes",
        "sale_date",
    },
    required_on_create={"item_id", "quantity"},
)

SALE_UPDATE_POLICY = ModelValidationPolicy(writable_fields=set(SALE_METADATA_FIELDS))


def _date_arg(name: str):
    try:
        return parse_iso_datetime(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record a sale.

    Body: item_id, quantity, optional unit_price_cents (defaults to the
    item's selling price), payment_method, customer_name, customer_phone,
    notes, sale_date.
    """
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Sale, payload=payload, policy=SALE_CREATE_POLICY, partial=False)
    enforce_rules_sale(patch)

    item_id = patch.pop("item_id")
    quantity = patch.pop("quantity")
    unit_price_cents = patch.pop("unit_price_cents", None)
    patch["payment_method"] = patch.get("payment_method") or "cash"

    sale = sales_service.record_sale(g.owner_id, item_id, quantity, unit_price_cents, **patch)
    return jsonify({"sale": sale.to_dict(), "message": "Sale recorded successfully"}), 201


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Query: start, end (ISO-8601), item_id, limit (default 50, max 500), offset
    """
    start = _date_arg("start")
    end = _date_arg("end")
    item_id = request.args.get("item_id", type=int)
    limit = max(1, min(request.args.get("limit", default=50, type=int), 500))
    offset = max(0, request.args.get("offset", default=0, type=int))

    rows, total = sales_service.list_sales(
        g.owner_id, start=start, end=end, item_id=item_id, limit=limit, offset=offset,
    )
    summary = sales_service.sales_summary(g.owner_id, start=start, end=end, item_id=item_id)

    return jsonify({
        "sales": [s.to_dict() for s in rows],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(rows) < total,
        },
        "summary": summary,
        "period": {"start": to_utc_z(start), "end": to_utc_z(end)},
    }), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(g.owner_id, sale_id)
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.patch("/<int:sale_id>")
@require_auth
def update_sale_route(sale_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Sale, payload=payload, policy=SALE_UPDATE_POLICY, partial=True)
    enforce_rules_sale(patch)

    sale = sales_service.update_sale(g.owner_id, sale_id, patch)
    return jsonify({"sale": sale.to_dict(), "message": "Sale updated successfully"}), 200


@sales_bp.delete("/<int:sale_id>")
@require_auth
def reverse_sale_route(sale_id: int):
    """Reverse a sale: stock is restored and the sale row is removed."""
    sales_service.reverse_sale(g.owner_id, sale_id)
    return jsonify({"deleted": True, "id": sale_id, "message": "Sale reversed and stock restored"}), 200
