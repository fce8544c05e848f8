# backend/gebeyanet/routes/inventory.py
"""
Inventory item routes.

All routes require authentication and are scoped to the caller's items.

Time semantics:
- Derived expiry fields (days_until_expiry, is_expired, priority) are
  computed against ?as_of= (ISO-8601) when given, otherwise server now.
"""
from flask import Blueprint, g, jsonify, request

from ..errors import ValidationError
from ..models import InventoryItem, StockMovement
from ..time_utils import resolve_as_of
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_item,
    enforce_rules_adjust,
)
from ..decorators import require_auth
from ..services import inventory_service
from ..services.expiry_service import item_view, sort_by_priority


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/items")

ITEM_FIELDS = {
    "name",
    "description",
    "category_id",
    "barcode",
    "sku",
    "unit",
    "quantity",
    "cost_price_cents",
    "selling_price_cents",
    "min_threshold",
    "max_threshold",
    "expiry_date",
    "batch_number",
    "supplier",
}

ITEM_POLICY = ModelValidationPolicy(
    writable_fields=ITEM_FIELDS,
    required_on_create={"name", "cost_price_cents", "selling_price_cents"},
)

ADJUST_POLICY = ModelValidationPolicy(
    writable_fields={"quantity_change", "note"},
    required_on_create={"quantity_change"},
)


def _as_of():
    try:
        return resolve_as_of(request.args.get("as_of"))
    except ValueError:
        raise ValidationError("as_of must be an ISO-8601 datetime")


@inventory_bp.post("")
@require_auth
def create_item_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=False)
    enforce_rules_item(patch)

    item = inventory_service.add_item(g.owner_id, patch)
    return jsonify({"item": item_view(item, _as_of())}), 201


@inventory_bp.get("")
@require_auth
def list_items_route():
    """
    List active items.

    Query: status=low_stock|out_of_stock|expired|expiring, search, category_id, as_of
    """
    now = _as_of()
    items = inventory_service.list_items(
        g.owner_id,
        now=now,
        status=request.args.get("status") or None,
        search=request.args.get("search") or None,
        category_id=request.args.get("category_id", type=int),
    )
    return jsonify({
        "items": [item_view(item, now) for item in items],
        "summary": inventory_service.inventory_summary(g.owner_id),
    }), 200


@inventory_bp.get("/prioritized")
@require_auth
def prioritized_items_route():
    now = _as_of()
    items = sort_by_priority(inventory_service.active_items(g.owner_id), now)
    return jsonify({"items": [item_view(item, now) for item in items]}), 200


@inventory_bp.get("/summary")
@require_auth
def inventory_summary_route():
    return jsonify(inventory_service.inventory_summary(g.owner_id)), 200


@inventory_bp.get("/<int:item_id>")
@require_auth
def get_item_route(item_id: int):
    item = inventory_service.get_item(g.owner_id, item_id)
    movements = inventory_service.list_movements(g.owner_id, item_id, limit=10)
    data = item_view(item, _as_of())
    data["recent_movements"] = [m.to_dict() for m in movements]
    return jsonify({"item": data}), 200


@inventory_bp.patch("/<int:item_id>")
@require_auth
def update_item_route(item_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=True)
    enforce_rules_item(patch)

    item = inventory_service.update_item(g.owner_id, item_id, patch)
    return jsonify({"item": item_view(item, _as_of())}), 200


@inventory_bp.delete("/<int:item_id>")
@require_auth
def delete_item_route(item_id: int):
    inventory_service.delete_item(g.owner_id, item_id)
    return jsonify({"deleted": True, "id": item_id}), 200


@inventory_bp.post("/<int:item_id>/adjust")
@require_auth
def adjust_stock_route(item_id: int):
    """
    Adjust stock by a signed delta. The result is clamped at zero; the
    returned movement shows the change actually applied.
    """
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=StockMovement, payload=payload, policy=ADJUST_POLICY, partial=False)
    enforce_rules_adjust(patch)

    item, movement = inventory_service.adjust_stock(
        g.owner_id,
        item_id,
        patch["quantity_change"],
        note=patch.get("note"),
    )
    return jsonify({"item": item_view(item, _as_of()), "movement": movement.to_dict()}), 201


@inventory_bp.get("/<int:item_id>/movements")
@require_auth
def list_movements_route(item_id: int):
    limit = request.args.get("limit", default=50, type=int)
    movements = inventory_service.list_movements(g.owner_id, item_id, limit=max(1, min(limit, 500)))
    return jsonify({"movements": [m.to_dict() for m in movements]}), 200
