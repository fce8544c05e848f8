# backend/gebeyanet/routes/waste.py
"""
Waste routes: write off expired stock.

Waste never produces a sale; it shows up only as 'waste' stock movements.
"""

from flask import Blueprint, g, jsonify, request

from ..errors import ValidationError
from ..time_utils import resolve_as_of, to_utc_z
from ..decorators import require_auth
from ..services import waste_service
from ..services.expiry_service import item_view


waste_bp = Blueprint("waste", __name__, url_prefix="/api/waste")


def _as_of():
    try:
        return resolve_as_of(request.args.get("as_of"))
    except ValueError:
        raise ValidationError("as_of must be an ISO-8601 datetime")


@waste_bp.get("")
@require_auth
def waste_overview_route():
    now = _as_of()
    candidates = waste_service.expired_candidates(g.owner_id, now)
    return jsonify({
        "as_of": to_utc_z(now),
        "items": [item_view(item, now) for item in candidates],
        "summary": waste_service.waste_value(g.owner_id, now),
    }), 200


@waste_bp.post("/items/<int:item_id>/remove")
@require_auth
def remove_expired_quantity_route(item_id: int):
    """
    Body: {"quantity": <int>}. The quantity is capped at what is in stock; removing nothing is a 400.
    """
    payload = request.get_json(silent=True) or {}
    quantity = payload.get("quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")

    now = _as_of()
    item, movement = waste_service.remove_partial_quantity(g.owner_id, item_id, quantity, now)
    return jsonify({"item": item_view(item, now), "movement": movement.to_dict()}), 201


@waste_bp.post("/purge-expired")
@require_auth
def purge_expired_route():
    now = _as_of()
    removed = waste_service.remove_all_expired(g.owner_id, now)
    return jsonify({
        "removed": [{"id": item.id, "name": item.name} for item in removed],
        "count": len(removed),
    }), 200
