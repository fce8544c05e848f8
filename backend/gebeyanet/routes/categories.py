from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..services import inventory_service


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories_route():
    return jsonify({"categories": [c.to_dict() for c in inventory_service.list_categories()]}), 200


@categories_bp.post("")
@require_auth
def create_category_route():
    payload = request.get_json(silent=True) or {}
    category = inventory_service.create_category(payload.get("name"), payload.get("description"))
    return jsonify({"category": category.to_dict()}), 201
