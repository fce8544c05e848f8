# backend/gebeyanet/routes/alerts.py
"""
Expiry alerts and sale recommendations.

Nothing here is stored: every response is derived from the caller's
current items at request time (or at ?as_of=).
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import ValidationError
from ..time_utils import resolve_as_of, to_utc_z
from ..decorators import require_auth
from ..services import inventory_service
from ..services.alert_service import generate_alerts, recommend_sales, summarize_alerts


alerts_bp = Blueprint("alerts", __name__, url_prefix="/api/alerts")


def _as_of():
    try:
        return resolve_as_of(request.args.get("as_of"))
    except ValueError:
        raise ValidationError("as_of must be an ISO-8601 datetime")


@alerts_bp.get("/expiry")
@require_auth
def expiry_alerts_route():
    now = _as_of()
    limit = request.args.get("limit", default=current_app.config["EXPIRY_ALERT_LIMIT"], type=int)

    items = inventory_service.active_items(g.owner_id)
    all_alerts = generate_alerts(items, now)
    alerts = all_alerts[:max(0, limit)]

    return jsonify({
        "as_of": to_utc_z(now),
        "alerts": [a.to_dict() for a in alerts],
        "summary": summarize_alerts(all_alerts),
    }), 200


@alerts_bp.get("/recommendations")
@require_auth
def recommendations_route():
    now = _as_of()
    limit = max(1, min(request.args.get("limit", default=5, type=int), 50))

    items = inventory_service.active_items(g.owner_id)
    return jsonify({
        "as_of": to_utc_z(now),
        "recommendations": [r.to_dict() for r in recommend_sales(items, now, limit=limit)],
    }), 200
