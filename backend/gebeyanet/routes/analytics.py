# Overview: Flask API routes for analytics; parses input and returns JSON responses.

"""
Analytics Routes

Sales totals per period, sales and profit series, payment-method and hourly
breakdowns, best sellers, category breakdown, period-over-period comparison
and inventory valuation. Query failures degrade to empty results
inside analytics_service, so these routes only validate input.
"""

from flask import Blueprint, g, jsonify, request

from ..errors import ValidationError
from ..time_utils import parse_iso_datetime, resolve_as_of, to_utc_z
from ..decorators import require_auth
from ..services import analytics_service
from ..services.analytics_service import PERIODS


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


def _as_of():
    try:
        return resolve_as_of(request.args.get("as_of"))
    except ValueError:
        raise ValidationError("as_of must be an ISO-8601 datetime")


def _range():
    """Explicit ?start=&end= when given, else the ?period= containing as_of."""
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 datetimes")
    if start is not None or end is not None:
        return start, end

    period = request.args.get("period", "month")
    if period not in PERIODS:
        raise ValidationError(f"period must be one of: {', '.join(PERIODS)}")
    return analytics_service.period_bounds(_as_of(), period)


@analytics_bp.get("/dashboard")
@require_auth
def dashboard_route():
    return jsonify(analytics_service.dashboard(g.owner_id, _as_of())), 200


@analytics_bp.get("/period")
@require_auth
def period_totals_route():
    start, end = _range()
    return jsonify(analytics_service.period_totals(g.owner_id, start, end)), 200


@analytics_bp.get("/top-items")
@require_auth
def top_items_route():
    start, end = _range()
    limit = max(1, min(request.args.get("limit", default=10, type=int), 100))
    return jsonify({"items": analytics_service.top_items(g.owner_id, start, end, limit=limit)}), 200


@analytics_bp.get("/categories")
@require_auth
def categories_route():
    start, end = _range()
    return jsonify({"categories": analytics_service.category_breakdown(g.owner_id, start, end)}), 200


@analytics_bp.get("/sales")
@require_auth
def sales_route():
    start, end = _range()
    group_by = request.args.get("group_by", "day")
    if group_by not in PERIODS:
        raise ValidationError(f"group_by must be one of: {', '.join(PERIODS)}")
    return jsonify({
        "period": {"start": to_utc_z(start), "end": to_utc_z(end), "group_by": group_by},
        "series": analytics_service.sales_series(g.owner_id, start, end, group_by),
        "payment_methods": analytics_service.payment_method_breakdown(g.owner_id, start, end),
        "hourly": analytics_service.hourly_distribution(g.owner_id, start, end),
    }), 200


@analytics_bp.get("/profit")
@require_auth
def profit_route():
    start, end = _range()
    return jsonify({
        "period": {"start": to_utc_z(start), "end": to_utc_z(end)},
        "summary": analytics_service.period_totals(g.owner_id, start, end),
        "series": analytics_service.sales_series(g.owner_id, start, end, "day"),
        "top_items": analytics_service.top_items(g.owner_id, start, end),
    }), 200


@analytics_bp.get("/comparison")
@require_auth
def comparison_route():
    period = request.args.get("period", "month")
    if period not in ("week", "month"):
        raise ValidationError("period must be week or month")
    return jsonify(analytics_service.comparison(g.owner_id, _as_of(), period)), 200


@analytics_bp.get("/inventory")
@require_auth
def inventory_route():
    return jsonify(analytics_service.inventory_overview(g.owner_id)), 200
