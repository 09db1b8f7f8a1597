# Overview: Flask API routes for sale transactions; parses input and returns JSON responses.

# backend/pharmapos/routes/sales.py
"""Sale transaction routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..services.sales_service import SaleNotFoundError
from ..services.stock_service import (
    CommitConflictError,
    InsufficientStockError,
    ProductNotFoundError,
)
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, validate_sale_request
from ..decorators import require_auth, require_role


sales_bp = Blueprint("sales", __name__, url_prefix="/api/transactions")


def _error(e: Exception, status: int):
    return jsonify({"error": str(e), "details": getattr(e, "details", {})}), status


def _date_range():
    try:
        start = parse_iso_datetime(request.args.get("start_date"))
        end = parse_iso_datetime(request.args.get("end_date"))
    except ValueError:
        raise ValidationError("start_date / end_date must be ISO-8601")
    return start, end


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Create a completed sale for the authenticated cashier.

    400: malformed request or insufficient stock
    404: unknown product
    409: commit conflict (safe to resubmit the same cart)
    """
    try:
        data = validate_sale_request(request.get_json(silent=True))
        sale = sales_service.create_sale(
            g.current_user.id,
            data["items"],
            data["payment_method"],
            data["notes"],
        )
        return jsonify({"transaction": sale.to_dict()}), 201

    except ValidationError as e:
        return _error(e, 400)
    except ProductNotFoundError as e:
        return _error(e, 404)
    except InsufficientStockError as e:
        return _error(e, 400)
    except CommitConflictError as e:
        current_app.logger.warning("Sale commit conflict: %s", e)
        return _error(e, 409)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_role("ADMIN")
def list_sales_route():
    try:
        start, end = _date_range()
    except ValidationError as e:
        return _error(e, 400)
    sales = sales_service.list_sales(start, end)
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)}), 200


@sales_bp.get("/statistics")
@require_auth
@require_role("ADMIN")
def sales_statistics_route():
    try:
        start, end = _date_range()
    except ValidationError as e:
        return _error(e, 400)
    return jsonify(sales_service.sales_statistics(start, end)), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except SaleNotFoundError as e:
        return _error(e, 404)
    return jsonify({"transaction": sale.to_dict()}), 200
