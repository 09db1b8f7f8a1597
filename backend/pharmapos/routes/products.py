# Overview: Flask API routes for products, bulk import and stock alerts.

# backend/pharmapos/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication (gateway identity).
- Writes, bulk import and alert reports require the ADMIN role.
"""
from flask import Blueprint, request, jsonify, current_app

from ..models import Product
from ..services import products_service, reporting_service
from ..services.import_files import read_rows, UnsupportedFileError
from ..services.import_service import bulk_import
from ..services.products_service import ProductNotFound
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_role

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
    required_on_create={"name", "sell_price", "stock", "unit"},
    extra_fields={"category", "supplier"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _error(e: Exception, status: int):
    return jsonify({"error": str(e), "details": getattr(e, "details", {})}), status


def _int_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if value < 0:
        raise ValidationError(f"{name} must be >= 0")
    return value


@products_bp.get("")
@require_auth
def list_products():
    products = products_service.list_products()
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    try:
        return jsonify(products_service.get_product(product_id).to_dict())
    except ProductNotFound as e:
        return _error(e, 404)


@products_bp.post("")
@require_auth
@require_role("ADMIN")
def create_product_route():
    """
    Create a product. Accepts category_id or a category name (auto-created
    when new); supplier likewise.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        created = products_service.create_product(patch)
    except ValidationError as e:
        return _error(e, 400)
    except ConflictError as e:
        return _error(e, 409)

    return jsonify(created.to_dict()), 201


@products_bp.put("/<int:product_id>")
@products_bp.patch("/<int:product_id>")
@require_auth
@require_role("ADMIN")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        patch.pop("category", None)
        patch.pop("supplier", None)
        enforce_rules_product(patch)
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return _error(e, 400)
    except ProductNotFound as e:
        return _error(e, 404)

    return jsonify(updated.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("ADMIN")
def delete_product_route(product_id: int):
    try:
        outcome = products_service.delete_product(product_id=product_id)
    except ProductNotFound as e:
        return _error(e, 404)
    except ConflictError as e:
        return _error(e, 409)

    return jsonify({"ok": True, "outcome": outcome}), 200


@products_bp.post("/bulk-import")
@require_auth
@require_role("ADMIN")
def bulk_import_route():
    """
    Import products from JSON {"rows": [...]} or an uploaded CSV/JSON/XLSX file.

    Always 200 once the rows are readable; per-row problems are reported in
    "failed".
    """
    if "file" in request.files:
        upload = request.files["file"]
        try:
            rows = read_rows(upload.filename or "", upload.stream)
        except UnsupportedFileError as e:
            return _error(e, 400)
        except Exception:
            current_app.logger.exception("Failed to parse import file %s", upload.filename)
            return jsonify({"error": "Could not read import file"}), 400
    else:
        data = request.get_json(silent=True) or {}
        rows = data.get("rows", data.get("medicines"))
        if not isinstance(rows, list):
            return jsonify({"error": "rows must be a list"}), 400

    result = bulk_import(rows)
    return jsonify({
        **result,
        "summary": {
            "total": len(rows),
            "created": len(result["success"]),
            "failed": len(result["failed"]),
        },
    }), 200


@products_bp.get("/low-stock")
@require_auth
@require_role("ADMIN")
def low_stock_route():
    try:
        threshold = _int_arg("threshold")
    except ValidationError as e:
        return _error(e, 400)
    products = reporting_service.low_stock(threshold)
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/expiring")
@require_auth
@require_role("ADMIN")
def expiring_route():
    try:
        months = _int_arg("months")
    except ValidationError as e:
        return _error(e, 400)
    products = reporting_service.expiring(months)
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/statistics")
@require_auth
@require_role("ADMIN")
def statistics_route():
    return jsonify(reporting_service.catalog_statistics())
