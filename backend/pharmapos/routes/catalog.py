# Overview: Flask API routes for categories and suppliers.

from flask import Blueprint, request, jsonify

from ..services import catalog_service
from ..services.catalog_service import CatalogNotFoundError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_role

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


def _error(e: Exception, status: int):
    return jsonify({"error": str(e), "details": getattr(e, "details", {})}), status


@categories_bp.get("")
@require_auth
def list_categories_route():
    items = catalog_service.list_categories()
    return jsonify({"items": items, "count": len(items)})


@categories_bp.post("")
@require_auth
@require_role("ADMIN")
def create_category_route():
    data = request.get_json(silent=True) or {}
    try:
        category = catalog_service.create_category(
            name=data.get("name") or "",
            description=data.get("description"),
        )
    except ValidationError as e:
        return _error(e, 400)
    except ConflictError as e:
        return _error(e, 409)
    return jsonify(category.to_dict()), 201


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_role("ADMIN")
def delete_category_route(category_id: int):
    try:
        catalog_service.delete_category(category_id)
    except CatalogNotFoundError as e:
        return _error(e, 404)
    except ConflictError as e:
        return _error(e, 409)
    return jsonify({"message": "Category deleted successfully"}), 200


@suppliers_bp.get("")
@require_auth
def list_suppliers_route():
    items = catalog_service.list_suppliers()
    return jsonify({"items": items, "count": len(items)})


@suppliers_bp.post("")
@require_auth
@require_role("ADMIN")
def create_supplier_route():
    data = request.get_json(silent=True) or {}
    try:
        supplier = catalog_service.create_supplier(
            name=data.get("name") or "",
            phone=data.get("phone") or "",
            address=data.get("address") or "",
            email=data.get("email"),
        )
    except ValidationError as e:
        return _error(e, 400)
    except ConflictError as e:
        return _error(e, 409)
    return jsonify(supplier.to_dict()), 201


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_role("ADMIN")
def delete_supplier_route(supplier_id: int):
    try:
        catalog_service.delete_supplier(supplier_id)
    except CatalogNotFoundError as e:
        return _error(e, 404)
    except ConflictError as e:
        return _error(e, 409)
    return jsonify({"message": "Supplier deleted successfully"}), 200
