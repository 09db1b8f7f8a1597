# backend/pharmapos/services/products_service.py
"""
Products Service

create_product is the single creation path: the HTTP create route and the
bulk import both go through it, so price fallbacks, category resolution and
validation behave identically for both.

DELETE POLICY (config PRODUCT_DELETE_POLICY):
- "independent": hard delete regardless of sale history. Historical sale
  lines keep their name/price snapshot and lose the product link.
- "guarded": refuse to delete a product referenced by any sale line.
- "deactivate": referenced products are soft-deleted (is_active=False);
  unreferenced ones are hard-deleted.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Category, Product, SaleLine, Supplier
from ..validation import ConflictError, ValidationError, enforce_rules_product
from .catalog_service import IdentityResolver
from .import_schemas import apply_price_fallbacks

PRODUCT_MUTABLE_FIELDS = {
    "plu", "name", "description", "barcode", "online_sku",
    "sell_price", "purchase_price", "buy_price", "margin",
    "stock", "stock_minimal", "stock_maximal",
    "unit", "purchase_unit", "unit_conversion",
    "batch_number", "expiration_date", "rack_location", "image_url",
    "is_active", "category_id", "supplier_id",
}

DELETE_POLICIES = ("independent", "guarded", "deactivate")


class ProductNotFound(LookupError):
    """Raised when a product id does not exist (catalog CRUD)."""


class CategoryRequiredError(ValidationError):
    """Raised when a product has neither a category id nor a category name."""
    def __init__(self):
        super().__init__("Category is required (categoryId or category name)")
        self.details = {"field": "category"}


class ProductInUseError(ConflictError):
    """Raised by the "guarded" delete policy when sale history references the product."""
    def __init__(self, product_id: int, line_count: int):
        super().__init__("Cannot delete product referenced by sale transactions")
        self.details = {"product_id": product_id, "sale_line_count": line_count}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _require_existing(model, entity_id: int, label: str) -> None:
    if db.session.get(model, entity_id) is None:
        raise ValidationError(f"{label} {entity_id} not found")


def _resolve_references(payload: dict, resolver: IdentityResolver) -> dict:
    """
    Fill category_id / supplier_id. Explicit ids win; names are only
    resolved when no id was given.
    """
    out = dict(payload)

    if out.get("category_id") is not None:
        _require_existing(Category, out["category_id"], "Category")
    elif out.get("category"):
        out["category_id"] = resolver.resolve_category(out["category"])
    else:
        raise CategoryRequiredError()

    if out.get("supplier_id") is not None:
        _require_existing(Supplier, out["supplier_id"], "Supplier")
    elif out.get("supplier"):
        out["supplier_id"] = resolver.resolve_supplier(out["supplier"])

    return out


def create_product(
    payload: dict,
    *,
    resolver: IdentityResolver | None = None,
    commit: bool = True,
) -> Product:
    """
    Create a product from a canonical payload (validated route patch or a
    normalized import row).

    Raises:
        ValidationError: missing name, negative price/stock, unknown ids
        CategoryRequiredError: no category id and no category name
        DuplicateNameError: auto-created category/supplier collided
    """
    if not payload.get("name"):
        raise ValidationError("name is required")

    resolver = resolver if resolver is not None else IdentityResolver()
    payload = apply_price_fallbacks(payload)
    enforce_rules_product(payload)

    try:
        payload = _resolve_references(payload, resolver)

        p = Product()
        apply_product_patch(p, payload)
        if p.stock is None:
            p.stock = 0
        if p.sell_price is None:
            p.sell_price = 0
        if not p.unit:
            p.unit = "pcs"
        if p.is_active is None:
            p.is_active = True

        db.session.add(p)
        db.session.flush()
    except Exception:
        # Batch callers (bulk import) own the rollback.
        if commit:
            db.session.rollback()
        raise

    if commit:
        db.session.commit()
    return p


def list_products() -> list[Product]:
    return (
        db.session.query(Product)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .all()
    )


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise ProductNotFound("Product not found")
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Administrative edit. May replace stock outright; this is the one stock
    write that does not go through stock_service.
    """
    p = get_product(product_id)
    enforce_rules_product(patch)

    if "category_id" in patch:
        if patch["category_id"] is None:
            raise CategoryRequiredError()
        _require_existing(Category, patch["category_id"], "Category")
    if patch.get("supplier_id") is not None:
        _require_existing(Supplier, patch["supplier_id"], "Supplier")

    apply_product_patch(p, patch)
    db.session.commit()
    return p


def delete_product(*, product_id: int, policy: str | None = None) -> str:
    """
    Delete according to `policy` (defaults to config). Returns "deleted" or
    "deactivated".
    """
    policy = policy or current_app.config.get("PRODUCT_DELETE_POLICY", "independent")
    if policy not in DELETE_POLICIES:
        raise ValueError(f"Unknown PRODUCT_DELETE_POLICY: {policy}")

    p = get_product(product_id)
    line_count = (
        db.session.query(func.count(SaleLine.id))
        .filter(SaleLine.product_id == product_id)
        .scalar()
    ) or 0

    if line_count and policy == "guarded":
        raise ProductInUseError(product_id, int(line_count))

    if line_count and policy == "deactivate":
        p.is_active = False
        db.session.commit()
        return "deactivated"

    db.session.delete(p)
    db.session.commit()
    return "deleted"
