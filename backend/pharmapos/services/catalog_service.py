# Overview: Service-layer operations for categories and suppliers, including name-based identity resolution.

"""
Catalog Service

Categories and suppliers are identified by name, case-insensitively. The
IdentityResolver turns free-text names coming from imports into ids,
creating the entity the first time a name is seen.

CACHE SCOPE: A resolver is created per request/batch and passed explicitly.
Two concurrent imports each hold their own resolver; if both introduce the
same new name, the unique index rejects the second insert and that row fails
with DuplicateNameError. Nothing retries it.
"""

from __future__ import annotations

import re

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Supplier, Product
from ..validation import ConflictError, ValidationError

CATEGORY = "category"
SUPPLIER = "supplier"

PLACEHOLDER_PHONE = "-"
PLACEHOLDER_ADDRESS = "-"
PLACEHOLDER_EMAIL_DOMAIN = "supplier.local"

_MODELS = {CATEGORY: Category, SUPPLIER: Supplier}


class DuplicateNameError(ConflictError):
    """Raised when a category/supplier name already exists."""
    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind.capitalize()} name already exists: {name}")
        self.details = {"kind": kind, "name": name}


class EntityInUseError(ConflictError):
    """Raised when deleting a category/supplier that still has products."""
    def __init__(self, kind: str, entity_id: int, product_count: int):
        super().__init__(f"Cannot delete {kind} with existing products")
        self.details = {"kind": kind, "id": entity_id, "product_count": product_count}


class CatalogNotFoundError(LookupError):
    """Raised when a category/supplier id does not exist."""


def _model_for(kind: str):
    model = _MODELS.get(kind)
    if model is None:
        raise ValueError(f"Unknown catalog entity kind: {kind}")
    return model


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "supplier"


def placeholder_supplier_email(name: str) -> str:
    return f"{slugify(name)}@{PLACEHOLDER_EMAIL_DOMAIN}"


def find_by_name(kind: str, name: str):
    """Case-insensitive exact lookup."""
    model = _model_for(kind)
    return (
        db.session.query(model)
        .filter(func.lower(model.name) == name.strip().lower())
        .first()
    )


def _insert(entity, kind: str, name: str) -> None:
    db.session.add(entity)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise DuplicateNameError(kind, name) from exc


class IdentityResolver:
    """
    Name -> id resolution with creation on first sight.

    N lookups of the same new name produce one insert and N-1 cache hits.
    The cache belongs to the caller; never share one instance across
    concurrent requests.
    """

    def __init__(self):
        self.cache: dict[tuple[str, str], int] = {}
        self.created: list[tuple[str, int]] = []

    def resolve(self, kind: str, name: str) -> int:
        _model_for(kind)
        if not name or not name.strip():
            raise ValidationError(f"{kind} name is required")
        display = name.strip()
        key = (kind, display.lower())

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        existing = find_by_name(kind, display)
        if existing is not None:
            entity_id = existing.id
        else:
            if kind == CATEGORY:
                entity = Category(name=display)
            else:
                entity = Supplier(
                    name=display,
                    email=placeholder_supplier_email(display),
                    phone=PLACEHOLDER_PHONE,
                    address=PLACEHOLDER_ADDRESS,
                )
            _insert(entity, kind, display)
            entity_id = entity.id
            self.created.append((kind, entity_id))

        self.cache[key] = entity_id
        return entity_id

    def resolve_category(self, name: str) -> int:
        return self.resolve(CATEGORY, name)

    def resolve_supplier(self, name: str) -> int:
        return self.resolve(SUPPLIER, name)

    def snapshot(self) -> tuple[dict, int]:
        return dict(self.cache), len(self.created)

    def restore(self, snapshot: tuple[dict, int]) -> None:
        """Forget entries whose inserts were rolled back."""
        cache, created_count = snapshot
        self.cache = dict(cache)
        del self.created[created_count:]


def list_categories() -> list[dict]:
    rows = (
        db.session.query(Category, func.count(Product.id))
        .outerjoin(Product, Product.category_id == Category.id)
        .group_by(Category.id)
        .order_by(Category.name.asc())
        .all()
    )
    return [{**c.to_dict(), "product_count": count} for c, count in rows]


def list_suppliers() -> list[dict]:
    rows = (
        db.session.query(Supplier, func.count(Product.id))
        .outerjoin(Product, Product.supplier_id == Supplier.id)
        .group_by(Supplier.id)
        .order_by(Supplier.name.asc())
        .all()
    )
    return [{**s.to_dict(), "product_count": count} for s, count in rows]


def create_category(*, name: str, description: str | None = None) -> Category:
    if not name or not name.strip():
        raise ValidationError("Category name is required")
    name = name.strip()
    if find_by_name(CATEGORY, name) is not None:
        raise DuplicateNameError(CATEGORY, name)

    category = Category(name=name, description=description)
    try:
        _insert(category, CATEGORY, name)
    except DuplicateNameError:
        db.session.rollback()
        raise
    db.session.commit()
    return category


def create_supplier(
    *,
    name: str,
    phone: str,
    address: str,
    email: str | None = None,
) -> Supplier:
    if not name or len(name.strip()) < 2:
        raise ValidationError("Supplier name must be at least 2 characters")
    if not phone or len(phone.strip()) < 5:
        raise ValidationError("Supplier phone must be at least 5 characters")
    if not address or len(address.strip()) < 5:
        raise ValidationError("Supplier address must be at least 5 characters")
    name = name.strip()
    if find_by_name(SUPPLIER, name) is not None:
        raise DuplicateNameError(SUPPLIER, name)

    supplier = Supplier(name=name, phone=phone.strip(), address=address.strip(), email=email)
    try:
        _insert(supplier, SUPPLIER, name)
    except DuplicateNameError:
        db.session.rollback()
        raise
    db.session.commit()
    return supplier


def _delete(kind: str, entity_id: int, fk_column) -> None:
    model = _model_for(kind)
    entity = db.session.get(model, entity_id)
    if entity is None:
        raise CatalogNotFoundError(f"{kind.capitalize()} not found")

    product_count = db.session.query(func.count(Product.id)).filter(fk_column == entity_id).scalar()
    if product_count:
        raise EntityInUseError(kind, entity_id, int(product_count))

    db.session.delete(entity)
    db.session.commit()


def delete_category(category_id: int) -> None:
    _delete(CATEGORY, category_id, Product.category_id)


def delete_supplier(supplier_id: int) -> None:
    _delete(SUPPLIER, supplier_id, Product.supplier_id)
