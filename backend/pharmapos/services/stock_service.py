# Overview: Stock ledger; the only code path that lowers a product's on-hand quantity.

"""
Stock Ledger

Invariants:
- products.stock never goes negative (CHECK constraint + conditional UPDATE).
- check_available and decrement run inside the caller's transaction; neither
  commits. The sale processor owns the atomic scope.
- check_available locks the product row (FOR UPDATE) so the value it checked
  is the value decrement sees. decrement still re-verifies in SQL
  (WHERE stock >= :quantity) and treats zero affected rows as a conflict.

Administrative stock edits (full replace) go through products_service and
are not guarded here.
"""

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import Product
from .concurrency import lock_for_update


class StockError(Exception):
    """Base class for stock/sale domain errors."""
    retriable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFoundError(StockError):
    def __init__(self, product_id: int):
        super().__init__(
            f"Product with ID {product_id} not found",
            details={"product_id": product_id},
        )
        self.product_id = product_id


class InsufficientStockError(StockError):
    def __init__(self, product_id: int, available: int, requested: int, product_name: str | None = None):
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, Requested: {requested}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class CommitConflictError(StockError):
    """Concurrent modification detected at commit time. Resubmitting may succeed."""
    retriable = True

    def __init__(self, message: str = "Stock changed while committing; please retry", details: dict | None = None):
        super().__init__(message, details={**(details or {}), "retriable": True})


def check_available(
    product_id: int,
    quantity: int,
    *,
    already_reserved: int = 0,
    lock: bool = True,
) -> Product:
    """
    Return the product if `already_reserved + quantity` units are on hand.

    `already_reserved` covers earlier lines of the same cart for the same
    product, so a cart with the product twice is checked against its total.
    """
    query = db.session.query(Product).filter(Product.id == product_id)
    if lock:
        query = lock_for_update(query)
    product = query.populate_existing().first()
    if product is None:
        raise ProductNotFoundError(product_id)

    requested = already_reserved + quantity
    if product.stock < requested:
        raise InsufficientStockError(product.id, product.stock, requested, product.name)
    return product


def decrement(product_id: int, quantity: int) -> None:
    """
    Lower stock by `quantity` iff enough is on hand. Must run inside the
    sale's transaction; never commits.
    """
    if quantity <= 0:
        raise ValueError("quantity must be > 0")

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity, version_id=Product.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise CommitConflictError(
            details={"product_id": product_id, "requested": quantity},
        )

    # Keep any loaded instance in sync with the row we just changed.
    product = db.session.identity_map.get(db.session.identity_key(Product, product_id))
    if product is not None:
        db.session.expire(product, ["stock", "version_id"])
