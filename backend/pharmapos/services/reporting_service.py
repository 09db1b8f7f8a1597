# Overview: Read-only stock alerts (low stock, near expiry) and catalog counts.

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Product
from ..time_utils import add_months, utcnow


def _threshold(value: int | None) -> int:
    if value is None:
        return int(current_app.config.get("LOW_STOCK_THRESHOLD", 10))
    return value


def _months(value: int | None) -> int:
    if value is None:
        return int(current_app.config.get("EXPIRY_MONTHS_AHEAD", 3))
    return value


def _low_stock_query(threshold: int):
    return db.session.query(Product).filter(
        Product.is_active.is_(True),
        Product.stock <= threshold,
    )


def _expiring_query(months: int, now: datetime):
    return db.session.query(Product).filter(
        Product.is_active.is_(True),
        Product.expiration_date.isnot(None),
        Product.expiration_date >= now,
        Product.expiration_date <= add_months(now, months),
    )


def low_stock(threshold: int | None = None) -> list[Product]:
    """Active products with stock <= threshold, lowest stock first."""
    threshold = _threshold(threshold)
    return (
        _low_stock_query(threshold)
        .order_by(Product.stock.asc(), Product.id.asc())
        .all()
    )


def expiring(months: int | None = None, *, now: datetime | None = None) -> list[Product]:
    """
    Active products expiring within [now, now + months], soonest first.
    Products without an expiration date are never included.
    """
    months = _months(months)
    now = now or utcnow()
    return (
        _expiring_query(months, now)
        .order_by(Product.expiration_date.asc(), Product.id.asc())
        .all()
    )


def catalog_statistics(*, now: datetime | None = None) -> dict:
    now = now or utcnow()
    return {
        "total_products": db.session.query(Product).filter(Product.is_active.is_(True)).count(),
        "low_stock_count": _low_stock_query(_threshold(None)).count(),
        "expiring_count": _expiring_query(_months(None), now).count(),
    }
