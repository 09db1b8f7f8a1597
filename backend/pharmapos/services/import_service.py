# Overview: Bulk product import; reconciles spreadsheet rows into products with per-row failure isolation.

"""
Bulk Import Reconciler

Rows are processed in order and committed one at a time. A failing row is
rolled back on its own and recorded in `failed`; earlier successes stay
committed and later rows still run (row-atomic, not batch-atomic).

Category/supplier names are resolved through one IdentityResolver per call,
so a new name referenced by many rows is created once.
"""

from __future__ import annotations

from typing import Any

from flask import current_app

from ..extensions import db
from .catalog_service import IdentityResolver
from .import_schemas import normalize_product_row
from .products_service import create_product


def _error_message(exc: Exception) -> str:
    message = str(exc).strip()
    return message or type(exc).__name__


def bulk_import(
    rows: list[dict[str, Any]],
    *,
    resolver: IdentityResolver | None = None,
) -> dict[str, list]:
    """
    Import already-parsed rows.

    Returns {"success": [product dicts], "failed": [{"index", "row", "error"}]}.
    Both lists keep input order and together account for every input row.
    """
    resolver = resolver if resolver is not None else IdentityResolver()
    success: list[dict] = []
    failed: list[dict] = []

    for index, row in enumerate(rows):
        checkpoint = resolver.snapshot()
        try:
            normalized = normalize_product_row(row)
            product = create_product(normalized, resolver=resolver, commit=False)
            db.session.commit()
            success.append(product.to_dict())
        except Exception as exc:  # noqa: BLE001
            db.session.rollback()
            resolver.restore(checkpoint)
            message = _error_message(exc)
            failed.append({"index": index, "row": row, "error": message})
            current_app.logger.warning("Import row %d rejected: %s", index, message)

    current_app.logger.info(
        "Bulk import finished: %d row(s), %d created, %d failed",
        len(rows), len(success), len(failed),
    )
    return {"success": success, "failed": failed}
