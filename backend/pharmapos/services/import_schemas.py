"""
Product import schema: maps loosely-typed spreadsheet rows onto the
canonical product payload.

Every accepted column spelling lives in PRODUCT_COLUMN_ALIASES. Matching is
exact and ordered; the first alias with a non-empty value wins.

Nothing here touches the database. Malformed cells degrade to a fallback
(0 for required numbers, None for optional ones) so one bad cell never blocks
a row; rows that are unusable (no name, no category) are rejected later by
the reconciler.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from ..time_utils import parse_iso_datetime


PRODUCT_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "plu": ("PLU", "plu", "Plu"),
    "name": ("Item Name", "name", "Name", "item_name", "itemName"),
    "description": ("Description", "description"),
    "barcode": ("Barcode", "barcode"),
    "online_sku": ("Online SKU", "onlineSku", "online_sku"),
    "sell_price": ("Sales Price", "sellPrice", "sell_price"),
    "purchase_price": ("Purchase Price", "purchasePrice", "purchase_price"),
    "buy_price": ("Buy Price", "buyPrice", "buy_price"),
    "margin": ("Margin", "margin"),
    "stock": ("Stock", "stock", "Qty", "qty"),
    "stock_minimal": ("Stock Minimal", "stockMinimal", "stock_minimal"),
    "stock_maximal": ("Stock Maximal", "stockMaximal", "stock_maximal"),
    "unit": ("Unit Code", "unit", "unitCode", "unit_code", "Unit"),
    "purchase_unit": ("Purchase Unit Code", "purchaseUnitCode", "purchase_unit_code", "purchase_unit"),
    "unit_conversion": ("Unit Conversion", "unitConversion", "unit_conversion"),
    "batch_number": ("Batch Number", "batchNumber", "batch_number"),
    "expiration_date": ("Expiration Date", "expirationDate", "expiration_date", "Expired Date"),
    "rack_location": ("Rack Location", "rackLocation", "rack_location"),
    "image_url": ("Image URL", "imageUrl", "image_url"),
    "status": ("Status", "status"),
    "is_active": ("isActive", "is_active", "Is Active"),
    "category_id": ("categoryId", "category_id", "Category ID"),
    "category": ("Category", "category", "Category Name", "categoryName"),
    "supplier_id": ("supplierId", "supplier_id", "Supplier ID"),
    "supplier": ("Supplier", "supplier", "Supplier Name", "supplierName"),
}

TEXT_FIELDS = (
    "plu", "name", "description", "barcode", "online_sku", "unit", "purchase_unit",
    "batch_number", "rack_location", "image_url", "category", "supplier",
)
INT_FIELDS = ("stock",)
OPTIONAL_INT_FIELDS = ("stock_minimal", "stock_maximal", "unit_conversion", "category_id", "supplier_id")
DECIMAL_FIELDS = ("sell_price",)
OPTIONAL_DECIMAL_FIELDS = ("purchase_price", "buy_price", "margin")

# Case-sensitive: the literal values vendor exports use for an active item.
ACTIVE_STATUS_VALUES = frozenset({"active", "Aktif"})

DEFAULT_UNIT = "pcs"

_DATE_FORMATS = ("%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def pick(raw_row: dict[str, Any], field: str) -> Any:
    """Return the first non-empty value among the aliases of `field`, else None."""
    for alias in PRODUCT_COLUMN_ALIASES[field]:
        if alias in raw_row and _present(raw_row[alias]):
            return raw_row[alias]
    return None


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        # Spreadsheet cells like PLU 1001 arrive as 1001.0
        value = int(value)
    text = str(value).strip()
    return text if text else None


def _to_int(value: Any, fallback: int | None = 0) -> int | None:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        if isinstance(value, (float, Decimal)):
            return int(value)
        text = str(value).strip().replace(",", "")
        if not text:
            return fallback
        return int(float(text))
    except (ValueError, OverflowError, InvalidOperation):
        return fallback


def _to_decimal(value: Any, fallback: Decimal | None = Decimal("0")) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, Decimal):
        return value if value.is_finite() else fallback
    text = str(value).strip()
    for token in ("Rp", "rp", "$", ",", " "):
        text = text.replace(token, "")
    if not text:
        return fallback
    try:
        dec = Decimal(text)
    except InvalidOperation:
        return fallback
    return dec if dec.is_finite() else fallback


def _to_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    try:
        return parse_iso_datetime(text)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _to_explicit_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def resolve_is_active(status: Any, explicit: bool | None) -> bool:
    """
    Derive the active flag from a status string and an optional explicit
    boolean.

    A recognised active status wins over the boolean. Otherwise an explicit
    boolean decides, and a row with neither stays active.
    """
    if status in ACTIVE_STATUS_VALUES:
        return True
    if explicit is not None:
        return explicit
    return True


def apply_price_fallbacks(payload: dict[str, Any]) -> dict[str, Any]:
    """
    purchase_price and buy_price mirror each other when only one is given;
    both default to 0 when neither is.

    Shared by the create path and the import path.
    """
    out = dict(payload)
    purchase = out.get("purchase_price")
    buy = out.get("buy_price")
    if purchase is None and buy is not None:
        purchase = buy
    elif buy is None and purchase is not None:
        buy = purchase
    out["purchase_price"] = purchase if purchase is not None else Decimal("0")
    out["buy_price"] = buy if buy is not None else Decimal("0")
    return out


def normalize_product_row(raw_row: dict[str, Any]) -> dict[str, Any]:
    """
    Map one raw import row onto the canonical product payload.

    category / supplier stay as free-text names; category_id / supplier_id
    are only set when the row carries them explicitly.
    """
    raw_row = raw_row if isinstance(raw_row, dict) else {}
    normalized: dict[str, Any] = {}

    for field in TEXT_FIELDS:
        normalized[field] = _to_text(pick(raw_row, field))
    for field in INT_FIELDS:
        normalized[field] = _to_int(pick(raw_row, field))
    for field in OPTIONAL_INT_FIELDS:
        normalized[field] = _to_int(pick(raw_row, field), fallback=None)
    for field in DECIMAL_FIELDS:
        normalized[field] = _to_decimal(pick(raw_row, field))
    for field in OPTIONAL_DECIMAL_FIELDS:
        normalized[field] = _to_decimal(pick(raw_row, field), fallback=None)

    normalized["expiration_date"] = _to_datetime(pick(raw_row, "expiration_date"))
    normalized["unit"] = normalized["unit"] or DEFAULT_UNIT
    normalized["is_active"] = resolve_is_active(
        _to_text(pick(raw_row, "status")),
        _to_explicit_bool(pick(raw_row, "is_active")),
    )

    return apply_price_fallbacks(normalized)
