"""
Sales Service - stock-accurate sale processing

A sale moves Validating -> Pricing -> Committing -> Committed, or stops at
Rejected (ProductNotFoundError / InsufficientStockError) or Aborted
(CommitConflictError). Nothing is persisted unless Committed.

Validation and pricing happen in ONE pass inside the write transaction: each
product row is locked, checked, and its sell price copied into the line from
the same read. The stock decrements, the transaction row and its lines are
then committed together.

Lines are checked in cart order and the first failing line is reported;
violations are not aggregated.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import SaleTransaction, SaleLine
from . import stock_service
from .concurrency import begin_write_transaction, run_with_retry
from .document_service import next_transaction_number
from .stock_service import CommitConflictError

CENTS = Decimal("0.01")


class SaleNotFoundError(LookupError):
    """Raised when a sale transaction id does not exist."""


def _price_lines(items: list[dict]) -> list[dict]:
    """Validating + Pricing: lock, check and snapshot each line in order."""
    reserved: dict[int, int] = {}
    priced = []
    for item in items:
        product_id = item["product_id"]
        quantity = item["quantity"]
        product = stock_service.check_available(
            product_id,
            quantity,
            already_reserved=reserved.get(product_id, 0),
        )
        reserved[product_id] = reserved.get(product_id, 0) + quantity

        price = Decimal(product.sell_price).quantize(CENTS)
        priced.append({
            "product_id": product.id,
            "product_name": product.name,
            "quantity": quantity,
            "price": price,
            "subtotal": (price * quantity).quantize(CENTS),
        })
    return priced


def create_sale(
    cashier_id: int,
    items: list[dict],
    payment_method: str,
    notes: str | None = None,
) -> SaleTransaction:
    """
    Create and commit a sale for `items` ([{"product_id", "quantity"}]).

    `cashier_id` comes from the auth layer and is trusted as-is. Input shape
    (positive quantities, payment method) is validated at the boundary by
    validation.validate_sale_request.

    Raises:
        ProductNotFoundError, InsufficientStockError: not retriable without
            changing the cart.
        CommitConflictError: concurrent change or number collision; resubmit.
    """
    def _op() -> SaleTransaction:
        try:
            begin_write_transaction()
            priced = _price_lines(items)
            total = sum((line["subtotal"] for line in priced), Decimal("0.00"))

            sale = SaleTransaction(
                transaction_no=next_transaction_number(),
                total_price=total,
                payment_method=payment_method,
                notes=notes,
                cashier_id=cashier_id,
            )
            db.session.add(sale)
            for line in priced:
                sale.lines.append(SaleLine(**line))
            db.session.flush()

            for line in priced:
                stock_service.decrement(line["product_id"], line["quantity"])

            db.session.commit()
            return sale
        except IntegrityError as exc:
            db.session.rollback()
            raise CommitConflictError(
                "Sale could not be committed; please retry",
                details={"reason": str(exc.orig)},
            ) from exc
        except (OperationalError, StaleDataError):
            # run_with_retry rolls back and retries these
            raise
        except Exception:
            db.session.rollback()
            raise

    try:
        sale = run_with_retry(_op)
    except (OperationalError, StaleDataError) as exc:
        raise CommitConflictError("Database busy; please retry") from exc

    current_app.logger.info(
        "Sale %s committed by cashier %s: %d line(s), total %s",
        sale.transaction_no, cashier_id, len(items), sale.total_price,
    )
    return sale


def get_sale(sale_id: int) -> SaleTransaction:
    sale = db.session.get(SaleTransaction, sale_id)
    if sale is None:
        raise SaleNotFoundError("Transaction not found")
    return sale


def _date_filtered(query, start: datetime | None, end: datetime | None):
    if start is not None:
        query = query.filter(SaleTransaction.created_at >= start)
    if end is not None:
        query = query.filter(SaleTransaction.created_at <= end)
    return query


def list_sales(start: datetime | None = None, end: datetime | None = None) -> list[SaleTransaction]:
    """Newest first; both bounds inclusive."""
    query = _date_filtered(db.session.query(SaleTransaction), start, end)
    return query.order_by(SaleTransaction.created_at.desc(), SaleTransaction.id.desc()).all()


def sales_statistics(start: datetime | None = None, end: datetime | None = None) -> dict:
    query = _date_filtered(
        db.session.query(
            func.count(SaleTransaction.id),
            func.coalesce(func.sum(SaleTransaction.total_price), 0),
        ),
        start,
        end,
    )
    count, total = query.one()
    return {
        "total_transactions": int(count or 0),
        "total_sales": str(Decimal(str(total or 0)).quantize(CENTS)),
    }
