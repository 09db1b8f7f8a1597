from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z


class SaleTransaction(db.Model):
    """
    Completed sale.

    IMMUTABLE: A sale is written once, together with its lines and the stock
    decrements, and never updated. Corrections are new transactions.
    total_price == sum(line.subtotal) is established at creation.
    """
    __tablename__ = "sale_transactions"
    __table_args__ = (
        db.UniqueConstraint("transaction_no", name="uq_sale_transactions_no"),
        db.Index("ix_sale_transactions_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "TRX-1735689600000")
    transaction_no = db.Column(db.String(64), nullable=False)

    total_price = db.Column(db.Numeric(14, 2), nullable=False)
    payment_method = db.Column(db.String(16), nullable=False, index=True)  # CASH, QRIS
    notes = db.Column(db.String(255), nullable=True)

    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    cashier = db.relationship("User", backref=db.backref("sale_transactions", lazy=True))
    lines = db.relationship(
        "SaleLine",
        back_populates="transaction",
        order_by="SaleLine.id",
        lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_no": self.transaction_no,
            "total_price": str(self.total_price),
            "payment_method": self.payment_method,
            "notes": self.notes,
            "cashier_id": self.cashier_id,
            "cashier": self.cashier.to_dict() if self.cashier else None,
            "created_at": to_utc_z(self.created_at),
            "items": [line.to_dict() for line in self.lines],
        }


class SaleLine(db.Model):
    """
    One product line of a sale.

    `price` and `product_name` are point-in-time copies; later product edits
    (or deletion, which nulls product_id) never change a recorded line.
    """
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("sale_transactions.id"), nullable=False, index=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(14, 2), nullable=False)
    subtotal = db.Column(db.Numeric(14, 2), nullable=False)

    transaction = db.relationship("SaleTransaction", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": str(self.price),
            "subtotal": str(self.subtotal),
        }


class ImmutableRecordError(RuntimeError):
    """Raised when code attempts to modify a written sale record."""


@event.listens_for(SaleTransaction, "before_update")
@event.listens_for(SaleLine, "before_update")
def _reject_sale_updates(mapper, connection, target):
    raise ImmutableRecordError(f"{type(target).__name__} records are immutable")
