from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


def _money(value) -> str | None:
    return None if value is None else str(value)


class Category(db.Model):
    """Product category. Names are unique case-insensitively."""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Supplier(db.Model):
    """
    Supplier master data.

    Contact fields are required; suppliers auto-created during an import get
    placeholder contact values (see catalog_service.IdentityResolver).
    """
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=False)
    address = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


db.Index("uq_categories_name_lower", db.func.lower(Category.name), unique=True)
db.Index("uq_suppliers_name_lower", db.func.lower(Supplier.name), unique=True)


class Product(db.Model):
    """
    Sellable catalog item.

    STOCK: `stock` is the on-hand quantity. Sales only change it through
    stock_service.decrement (conditional UPDATE); the CHECK constraint is the
    last line of defense against negative stock.

    PRICES: Stored as NUMERIC. `buy_price` is the legacy name for
    `purchase_price`; both are kept in sync on create/import by
    import_schemas.apply_price_fallbacks.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("sell_price >= 0", name="ck_products_sell_price_non_negative"),
        db.CheckConstraint("purchase_price >= 0", name="ck_products_purchase_price_non_negative"),
        db.Index("ix_products_active_stock", "is_active", "stock"),
        db.Index("ix_products_active_expiration", "is_active", "expiration_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Product Look Up code
    plu = db.Column(db.String(64), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    barcode = db.Column(db.String(128), nullable=True, index=True)
    online_sku = db.Column(db.String(128), nullable=True)

    sell_price = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    purchase_price = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    buy_price = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    margin = db.Column(db.Numeric(7, 2), nullable=True)

    stock = db.Column(db.Integer, nullable=False, default=0)
    stock_minimal = db.Column(db.Integer, nullable=True)
    stock_maximal = db.Column(db.Integer, nullable=True)

    unit = db.Column(db.String(32), nullable=False, default="pcs")
    purchase_unit = db.Column(db.String(32), nullable=True)
    unit_conversion = db.Column(db.Integer, nullable=True)

    batch_number = db.Column(db.String(64), nullable=True)
    expiration_date = db.Column(db.DateTime, nullable=True)
    rack_location = db.Column(db.String(64), nullable=True)
    image_url = db.Column(db.String(512), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plu": self.plu,
            "name": self.name,
            "description": self.description,
            "barcode": self.barcode,
            "online_sku": self.online_sku,
            "sell_price": _money(self.sell_price),
            "purchase_price": _money(self.purchase_price),
            "buy_price": _money(self.buy_price),
            "margin": _money(self.margin),
            "stock": self.stock,
            "stock_minimal": self.stock_minimal,
            "stock_maximal": self.stock_maximal,
            "unit": self.unit,
            "purchase_unit": self.purchase_unit,
            "unit_conversion": self.unit_conversion,
            "batch_number": self.batch_number,
            "expiration_date": to_utc_z(self.expiration_date),
            "rack_location": self.rack_location,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "category_id": self.category_id,
            "category": self.category.name if self.category else None,
            "supplier_id": self.supplier_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
