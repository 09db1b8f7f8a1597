"""initial catalog and sales schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the PharmaPOS schema:
- users: cashier/admin identities referenced by sales
- categories, suppliers: named catalog entities (case-insensitive unique names)
- products: catalog items with on-hand stock (CHECK stock >= 0)
- sale_transactions, sale_lines: immutable sale records with price snapshots
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1d2e3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('uq_categories_name_lower', 'categories', [sa.text('lower(name)')], unique=True)

    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('uq_suppliers_name_lower', 'suppliers', [sa.text('lower(name)')], unique=True)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('plu', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('barcode', sa.String(length=128), nullable=True),
        sa.Column('online_sku', sa.String(length=128), nullable=True),
        sa.Column('sell_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('purchase_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('buy_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('margin', sa.Numeric(7, 2), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('stock_minimal', sa.Integer(), nullable=True),
        sa.Column('stock_maximal', sa.Integer(), nullable=True),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('purchase_unit', sa.String(length=32), nullable=True),
        sa.Column('unit_conversion', sa.Integer(), nullable=True),
        sa.Column('batch_number', sa.String(length=64), nullable=True),
        sa.Column('expiration_date', sa.DateTime(), nullable=True),
        sa.Column('rack_location', sa.String(length=64), nullable=True),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('sell_price >= 0', name='ck_products_sell_price_non_negative'),
        sa.CheckConstraint('purchase_price >= 0', name='ck_products_purchase_price_non_negative'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_plu', 'products', ['plu'])
    op.create_index('ix_products_barcode', 'products', ['barcode'])
    op.create_index('ix_products_category_id', 'products', ['category_id'])
    op.create_index('ix_products_supplier_id', 'products', ['supplier_id'])
    op.create_index('ix_products_active_stock', 'products', ['is_active', 'stock'])
    op.create_index('ix_products_active_expiration', 'products', ['is_active', 'expiration_date'])

    op.create_table(
        'sale_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_no', sa.String(length=64), nullable=False),
        sa.Column('total_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('cashier_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['cashier_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_no', name='uq_sale_transactions_no'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_transactions_created', 'sale_transactions', ['created_at'])
    op.create_index('ix_sale_transactions_cashier_id', 'sale_transactions', ['cashier_id'])
    op.create_index('ix_sale_transactions_payment_method', 'sale_transactions', ['payment_method'])

    op.create_table(
        'sale_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(14, 2), nullable=False),
        sa.Column('subtotal', sa.Numeric(14, 2), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_sale_lines_quantity_positive'),
        sa.ForeignKeyConstraint(['transaction_id'], ['sale_transactions.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_lines_transaction_id', 'sale_lines', ['transaction_id'])
    op.create_index('ix_sale_lines_product_id', 'sale_lines', ['product_id'])


def downgrade():
    op.drop_table('sale_lines')
    op.drop_table('sale_transactions')
    op.drop_table('products')
    op.drop_index('uq_suppliers_name_lower', table_name='suppliers')
    op.drop_table('suppliers')
    op.drop_index('uq_categories_name_lower', table_name='categories')
    op.drop_table('categories')
    op.drop_table('users')
