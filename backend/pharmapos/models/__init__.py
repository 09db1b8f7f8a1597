from .auth import User
from .catalog import Category, Supplier, Product
from .sales import SaleTransaction, SaleLine, ImmutableRecordError

__all__ = [
    'User',
    'Category', 'Supplier', 'Product',
    'SaleTransaction', 'SaleLine', 'ImmutableRecordError',
]
