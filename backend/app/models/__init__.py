from app.models.user import User
from app.models.lookup import Category, Manufacturer, Unit
from app.models.product import Product
from app.models.transaction import Transaction, TransactionItem
from app.models.stock import Stock

__all__ = [
    "User",
    "Category",
    "Manufacturer",
    "Unit",
    "Product",
    "Transaction",
    "TransactionItem",
    "Stock",
]
