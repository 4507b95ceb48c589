"""Infrastructure models package exports."""
from .base import Base, metadata
from .store import CartItemModel, CartModel, CustomerModel, ProductModel, TransactionModel

__all__ = [
    "Base",
    "metadata",
    "CustomerModel",
    "ProductModel",
    "CartModel",
    "CartItemModel",
    "TransactionModel",
]
