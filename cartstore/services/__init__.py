from .cart_store import CartStore, SqlCartStore, create_cart_store
from .transaction import TransactionRunner

__all__ = ["CartStore", "SqlCartStore", "create_cart_store", "TransactionRunner"]
