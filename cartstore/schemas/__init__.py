from .cart import Cart
from .cart_item import CartItem, CartItemCreate

__all__ = ["Cart", "CartItem", "CartItemCreate"]
