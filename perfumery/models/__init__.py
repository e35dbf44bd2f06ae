"""Database models package."""

from .user import User
from .product import Product
from .cart import Cart, CartItem
from .preference import UserPreference

__all__ = [
    'User',
    'Product',
    'Cart',
    'CartItem',
    'UserPreference',
]
