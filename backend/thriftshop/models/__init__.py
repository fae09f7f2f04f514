from .catalog import Product, ProductImage
from .auth import User, SessionToken, ROLE_USER, ROLE_ADMIN

__all__ = [
    'Product', 'ProductImage',
    'User', 'SessionToken', 'ROLE_USER', 'ROLE_ADMIN',
]
