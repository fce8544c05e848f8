from .auth import User, SessionToken
from .inventory import Category, InventoryItem, StockMovement, MOVEMENT_TYPES
from .sales import Sale

__all__ = [
    'User', 'SessionToken',
    'Category', 'InventoryItem', 'StockMovement', 'MOVEMENT_TYPES',
    'Sale',
]
