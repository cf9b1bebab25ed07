"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .product import Product
from .stock_location import StockLocation, ProductStockLocation
from .inventory_movement import InventoryMovement

__all__ = [
    "Product",
    "StockLocation",
    "ProductStockLocation",
    "InventoryMovement",
]
