from .product import ProductViewSet
from .stock_location import StockLocationViewSet

__all__ = ["ProductViewSet", "StockLocationViewSet"]
