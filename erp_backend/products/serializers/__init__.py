from .product import ProductSerializer
from .inventory import (
    InventoryMovementSerializer,
    StockAdjustmentSerializer,
    StockLocationSerializer,
    StockTransferSerializer,
)

__all__ = [
    "ProductSerializer",
    "InventoryMovementSerializer",
    "StockAdjustmentSerializer",
    "StockLocationSerializer",
    "StockTransferSerializer",
]
