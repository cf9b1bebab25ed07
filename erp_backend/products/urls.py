# products/urls.py

"""
PRODUCTS URLS

Mounted under /api/:
    /products/                     (CRUD)
    /products/{id}/movements/
    /products/{id}/adjust/
    /products/valuation/
    /products/{id}/transfer/
    /stock-locations/
    /stock-locations/{id}/stock/
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from products.views import ProductViewSet, StockLocationViewSet

router = SimpleRouter()

router.register(r"products", ProductViewSet, basename="products")
router.register(r"stock-locations", StockLocationViewSet, basename="stock-locations")

urlpatterns = [
    path("", include(router.urls)),
]
