# products/views/stock_location.py

"""
STOCK LOCATION VIEWSET

Routes (mounted under /api/):
    GET|POST   /stock-locations/
    GET|PATCH  /stock-locations/{id}/
    GET        /stock-locations/{id}/stock/    ?q=<sku or name>&low_stock=true
"""

from decimal import Decimal

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from products.models import StockLocation
from products.serializers import StockLocationSerializer
from products.services.valuation import location_stock


@extend_schema(tags=["products"])
class StockLocationViewSet(viewsets.ModelViewSet):
    serializer_class = StockLocationSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ["get", "post", "patch", "head", "options"]
    queryset = StockLocation.objects.all().order_by("code")

    @extend_schema(
        parameters=[
            OpenApiParameter("q", str, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("low_stock", bool, OpenApiParameter.QUERY, required=False),
        ],
        responses={200: OpenApiResponse(description="On-hand per product at this location")},
    )
    @action(detail=True, methods=["get"], url_path="stock")
    def stock(self, request, pk=None):
        location = self.get_object()
        items = location_stock(location)

        q = (request.query_params.get("q") or "").strip().lower()
        if q:
            items = [i for i in items if q in i["name"].lower() or q in i["sku"].lower()]

        if (request.query_params.get("low_stock") or "").lower() == "true":
            items = [
                i for i in items
                if Decimal(i["quantity_on_hand"]) <= Decimal(i["reorder_point"])
            ]

        total = sum((Decimal(i["value"]) for i in items), Decimal("0.00"))
        return Response(
            {
                "location": StockLocationSerializer(location).data,
                "items": items,
                "total_value": str(total),
            },
            status=status.HTTP_200_OK,
        )
