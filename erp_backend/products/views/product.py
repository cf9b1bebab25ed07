# products/views/product.py

"""
PRODUCT VIEWSET

Purpose:
- Product catalogue CRUD (stock fields read-only)
- Inventory movement history per product
- Manual stock adjustments (posted to the ledger)
- Stock transfers between locations (no ledger impact)
- Inventory valuation at weighted-average cost

Routes (mounted under /api/):
    GET|POST   /products/
    GET|PATCH  /products/{id}/
    GET        /products/{id}/movements/
    POST       /products/{id}/adjust/
    POST       /products/{id}/transfer/
    GET        /products/valuation/
"""

import logging

from django.db.models import Q
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.services.exceptions import AccountingServiceError
from products.models import Product
from products.serializers import (
    InventoryMovementSerializer,
    ProductSerializer,
    StockAdjustmentSerializer,
    StockTransferSerializer,
)
from products.services.valuation import (
    InventoryError,
    adjust_stock,
    inventory_valuation,
    transfer_stock,
)

logger = logging.getLogger(__name__)


@extend_schema(tags=["products"])
class ProductViewSet(viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ["get", "post", "patch", "head", "options"]
    filterset_fields = ["track_inventory", "is_active", "sku"]

    def get_queryset(self):
        qs = Product.objects.all().order_by("name")

        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(sku__icontains=q))
        return qs

    @extend_schema(
        responses={200: InventoryMovementSerializer(many=True)},
        description="Inventory movement ledger for one product, newest first.",
    )
    @action(detail=True, methods=["get"], url_path="movements")
    def movements(self, request, pk=None):
        product = self.get_object()
        qs = product.movements.select_related("location", "performed_by").order_by("-created_at")

        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(InventoryMovementSerializer(page, many=True).data)
        return Response(InventoryMovementSerializer(qs, many=True).data)

    @extend_schema(
        request=StockAdjustmentSerializer,
        responses={
            201: InventoryMovementSerializer,
            400: OpenApiResponse(description="Invalid delta, insufficient stock or ledger error"),
        },
    )
    @action(detail=True, methods=["post"], url_path="adjust")
    def adjust(self, request, pk=None):
        product = self.get_object()

        s = StockAdjustmentSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = adjust_stock(
                product=product,
                quantity_delta=data["quantity_delta"],
                unit_cost=data.get("unit_cost"),
                reason=data.get("reason") or "",
                actor=request.user,
            )
        except (InventoryError, AccountingServiceError) as exc:
            logger.warning(
                "Stock adjustment rejected",
                extra={"product_id": str(product.pk), "error": str(exc)},
            )
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        payload = InventoryMovementSerializer(result.movement).data
        payload["journal_entry_id"] = getattr(result.journal_entry, "id", None)
        return Response(payload, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=StockTransferSerializer,
        responses={
            201: OpenApiResponse(description="Paired outbound/inbound transfer movements"),
            400: OpenApiResponse(description="Invalid locations or insufficient stock at source"),
        },
    )
    @action(detail=True, methods=["post"], url_path="transfer")
    def transfer(self, request, pk=None):
        product = self.get_object()

        s = StockTransferSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = transfer_stock(
                product=product,
                from_location=data.get("from_location"),
                to_location=data["to_location"],
                quantity=data["quantity"],
                actor=request.user,
                notes=data.get("notes") or "",
            )
        except InventoryError as exc:
            logger.warning(
                "Stock transfer rejected",
                extra={"product_id": str(product.pk), "error": str(exc)},
            )
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            {
                "transfer_id": str(result.transfer_id),
                "outbound": InventoryMovementSerializer(result.outbound).data,
                "inbound": InventoryMovementSerializer(result.inbound).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        responses={200: OpenApiResponse(description="Per-product and total stock value")},
    )
    @action(detail=False, methods=["get"], url_path="valuation")
    def valuation(self, request):
        return Response(inventory_valuation(), status=status.HTTP_200_OK)
