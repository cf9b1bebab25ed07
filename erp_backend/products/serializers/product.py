# products/serializers/product.py

"""
PRODUCT SERIALIZER

Purpose:
- Canonical Product serializer.
- quantity_on_hand and cost_price are valuation-engine managed, so they are
  read-only here; stock changes go through /adjust/ or bill approval.
"""

from rest_framework import serializers

from products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    inventory_value = serializers.DecimalField(
        max_digits=16, decimal_places=2, read_only=True
    )
    is_below_reorder_point = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "description",
            "unit_price",
            "cost_price",
            "quantity_on_hand",
            "reorder_point",
            "track_inventory",
            "is_active",
            "inventory_value",
            "is_below_reorder_point",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "cost_price",
            "quantity_on_hand",
            "inventory_value",
            "is_below_reorder_point",
            "created_at",
            "updated_at",
        ]

    def validate_sku(self, value):
        value = (value or "").strip().upper()
        if not value:
            raise serializers.ValidationError("SKU is required")
        return value

    def validate_unit_price(self, value):
        if value is None or value < 0:
            raise serializers.ValidationError("Unit price must be non-negative")
        return value
