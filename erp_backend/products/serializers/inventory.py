# products/serializers/inventory.py

from decimal import Decimal

from rest_framework import serializers

from products.models import InventoryMovement, StockLocation


class StockLocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockLocation
        fields = ["id", "code", "name", "is_default", "is_active", "created_at"]
        read_only_fields = ["id", "created_at"]


class InventoryMovementSerializer(serializers.ModelSerializer):
    location_code = serializers.CharField(source="location.code", read_only=True, default=None)
    performed_by_username = serializers.CharField(
        source="performed_by.username", read_only=True, default=None
    )

    class Meta:
        model = InventoryMovement
        fields = [
            "id",
            "product",
            "location",
            "location_code",
            "movement_type",
            "quantity",
            "unit_cost",
            "total_cost",
            "quantity_before",
            "quantity_after",
            "cost_before",
            "cost_after",
            "reference_type",
            "reference_id",
            "journal_entry",
            "performed_by",
            "performed_by_username",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class StockAdjustmentSerializer(serializers.Serializer):
    """
    Input for POST /products/{id}/adjust/.

    quantity_delta: +N (found) or -N (written off)
    unit_cost: optional valuation for positive deltas (defaults to average cost)
    """

    quantity_delta = serializers.DecimalField(max_digits=14, decimal_places=3)
    unit_cost = serializers.DecimalField(
        max_digits=14, decimal_places=4, required=False, allow_null=True
    )
    reason = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_quantity_delta(self, value):
        if value == 0:
            raise serializers.ValidationError("quantity_delta cannot be 0")
        return value

    def validate_unit_cost(self, value):
        if value is not None and value < Decimal("0"):
            raise serializers.ValidationError("unit_cost cannot be negative")
        return value


class StockTransferSerializer(serializers.Serializer):
    """
    Input for POST /products/{id}/transfer/.

    from_location: omitted or null moves stock not booked to any location
    """

    from_location = serializers.PrimaryKeyRelatedField(
        queryset=StockLocation.objects.all(), required=False, allow_null=True
    )
    to_location = serializers.PrimaryKeyRelatedField(
        queryset=StockLocation.objects.filter(is_active=True)
    )
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("quantity must be greater than 0")
        return value

    def validate(self, attrs):
        source = attrs.get("from_location")
        if source is not None and source == attrs["to_location"]:
            raise serializers.ValidationError("Cannot transfer to the same location")
        return attrs
