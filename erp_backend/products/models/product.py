# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

QTY_PLACES = Decimal("0.001")
COST_PLACES = Decimal("0.0001")


class Product(models.Model):
    """
    A purchasable / sellable item.

    STOCK MODEL (IMPORTANT):
    - quantity_on_hand and cost_price (weighted-average unit cost) are
      service-managed: only products.services.valuation mutates them, and every
      mutation appends an InventoryMovement.
    - Non-tracked products (services, consumables) never get movements;
      bills expense them instead.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, default="")

    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Default selling price",
    )

    cost_price = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Weighted-average unit cost (service-managed)",
    )

    quantity_on_hand = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal("0.000"),
        help_text="Service-managed; changes only through inventory movements",
    )

    reorder_point = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal("0.000"),
    )

    track_inventory = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["sku"], name="product_sku_idx"),
            models.Index(fields=["name"], name="product_name_idx"),
            models.Index(fields=["track_inventory", "is_active"], name="product_tracked_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_on_hand__gte=Decimal("0")),
                name="product_on_hand_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(cost_price__gte=Decimal("0")),
                name="product_cost_price_nonnegative",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    @property
    def is_below_reorder_point(self) -> bool:
        return self.track_inventory and self.quantity_on_hand <= self.reorder_point

    @property
    def inventory_value(self) -> Decimal:
        return (self.quantity_on_hand * self.cost_price).quantize(Decimal("0.01"))

    def clean(self):
        self.sku = (self.sku or "").strip()
        self.name = (self.name or "").strip()

        if not self.sku:
            raise ValidationError({"sku": "sku is required"})
        if not self.name:
            raise ValidationError({"name": "name is required"})
        if self.unit_price is not None and self.unit_price < 0:
            raise ValidationError({"unit_price": "unit_price cannot be negative"})
        if self.reorder_point is not None and self.reorder_point < 0:
            raise ValidationError({"reorder_point": "reorder_point cannot be negative"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
