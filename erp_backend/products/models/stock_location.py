# products/models/stock_location.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models, transaction

from .product import Product


class StockLocation(models.Model):
    """
    A warehouse / shelf / store room.

    At most one location is the default; bill receipts land there.
    Reversals go back to the location each receipt was booked to.
    """

    code = models.SlugField(max_length=32, unique=True)
    name = models.CharField(max_length=120)
    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                fields=["is_default"],
                condition=models.Q(is_default=True),
                name="uniq_default_stock_location",
            ),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError({"name": "name is required"})

    def save(self, *args, **kwargs):
        with transaction.atomic():
            if self.is_default:
                StockLocation.objects.exclude(pk=self.pk).filter(is_default=True).update(
                    is_default=False
                )
            self.full_clean()
            return super().save(*args, **kwargs)


class ProductStockLocation(models.Model):
    """Per-location on-hand for a product (service-managed)."""

    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="stock_locations"
    )
    location = models.ForeignKey(
        StockLocation, on_delete=models.PROTECT, related_name="product_stock"
    )
    quantity_on_hand = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0.000")
    )

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["product", "location"],
                name="uniq_product_stock_location",
            ),
        ]

    def __str__(self):
        return f"{self.product} @ {self.location.code}: {self.quantity_on_hand}"
