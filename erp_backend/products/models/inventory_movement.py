# products/models/inventory_movement.py

"""
INVENTORY MOVEMENT LEDGER

Immutable, append-only record of every change to a product's on-hand
quantity or weighted-average cost.

GUARANTEES:
- Created ONCE, never edited, never deleted
- quantity is signed (+ in, - out); never zero
- before/after snapshots make every row self-describing:
    quantity_after == quantity_before + quantity
- reference_type / reference_id tie the row to its business document
  (e.g. "bill" / <bill id>, "bill_void" / <bill id>)
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .product import Product
from .stock_location import StockLocation


class InventoryMovement(models.Model):
    class MovementType(models.TextChoices):
        PURCHASE = "purchase", "Purchase"
        SALE = "sale", "Sale"
        ADJUSTMENT = "adjustment", "Adjustment"
        RETURN = "return", "Return"
        TRANSFER = "transfer", "Transfer"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="movements"
    )
    location = models.ForeignKey(
        StockLocation,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="movements",
    )

    movement_type = models.CharField(max_length=20, choices=MovementType.choices)

    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    unit_cost = models.DecimalField(max_digits=14, decimal_places=4)
    total_cost = models.DecimalField(max_digits=16, decimal_places=2)

    quantity_before = models.DecimalField(max_digits=14, decimal_places=3)
    quantity_after = models.DecimalField(max_digits=14, decimal_places=3)
    cost_before = models.DecimalField(max_digits=14, decimal_places=4)
    cost_after = models.DecimalField(max_digits=14, decimal_places=4)

    reference_type = models.CharField(max_length=40, blank=True, default="", db_index=True)
    reference_id = models.CharField(max_length=64, blank=True, default="", db_index=True)

    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="inventory_movements",
    )

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_movements",
    )

    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["product", "created_at"], name="movement_product_created_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="movement_reference_idx"),
            models.Index(fields=["movement_type"], name="movement_type_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(quantity=Decimal("0")),
                name="chk_inventory_movement_nonzero_qty",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_after__gte=Decimal("0")),
                name="chk_inventory_movement_after_nonnegative",
            ),
        ]

    def __str__(self):
        return f"{self.movement_type} {self.quantity} x {self.product_id}"

    def clean(self):
        if self.quantity is None or self.quantity == 0:
            raise ValidationError("quantity must be non-zero")

        if self.quantity_before is not None and self.quantity_after is not None:
            if self.quantity_before + self.quantity != self.quantity_after:
                raise ValidationError("quantity_after must equal quantity_before + quantity")

        if self.unit_cost is not None and self.unit_cost < 0:
            raise ValidationError("unit_cost cannot be negative")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("InventoryMovement records are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("InventoryMovement records cannot be deleted")
