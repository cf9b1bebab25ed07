# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules:

- Products are edited here except for stock fields; quantity_on_hand and
  cost_price change only through the valuation engine (bill approval,
  void, /adjust/).
- Movements and per-location quantities are read-only audit rows.
"""

from django.contrib import admin

from products.models import InventoryMovement, Product, ProductStockLocation, StockLocation


class ProductStockLocationInline(admin.TabularInline):
    model = ProductStockLocation
    extra = 0
    can_delete = False
    readonly_fields = ("location", "quantity_on_hand", "updated_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "sku",
        "name",
        "quantity_on_hand",
        "cost_price",
        "unit_price",
        "track_inventory",
        "is_active",
    )
    list_filter = ("track_inventory", "is_active")
    search_fields = ("sku", "name")
    ordering = ("name",)
    readonly_fields = ("quantity_on_hand", "cost_price", "created_at", "updated_at")
    inlines = [ProductStockLocationInline]


@admin.register(StockLocation)
class StockLocationAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "is_default", "is_active")
    list_filter = ("is_default", "is_active")
    search_fields = ("code", "name")


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "product",
        "movement_type",
        "quantity",
        "unit_cost",
        "cost_after",
        "reference_type",
        "reference_id",
        "journal_entry",
    )
    list_filter = ("movement_type", "reference_type")
    search_fields = ("product__sku", "product__name", "reference_id")
    ordering = ("-created_at",)
    list_select_related = ("product", "journal_entry")

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
