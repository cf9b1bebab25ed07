# bills/admin.py

"""
Bills admin.

Bills and lines are read-mostly here: status changes, line edits and
payments go through bills.services so inventory and the ledger stay in step.
"""

from django.contrib import admin

from bills.models import Bill, BillLine, BillPayment, Vendor


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "payment_terms_days", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "email", "tax_id")


class BillLineInline(admin.TabularInline):
    model = BillLine
    extra = 0
    can_delete = False
    readonly_fields = (
        "line_number",
        "product",
        "expense_account",
        "description",
        "quantity",
        "unit_cost",
        "tax_rate",
        "tax_amount",
        "line_total",
    )

    def has_add_permission(self, request, obj=None):
        return False


class BillPaymentInline(admin.TabularInline):
    model = BillPayment
    extra = 0
    can_delete = False
    readonly_fields = ("payment_date", "amount", "payment_method", "reference", "journal_entry")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = (
        "bill_number",
        "vendor",
        "bill_date",
        "due_date",
        "status",
        "total_amount",
        "amount_paid",
    )
    list_filter = ("status", "currency")
    search_fields = ("bill_number", "vendor__name", "vendor_invoice_number")
    ordering = ("-bill_date",)
    list_select_related = ("vendor",)
    inlines = [BillLineInline, BillPaymentInline]
    readonly_fields = (
        "bill_number",
        "status",
        "subtotal",
        "tax_amount",
        "total_amount",
        "amount_paid",
        "created_by",
        "approved_by",
        "approved_at",
        "voided_by",
        "voided_at",
        "created_at",
        "updated_at",
    )

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(BillPayment)
class BillPaymentAdmin(admin.ModelAdmin):
    list_display = ("bill", "payment_date", "amount", "payment_method", "journal_entry")
    list_filter = ("payment_method",)
    search_fields = ("bill__bill_number", "reference")
    list_select_related = ("bill", "journal_entry")

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
