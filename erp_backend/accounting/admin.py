# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.chart import ChartOfAccounts
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine


class ReadOnlyAdminMixin:
    """Journal records are posted by services only and never edited."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# CHART OF ACCOUNTS
# ============================================================


@admin.register(ChartOfAccounts)
class ChartOfAccountsAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "industry", "is_active", "updated_at")
    list_filter = ("is_active",)
    search_fields = ("name", "code", "industry")
    readonly_fields = ("created_at", "updated_at")
    ordering = ("name",)


# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "account_type", "chart", "is_active")
    list_filter = ("account_type", "is_active", "chart")
    search_fields = ("code", "name")
    ordering = ("chart", "code")
    readonly_fields = ("created_at", "updated_at")


# ============================================================
# JOURNAL ENTRY (READ-ONLY)
# ============================================================


class JournalLineInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = JournalLine
    extra = 0
    fields = ("line_number", "account", "debit", "credit", "description")
    readonly_fields = fields


@admin.register(JournalEntry)
class JournalEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "entry_date",
        "description",
        "source_module",
        "reference",
        "status",
        "created_at",
    )
    list_filter = ("source_module", "status", "entry_date")
    search_fields = ("description", "reference", "source_document_id")
    ordering = ("-entry_date", "-created_at")
    inlines = [JournalLineInline]
    readonly_fields = (
        "reference",
        "entry_date",
        "description",
        "source_module",
        "source_document_type",
        "source_document_id",
        "status",
        "reverses",
        "created_by",
        "posted_at",
        "created_at",
    )


# ============================================================
# JOURNAL LINE (STRICTLY IMMUTABLE)
# ============================================================


@admin.register(JournalLine)
class JournalLineAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("id", "journal_entry", "account", "debit", "credit", "created_at")
    list_filter = ("account",)
    search_fields = ("journal_entry__reference", "account__code")
    ordering = ("created_at",)
