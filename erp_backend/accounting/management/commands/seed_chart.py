# accounting/management/commands/seed_chart.py

from django.core.management.base import BaseCommand
from django.db import transaction

from accounting.models.account import Account
from accounting.models.chart import ChartOfAccounts
from accounting.services.account_resolver import clear_active_chart_cache, resolve_code

CHART_NAME = "Standard Chart"
CHART_CODE = "standard"

# (semantic key or None, default code, name, type)
ACCOUNTS = [
    ("CASH", "1000", "Cash", Account.ASSET),
    ("BANK", "1010", "Bank", Account.ASSET),
    (None, "1100", "Accounts Receivable", Account.ASSET),
    ("INVENTORY", "1300", "Inventory", Account.ASSET),
    ("INPUT_TAX", "1400", "Input Tax Receivable", Account.ASSET),
    ("ACCOUNTS_PAYABLE", "2000", "Accounts Payable", Account.LIABILITY),
    (None, "2100", "Sales Tax Payable", Account.LIABILITY),
    (None, "3000", "Owner's Equity", Account.EQUITY),
    (None, "4000", "Sales Revenue", Account.REVENUE),
    (None, "5000", "Cost of Goods Sold", Account.EXPENSE),
    ("INVENTORY_ADJUSTMENT", "5100", "Inventory Adjustments", Account.EXPENSE),
    ("OPERATING_EXPENSES", "6000", "Operating Expenses", Account.EXPENSE),
]


def _activate_only_this_chart(chart: ChartOfAccounts) -> None:
    ChartOfAccounts.objects.exclude(id=chart.id).filter(is_active=True).update(
        is_active=False
    )
    if not chart.is_active:
        chart.is_active = True
        chart.save(update_fields=["is_active"])
    clear_active_chart_cache()


class Command(BaseCommand):
    help = "Seed (idempotently) and activate the standard Chart of Accounts"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding Standard Chart of Accounts...")

        chart, _ = ChartOfAccounts.objects.get_or_create(
            code=CHART_CODE,
            defaults={"name": CHART_NAME, "industry": "General", "is_active": True},
        )
        _activate_only_this_chart(chart)

        created_count = 0
        updated_count = 0

        for semantic_key, default_code, name, account_type in ACCOUNTS:
            # Honour ACCOUNTING_ACCOUNT_CODES overrides so the resolver finds the seeded rows.
            code = resolve_code(semantic_key) if semantic_key else default_code

            acc, acc_created = Account.objects.get_or_create(
                chart=chart,
                code=code,
                defaults={"name": name, "account_type": account_type, "is_active": True},
            )

            if acc_created:
                created_count += 1
                continue

            if (acc.name, acc.account_type, acc.is_active) != (name, account_type, True):
                acc.name = name
                acc.account_type = account_type
                acc.is_active = True
                acc.save(update_fields=["name", "account_type", "is_active", "updated_at"])
                updated_count += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"Standard chart seeded ({created_count} new accounts, {updated_count} updated)."
            )
        )
