# accounting/services/trial_balance_service.py

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Sum
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine
from accounting.services.account_resolver import get_active_chart

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _q2(amount: Decimal | None) -> Decimal:
    return (amount or ZERO).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_minor_int(amount: Decimal) -> int:
    return int((_q2(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


class TrialBalanceService:
    """
    Trial Balance computation service.

    Guarantees:
    - Scopes to provided chart OR the ACTIVE chart
    - Uses POSTED journal_entry.entry_date as accounting timeline
    - Aggregates in bulk (one query for all accounts)
    - Returns JSON-safe values (amounts as strings, minor units as ints)
    """

    def __init__(self, account_model=Account, line_model=JournalLine):
        self.Account = account_model
        self.Line = line_model

    def generate(self, *, chart=None, as_of: date | None = None) -> dict:
        cutoff = as_of or timezone.localdate()
        active_chart = chart or get_active_chart()

        accounts = list(
            self.Account.objects.filter(chart=active_chart)
            .only("id", "code", "name", "account_type")
            .order_by("code")
        )

        rows = (
            self.Line.objects.filter(
                account__chart=active_chart,
                journal_entry__status=JournalEntry.STATUS_POSTED,
                journal_entry__entry_date__lte=cutoff,
            )
            .values("account_id")
            .annotate(debit=Sum("debit"), credit=Sum("credit"))
        )
        totals_by_account = {r["account_id"]: (_q2(r["debit"]), _q2(r["credit"])) for r in rows}

        accounts_output = []
        total_debit = ZERO
        total_credit = ZERO

        for acc in accounts:
            debit, credit = totals_by_account.get(acc.id, (ZERO, ZERO))
            if debit == ZERO and credit == ZERO:
                continue

            balance = debit - credit if acc.is_debit_normal else credit - debit

            accounts_output.append(
                {
                    "account_id": acc.id,
                    "account_code": acc.code,
                    "account_name": acc.name,
                    "account_type": acc.account_type,
                    "debit": str(debit),
                    "credit": str(credit),
                    "balance": str(_q2(balance)),
                }
            )

            total_debit += debit
            total_credit += credit

        total_debit = _q2(total_debit)
        total_credit = _q2(total_credit)

        return {
            "as_of": cutoff.isoformat(),
            "accounts": accounts_output,
            "totals": {
                "debit": str(total_debit),
                "credit": str(total_credit),
                "debit_minor": _to_minor_int(total_debit),
                "credit_minor": _to_minor_int(total_credit),
                "balanced": total_debit == total_credit,
            },
        }
