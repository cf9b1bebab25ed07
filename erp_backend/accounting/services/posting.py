# accounting/services/posting.py

"""
======================================================
PATH: accounting/services/posting.py
======================================================
POSTING ADAPTER

Build postings for business events and call the engine
(journal_entry_service.post_journal_entry).

This module stays a thin adapter:
- It DOES NOT do workflows (bill_service / bill_inventory orchestrate).
- It DOES map business events -> balanced postings.
- It ALWAYS goes through the engine for immutability + idempotency.

Events:
- Bill approval:  Dr Inventory / Expense / Input Tax, Cr Accounts Payable
- Bill void:      reversing entry of the approval entry
- Bill payment:   Dr Accounts Payable, Cr Cash/Bank
- Stock adjust:   Dr/Cr Inventory against Inventory Adjustments

Negative amounts (returns on a bill) flip the side of the leg, so a bill that
mixes receipts and returns still balances.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.services.account_resolver import (
    get_accounts_payable_account,
    get_inventory_account,
    get_inventory_adjustment_account,
)
from accounting.services.journal_entry_service import (
    find_journal_entry,
    post_journal_entry,
    reverse_journal_entry,
)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

BILL_APPROVAL_REF = "BILL_APPROVAL"
BILL_VOID_REF = "BILL_VOID"
BILL_PAYMENT_REF = "BILL_PAYMENT"
INVENTORY_ADJUSTMENT_REF = "INVENTORY_ADJUSTMENT"


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _signed_leg(account: Account, amount: Decimal, description: str) -> dict | None:
    """Positive amount -> debit, negative -> credit, zero -> no leg."""
    amount = _money(amount)
    if amount > 0:
        return {"account": account, "debit": amount, "credit": ZERO, "description": description}
    if amount < 0:
        return {"account": account, "debit": ZERO, "credit": -amount, "description": description}
    return None


def _bill_label(bill) -> str:
    vendor = getattr(getattr(bill, "vendor", None), "name", "") or "vendor"
    number = getattr(bill, "bill_number", "") or str(bill.id)
    return f"Bill {number} ({vendor})"


def get_bill_approval_entry(*, bill) -> JournalEntry | None:
    return find_journal_entry(reference_type=BILL_APPROVAL_REF, reference_id=bill.id)


def post_bill_approval_to_ledger(
    *,
    bill,
    debits_by_account: dict[Account, Decimal],
    entry_date: date | None = None,
    source_module: str = JournalEntry.SOURCE_INVENTORY,
    created_by=None,
) -> JournalEntry | None:
    """
    One aggregate entry per approval.

    debits_by_account holds the signed amount each account absorbs
    (inventory, expense, input tax). Accounts Payable takes the opposite
    of their sum. Returns None when every amount nets to zero.
    """
    label = _bill_label(bill)
    lines: list[dict] = []
    total = ZERO

    for account, amount in debits_by_account.items():
        amount = _money(amount)
        leg = _signed_leg(account, amount, label)
        if leg is not None:
            lines.append(leg)
            total += amount

    if not lines:
        return None

    ap_leg = _signed_leg(get_accounts_payable_account(), -total, label)
    if ap_leg is not None:
        lines.append(ap_leg)

    return post_journal_entry(
        description=f"{label} approved",
        lines=lines,
        entry_date=entry_date or getattr(bill, "bill_date", None),
        source_module=source_module,
        reference_type=BILL_APPROVAL_REF,
        reference_id=bill.id,
        source_document_type="bill",
        source_document_id=bill.id,
        created_by=created_by,
    )


def reverse_bill_approval_in_ledger(
    *,
    bill,
    entry_date: date | None = None,
    created_by=None,
) -> JournalEntry | None:
    """
    Reverse the approval entry of a bill (if one was posted).

    Idempotent: returns the existing void entry on retry, or any reversal
    already posted against the approval entry.
    """
    existing = find_journal_entry(reference_type=BILL_VOID_REF, reference_id=bill.id)
    if existing is not None:
        return existing

    approval = get_bill_approval_entry(bill=bill)
    if approval is None:
        return None

    prior = approval.reversals.order_by("created_at").first()
    if prior is not None:
        return prior

    return reverse_journal_entry(
        entry=approval,
        entry_date=entry_date,
        description=f"{_bill_label(bill)} voided",
        source_module=JournalEntry.SOURCE_INVENTORY_REVERSAL,
        reference_type=BILL_VOID_REF,
        reference_id=bill.id,
        created_by=created_by,
    )


def post_bill_payment_to_ledger(
    *,
    payment_id,
    bill,
    amount,
    payment_account: Account,
    payable_account: Account | None = None,
    payment_date: date | None = None,
    created_by=None,
) -> JournalEntry:
    amt = _money(amount)
    label = _bill_label(bill)
    payable_account = payable_account or get_accounts_payable_account()

    return post_journal_entry(
        description=f"Payment for {label}",
        lines=[
            {"account": payable_account, "debit": amt, "credit": ZERO, "description": label},
            {"account": payment_account, "debit": ZERO, "credit": amt, "description": label},
        ],
        entry_date=payment_date,
        source_module=JournalEntry.SOURCE_BILL_PAYMENT,
        reference_type=BILL_PAYMENT_REF,
        reference_id=payment_id,
        source_document_type="bill",
        source_document_id=bill.id,
        created_by=created_by,
    )


def post_inventory_adjustment_to_ledger(
    *,
    adjustment_id,
    product_label: str,
    amount,
    entry_date: date | None = None,
    created_by=None,
) -> JournalEntry | None:
    """
    Positive amount: stock found (Dr Inventory, Cr Inventory Adjustments).
    Negative amount: stock written off (Dr Inventory Adjustments, Cr Inventory).
    """
    amt = _money(amount)
    if amt == 0:
        return None

    description = f"Stock adjustment: {product_label}"
    lines = [
        _signed_leg(get_inventory_account(), amt, description),
        _signed_leg(get_inventory_adjustment_account(), -amt, description),
    ]

    return post_journal_entry(
        description=description,
        lines=lines,
        entry_date=entry_date,
        source_module=JournalEntry.SOURCE_INVENTORY_ADJUSTMENT,
        reference_type=INVENTORY_ADJUSTMENT_REF,
        reference_id=adjustment_id,
        source_document_type="inventory_adjustment",
        source_document_id=adjustment_id,
        created_by=created_by,
    )
