# bills/services/bill_lifecycle.py

"""
BILL LIFECYCLE (PURE STATE RULES)

    draft    -> approved
    approved -> partial | paid | overdue | void
    partial  -> paid | overdue | void
    overdue  -> partial | paid | void
    paid, void: terminal

Who drives which edge:
- draft -> approved:          bill_service.update_bill (triggers inventory + ledger)
- -> partial / paid:          payment_service.record_bill_payment
- -> overdue:                 bill_service.mark_overdue_bills
- -> void:                    bill_service.void_bill (reverses inventory + ledger)

No database access here.
"""

from __future__ import annotations

from bills.models import Bill
from bills.services.exceptions import BillValidationError

DRAFT = Bill.STATUS_DRAFT
APPROVED = Bill.STATUS_APPROVED
PARTIAL = Bill.STATUS_PARTIAL
PAID = Bill.STATUS_PAID
OVERDUE = Bill.STATUS_OVERDUE
VOID = Bill.STATUS_VOID

TERMINAL_STATES = frozenset({PAID, VOID})

# Bills whose stock was received and whose approval entry is on the books.
RECEIVED_STATES = frozenset({APPROVED, PARTIAL, OVERDUE})

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    DRAFT: frozenset({APPROVED}),
    APPROVED: frozenset({PARTIAL, PAID, OVERDUE, VOID}),
    PARTIAL: frozenset({PAID, OVERDUE, VOID}),
    OVERDUE: frozenset({PARTIAL, PAID, VOID}),
    PAID: frozenset(),
    VOID: frozenset(),
}


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def validate_transition(from_status: str, to_status: str) -> None:
    if not can_transition(from_status, to_status):
        raise BillValidationError(f"Invalid status transition: {from_status} -> {to_status}")


def assert_editable(bill: Bill) -> None:
    if bill.status in TERMINAL_STATES:
        raise BillValidationError("Cannot edit paid or voided bills")
