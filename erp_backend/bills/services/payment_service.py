# bills/services/payment_service.py

import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from accounting.models.account import Account
from accounting.services.account_resolver import (
    get_account_by_code,
    get_bank_account,
    get_cash_account,
)
from accounting.services.posting import post_bill_payment_to_ledger
from bills.models import Bill, BillPayment
from bills.services.bill_lifecycle import APPROVED, OVERDUE, PAID, PARTIAL, validate_transition
from bills.services.exceptions import BillNotFoundError, BillValidationError

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

PAYABLE_STATES = frozenset({APPROVED, PARTIAL, OVERDUE})


def _money(v) -> Decimal:
    try:
        return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise BillValidationError(f"Invalid amount: {v!r}") from exc


def _resolve_payment_account(*, payment_method: str, payment_account_code: str | None) -> Account:
    code = (payment_account_code or "").strip()
    if code:
        return get_account_by_code(code)

    m = (payment_method or "cash").lower().strip()
    if m == BillPayment.METHOD_CASH:
        return get_cash_account()
    if m in (BillPayment.METHOD_BANK, "transfer", "card"):
        return get_bank_account()

    logger.error(
        "Invalid payment method provided",
        extra={"payment_method": payment_method},
    )
    raise BillValidationError("Invalid payment_method. Use 'cash' or 'bank'.")


def _stored_method(payment_method: str) -> str:
    m = (payment_method or "cash").lower().strip()
    return BillPayment.METHOD_CASH if m == BillPayment.METHOD_CASH else BillPayment.METHOD_BANK


@transaction.atomic
def record_bill_payment(
    *,
    bill_id,
    amount,
    payment_method: str = BillPayment.METHOD_CASH,
    payment_date=None,
    payment_account_code: str | None = None,
    reference: str = "",
    notes: str = "",
    actor=None,
) -> BillPayment:
    """
    RECORD BILL PAYMENT (atomic)

    Dr Accounts Payable / Cr Cash or Bank, then:
    - amount_paid += amount
    - status -> paid when fully settled, else partial
    """
    logger.info(
        "Initiating bill payment",
        extra={
            "bill_id": str(bill_id),
            "amount": str(amount),
            "payment_method": payment_method,
        },
    )

    bill = Bill.objects.select_for_update().filter(pk=bill_id).first()
    if bill is None:
        raise BillNotFoundError("Bill not found")

    if bill.status not in PAYABLE_STATES:
        raise BillValidationError(f"Cannot record a payment on a {bill.status} bill")

    amt = _money(amount)
    if amt <= Decimal("0.00"):
        raise BillValidationError("Payment amount must be greater than zero")

    balance = bill.balance_due
    if amt > balance:
        raise BillValidationError(f"Payment exceeds balance due ({balance})")

    pay_date = payment_date or timezone.localdate()
    payment_account = _resolve_payment_account(
        payment_method=payment_method,
        payment_account_code=payment_account_code,
    )

    payment_id = uuid.uuid4()
    je = post_bill_payment_to_ledger(
        payment_id=payment_id,
        bill=bill,
        amount=amt,
        payment_account=payment_account,
        payment_date=pay_date,
        created_by=actor,
    )

    try:
        payment = BillPayment.objects.create(
            id=payment_id,
            bill=bill,
            payment_date=pay_date,
            amount=amt,
            payment_method=_stored_method(payment_method),
            reference=(reference or "").strip()[:64],
            notes=notes or "",
            journal_entry=je,
            created_by=actor,
        )
    except DjangoValidationError as exc:
        raise BillValidationError("; ".join(exc.messages)) from exc

    new_paid = bill.amount_paid + amt
    new_status = PAID if new_paid >= bill.total_amount else PARTIAL
    if new_status != bill.status:
        validate_transition(bill.status, new_status)

    bill.amount_paid = new_paid
    bill.status = new_status
    try:
        bill.save()
    except DjangoValidationError as exc:
        raise BillValidationError("; ".join(exc.messages)) from exc

    logger.info(
        "Bill payment completed successfully",
        extra={
            "bill_id": str(bill.id),
            "payment_id": str(payment.id),
            "journal_entry_id": je.id,
            "status": bill.status,
        },
    )
    return payment
