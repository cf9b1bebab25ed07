# bills/services/bill_service.py

"""
======================================================
PATH: bills/services/bill_service.py
======================================================
BILL SERVICE (WORKFLOW ORCHESTRATION)

Every public function here is ONE business event in ONE transaction:
- create_bill          draft bill + numbered lines
- update_bill          header/line edits, draft -> approved (receives stock, posts AP)
- void_bill            reverses stock + approval entry, marks void
- delete_bill          physical delete (draft, unpaid only)
- mark_overdue_bills   approved/partial bills past due -> overdue

Bill rows are locked (select_for_update) before they are read or changed.

Side-effect policy (settings.BILLS_SIDE_EFFECT_POLICY):
- "atomic" (default): an inventory/ledger failure aborts the whole event
- "best_effort": the side effect runs in a savepoint; a domain failure is
  logged and the status change is still committed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from accounting.models.account import Account
from accounting.services.account_resolver import get_account_by_code
from accounting.services.exceptions import AccountingServiceError
from bills.models import Bill, BillLine, Vendor
from bills.services.bill_lifecycle import (
    APPROVED,
    DRAFT,
    OVERDUE,
    PAID,
    PARTIAL,
    RECEIVED_STATES,
    VOID,
    assert_editable,
    validate_transition,
)
from bills.services.exceptions import BillNotFoundError, BillValidationError
from products.models import Product
from products.services.bill_inventory import (
    BillInventoryResult,
    BillReversalResult,
    process_bill_inventory,
    reverse_bill_inventory,
)
from products.services.valuation import InventoryError

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

POLICY_ATOMIC = "atomic"
POLICY_BEST_EFFORT = "best_effort"

HEADER_FIELDS = ("vendor_id", "bill_date", "due_date", "vendor_invoice_number", "notes")


@dataclass(frozen=True)
class BillUpdateResult:
    bill: Bill
    approved: bool = False
    inventory: BillInventoryResult | None = None


@dataclass(frozen=True)
class BillVoidResult:
    bill: Bill
    inventory: BillReversalResult


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _decimal(value, *, field_name: str, default=None) -> Decimal:
    if value is None or value == "":
        if default is not None:
            return default
        raise BillValidationError(f"{field_name} is required")
    if isinstance(value, bool):
        raise BillValidationError(f"{field_name} must be a number")
    try:
        dec = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise BillValidationError(f"{field_name} must be a number") from exc
    if not dec.is_finite():
        raise BillValidationError(f"{field_name} must be a number")
    return dec


def _date(value, *, field_name: str) -> date:
    if isinstance(value, date):
        return value
    parsed = parse_date(str(value or "").strip())
    if parsed is None:
        raise BillValidationError(f"{field_name} must be a date (YYYY-MM-DD)")
    return parsed


def _side_effect_policy() -> str:
    policy = getattr(settings, "BILLS_SIDE_EFFECT_POLICY", POLICY_ATOMIC) or POLICY_ATOMIC
    return policy.strip().lower()


def _save_bill(bill: Bill) -> None:
    try:
        bill.save()
    except DjangoValidationError as exc:
        raise BillValidationError("; ".join(exc.messages)) from exc


def _get_locked_bill(bill_id) -> Bill:
    bill = (
        Bill.objects.select_for_update()
        .filter(pk=bill_id)
        .first()
    )
    if bill is None:
        raise BillNotFoundError("Bill not found")
    return bill


def _get_vendor(vendor_id) -> Vendor:
    vendor = Vendor.objects.filter(pk=vendor_id, is_active=True).first()
    if vendor is None:
        raise BillValidationError("Vendor not found")
    return vendor


def _next_bill_number(bill_date: date) -> str:
    prefix = f"BILL-{bill_date.year}-"
    last = (
        Bill.objects.filter(bill_number__startswith=prefix)
        .order_by("-bill_number")
        .values_list("bill_number", flat=True)
        .first()
    )
    seq = 1
    if last:
        try:
            seq = int(last[len(prefix):]) + 1
        except ValueError:
            seq = Bill.objects.filter(bill_number__startswith=prefix).count() + 1
    return f"{prefix}{seq:05d}"


# ------------------------------------------------------------
# LINES
# ------------------------------------------------------------


def _resolve_expense_account(raw: dict) -> Account | None:
    account_id = raw.get("expense_account_id")
    if account_id:
        account = Account.objects.filter(pk=account_id, is_active=True).first()
        if account is None:
            raise BillValidationError(f"Expense account not found: {account_id}")
        return account

    code = str(raw.get("account_code") or "").strip()
    if code:
        try:
            return get_account_by_code(code)
        except AccountingServiceError as exc:
            raise BillValidationError(str(exc)) from exc
    return None


def _build_lines(raw_lines) -> list[dict]:
    """
    Normalize line input and compute per-line totals.

    Lines with neither a description nor a product are dropped.
    """
    built: list[dict] = []

    for raw in raw_lines or []:
        if not isinstance(raw, dict):
            raise BillValidationError("Each line item must be an object")

        product = None
        product_id = raw.get("product_id")
        if product_id:
            product = Product.objects.filter(pk=product_id).first()
            if product is None:
                raise BillValidationError(f"Product not found: {product_id}")

        description = str(raw.get("description") or "").strip()
        if not description and product is None:
            continue
        if not description:
            description = product.name

        unit_cost_raw = raw.get("unit_cost")
        if unit_cost_raw in (None, ""):
            unit_cost_raw = raw.get("unit_price")

        quantity = _decimal(raw.get("quantity"), field_name="quantity")
        unit_cost = _decimal(unit_cost_raw, field_name="unit_cost", default=Decimal("0"))
        tax_rate = _decimal(raw.get("tax_rate"), field_name="tax_rate", default=Decimal("0"))

        if unit_cost < 0:
            raise BillValidationError("unit_cost cannot be negative")
        if tax_rate < 0:
            raise BillValidationError("tax_rate cannot be negative")

        built.append(
            {
                "product": product,
                "expense_account": _resolve_expense_account(raw),
                "description": description[:255],
                "quantity": quantity,
                "unit_cost": unit_cost,
                "tax_rate": tax_rate,
                "line_total": _money(quantity * unit_cost),
                "tax_amount": _money(quantity * unit_cost * tax_rate),
            }
        )

    return built


def _replace_bill_lines(*, bill: Bill, raw_lines) -> list[BillLine]:
    """
    Delete-all-then-reinsert, inside the caller's transaction, and
    recompute the bill totals from the new lines.
    """
    built = _build_lines(raw_lines)

    bill.lines.all().delete()

    created: list[BillLine] = []
    for number, data in enumerate(built, start=1):
        try:
            created.append(BillLine.objects.create(bill=bill, line_number=number, **data))
        except DjangoValidationError as exc:
            raise BillValidationError("; ".join(exc.messages)) from exc

    bill.subtotal = sum((line.line_total for line in created), ZERO)
    bill.tax_amount = sum((line.tax_amount for line in created), ZERO)
    bill.total_amount = bill.subtotal + bill.tax_amount

    return created


# ------------------------------------------------------------
# SIDE EFFECTS
# ------------------------------------------------------------


def _run_side_effect(func, *, bill: Bill, event: str):
    if _side_effect_policy() != POLICY_BEST_EFFORT:
        return func()

    try:
        with transaction.atomic():
            return func()
    except (InventoryError, AccountingServiceError):
        logger.exception(
            "Bill %s side effect failed; continuing under best_effort policy",
            event,
            extra={"bill_id": str(bill.id), "event": event},
        )
        return None


# ------------------------------------------------------------
# CREATE
# ------------------------------------------------------------


@transaction.atomic
def create_bill(
    *,
    vendor_id,
    due_date,
    bill_date=None,
    lines=None,
    vendor_invoice_number: str = "",
    notes: str = "",
    currency: str | None = None,
    actor=None,
) -> Bill:
    vendor = _get_vendor(vendor_id)
    bill_date = _date(bill_date, field_name="bill_date") if bill_date else timezone.localdate()
    due_date = _date(due_date, field_name="due_date")

    bill = Bill(
        vendor=vendor,
        bill_number=_next_bill_number(bill_date),
        vendor_invoice_number=vendor_invoice_number or "",
        bill_date=bill_date,
        due_date=due_date,
        status=DRAFT,
        notes=notes or "",
        created_by=actor,
    )
    if currency:
        bill.currency = currency
    _save_bill(bill)

    if lines:
        _replace_bill_lines(bill=bill, raw_lines=lines)
        _save_bill(bill)

    logger.info(
        "Bill created",
        extra={
            "bill_id": str(bill.id),
            "bill_number": bill.bill_number,
            "amount": str(bill.total_amount),
        },
    )
    return bill


# ------------------------------------------------------------
# UPDATE / APPROVE
# ------------------------------------------------------------


def _approve(*, bill: Bill, actor) -> BillInventoryResult | None:
    validate_transition(bill.status, APPROVED)

    lines = list(bill.lines.select_related("product", "expense_account").order_by("line_number"))
    if not lines:
        raise BillValidationError("Cannot approve a bill with no line items")
    if _money(bill.total_amount) < 0:
        raise BillValidationError("Cannot approve a bill with a negative total")

    bill.status = APPROVED
    bill.approved_by = actor
    bill.approved_at = timezone.now()
    _save_bill(bill)

    return _run_side_effect(
        lambda: process_bill_inventory(
            bill=bill,
            lines=lines,
            effective_date=bill.bill_date,
            actor=actor,
        ),
        bill=bill,
        event="approval",
    )


@transaction.atomic
def update_bill(*, bill_id, patch: dict, actor=None) -> BillUpdateResult:
    """
    Apply a PATCH to a bill.

    line_items takes precedence over lines. Line edits are draft-only.
    status may only move draft -> approved here.
    """
    bill = _get_locked_bill(bill_id)
    assert_editable(bill)

    patch = dict(patch or {})

    raw_lines = patch.get("line_items")
    if raw_lines is None:
        raw_lines = patch.get("lines")

    if raw_lines is not None:
        if bill.status != DRAFT:
            raise BillValidationError("Line items can only be edited on draft bills")
        _replace_bill_lines(bill=bill, raw_lines=raw_lines)

    for field in HEADER_FIELDS:
        if field not in patch or patch[field] is None:
            continue
        value = patch[field]
        if field == "vendor_id":
            bill.vendor = _get_vendor(value)
        elif field in ("bill_date", "due_date"):
            setattr(bill, field, _date(value, field_name=field))
        else:
            setattr(bill, field, str(value))

    _save_bill(bill)

    target = str(patch.get("status") or "").strip().lower()
    inventory = None
    approved = False

    if target and target != bill.status:
        if target == APPROVED:
            inventory = _approve(bill=bill, actor=actor)
            approved = True
        else:
            validate_transition(bill.status, target)
            raise BillValidationError(
                f"Status '{target}' cannot be set by editing a bill; "
                "use payments, the void action or the overdue sweep"
            )

    logger.info(
        "Bill updated",
        extra={
            "bill_id": str(bill.id),
            "status": bill.status,
            "approved": approved,
            "amount": str(bill.total_amount),
        },
    )
    return BillUpdateResult(bill=bill, approved=approved, inventory=inventory)


# ------------------------------------------------------------
# VOID / DELETE
# ------------------------------------------------------------


@transaction.atomic
def void_bill(*, bill_id, actor=None) -> BillVoidResult:
    bill = _get_locked_bill(bill_id)

    if bill.status == VOID:
        raise BillValidationError("Bill is already voided")
    if bill.status == DRAFT:
        raise BillValidationError("Draft bills cannot be voided; delete them instead")
    if bill.status == PAID:
        raise BillValidationError("Paid bills cannot be voided")

    validate_transition(bill.status, VOID)

    reversal = None
    if bill.status in RECEIVED_STATES:
        reversal = _run_side_effect(
            lambda: reverse_bill_inventory(bill=bill, actor=actor),
            bill=bill,
            event="void",
        )

    bill.status = VOID
    bill.voided_by = actor
    bill.voided_at = timezone.now()
    _save_bill(bill)

    reversal = reversal or BillReversalResult(reversed=False, journal_entry=None)
    logger.info(
        "Bill voided",
        extra={
            "bill_id": str(bill.id),
            "reversed": reversal.reversed,
            "journal_entry_id": getattr(reversal.journal_entry, "id", None),
        },
    )
    return BillVoidResult(bill=bill, inventory=reversal)


@transaction.atomic
def delete_bill(*, bill_id) -> None:
    bill = _get_locked_bill(bill_id)

    if bill.status == VOID:
        raise BillValidationError("Bill is already voided")

    if bill.status != DRAFT or _money(bill.amount_paid) > 0 or bill.payments.exists():
        raise BillValidationError("Can only delete draft bills with no payments")

    bill_number = bill.bill_number
    bill.lines.all().delete()
    bill.delete()

    logger.info("Bill deleted", extra={"bill_id": str(bill_id), "bill_number": bill_number})


# ------------------------------------------------------------
# OVERDUE SWEEP
# ------------------------------------------------------------


@transaction.atomic
def mark_overdue_bills(*, as_of: date | None = None) -> int:
    as_of = as_of or timezone.localdate()

    ids = list(
        Bill.objects.select_for_update()
        .filter(status__in=[APPROVED, PARTIAL], due_date__lt=as_of)
        .values_list("id", flat=True)
    )
    if not ids:
        return 0

    count = Bill.objects.filter(id__in=ids).update(status=OVERDUE, updated_at=timezone.now())

    logger.info(
        "Overdue bills marked",
        extra={"count": count, "as_of": as_of.isoformat()},
    )
    return count
