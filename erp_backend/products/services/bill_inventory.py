# products/services/bill_inventory.py

"""
======================================================
PATH: products/services/bill_inventory.py
======================================================
BILL INVENTORY SERVICE

Stock + ledger side effects of a bill's lifecycle:

process_bill_inventory()  (on approval)
- receives inventory-tracked lines into stock at weighted-average cost
- posts ONE aggregate entry:
    Dr Inventory          (tracked product lines)
    Dr Expense            (other lines: line account or operating expenses)
    Dr Input Tax          (tax total)
    Cr Accounts Payable   (bill total)
  negative lines (returns) flip their leg
- idempotent: a second call returns what the first one recorded

reverse_bill_inventory()  (on void)
- undoes every receipt at the location it went into (reference_type="bill_void")
- restores the pre-receipt cost when nothing else touched the product,
  otherwise follows INVENTORY_LATE_REVERSAL_POLICY; this applies even when
  a product's lines net to zero quantity
- posts the reversing entry of the approval entry

Products are locked in primary-key order to avoid deadlocks between
concurrent approvals.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db import transaction

from accounting.models.journal import JournalEntry
from accounting.services.account_resolver import (
    get_input_tax_account,
    get_inventory_account,
    get_operating_expense_account,
)
from accounting.services.posting import (
    get_bill_approval_entry,
    post_bill_approval_to_ledger,
    reverse_bill_approval_in_ledger,
)
from products.models import InventoryMovement, Product
from products.services.valuation import (
    InventoryReversalError,
    apply_stock_movement,
)

logger = logging.getLogger(__name__)

BILL_REFERENCE = "bill"
BILL_VOID_REFERENCE = "bill_void"

LATE_REVERSAL_APPROXIMATE = "approximate"
LATE_REVERSAL_REJECT = "reject"

ZERO = Decimal("0")


@dataclass(frozen=True)
class BillInventoryResult:
    movements: list = field(default_factory=list)
    journal_entry: JournalEntry | None = None
    already_processed: bool = False

    def as_dict(self) -> dict:
        return {
            "movements": len(self.movements),
            "journal_entry_id": getattr(self.journal_entry, "id", None),
            "already_processed": self.already_processed,
        }


@dataclass(frozen=True)
class BillReversalResult:
    reversed: bool = False
    journal_entry: JournalEntry | None = None

    def as_dict(self) -> dict:
        return {
            "reversed": self.reversed,
            "journal_entry_id": getattr(self.journal_entry, "id", None),
        }


def _bill_movements(bill, reference_type: str):
    return (
        InventoryMovement.objects.select_related("location")
        .filter(reference_type=reference_type, reference_id=str(bill.id))
        .order_by("created_at")
    )


def _is_stock_line(line) -> bool:
    product = getattr(line, "product", None)
    if product is None or not product.track_inventory:
        return False
    return Decimal(line.quantity or 0) != 0


def _late_reversal_policy() -> str:
    policy = getattr(settings, "INVENTORY_LATE_REVERSAL_POLICY", LATE_REVERSAL_APPROXIMATE)
    return (policy or LATE_REVERSAL_APPROXIMATE).strip().lower()


# ------------------------------------------------------------
# APPROVAL
# ------------------------------------------------------------


@transaction.atomic
def process_bill_inventory(
    *,
    bill,
    lines=None,
    effective_date: date | None = None,
    actor=None,
) -> BillInventoryResult:
    existing_movements = list(_bill_movements(bill, BILL_REFERENCE))
    existing_entry = get_bill_approval_entry(bill=bill)
    if existing_movements or existing_entry is not None:
        logger.info(
            "Bill inventory already processed",
            extra={"bill_id": str(bill.id)},
        )
        return BillInventoryResult(
            movements=existing_movements,
            journal_entry=existing_entry,
            already_processed=True,
        )

    if lines is None:
        lines = list(
            bill.lines.select_related("product", "expense_account").order_by("line_number")
        )

    stock_lines = [line for line in lines if _is_stock_line(line)]

    # Lock every product we are about to touch, in pk order.
    product_ids = sorted({line.product_id for line in stock_lines}, key=str)
    locked = {
        p.pk: p
        for p in Product.objects.select_for_update().filter(pk__in=product_ids).order_by("pk")
    }

    debits: "OrderedDict" = OrderedDict()

    def add(account, amount):
        debits[account] = debits.get(account, ZERO) + Decimal(amount or 0)

    if stock_lines:
        inventory_account = get_inventory_account()
        for line in stock_lines:
            add(inventory_account, line.line_total)

    stock_keys = {id(line) for line in stock_lines}
    for line in lines:
        if id(line) in stock_keys:
            continue
        if Decimal(line.line_total or 0) == 0:
            continue
        if line.product_id and not getattr(line.product, "track_inventory", False):
            logger.info(
                "Untracked product expensed",
                extra={"bill_id": str(bill.id), "product_id": str(line.product_id)},
            )
        add(line.expense_account or get_operating_expense_account(), line.line_total)

    tax_total = sum((Decimal(line.tax_amount or 0) for line in lines), ZERO)
    if tax_total != 0:
        add(get_input_tax_account(), tax_total)

    journal_entry = post_bill_approval_to_ledger(
        bill=bill,
        debits_by_account=debits,
        entry_date=effective_date,
        source_module=(
            JournalEntry.SOURCE_INVENTORY if stock_lines else JournalEntry.SOURCE_BILLS
        ),
        created_by=actor,
    )

    movements = []
    for line in sorted(stock_lines, key=lambda ln: (str(ln.product_id), ln.line_number or 0)):
        quantity = Decimal(line.quantity)
        movement_type = (
            InventoryMovement.MovementType.PURCHASE
            if quantity > 0
            else InventoryMovement.MovementType.RETURN
        )
        movements.append(
            apply_stock_movement(
                product=locked[line.product_id],
                quantity=quantity,
                unit_cost=line.unit_cost,
                movement_type=movement_type,
                reference_type=BILL_REFERENCE,
                reference_id=bill.id,
                journal_entry=journal_entry,
                actor=actor,
                notes=f"Bill {bill.bill_number} line {line.line_number}",
            )
        )

    logger.info(
        "Bill inventory processed",
        extra={
            "bill_id": str(bill.id),
            "movements": len(movements),
            "journal_entry_id": getattr(journal_entry, "id", None),
            "amount": str(bill.total_amount),
        },
    )
    return BillInventoryResult(movements=movements, journal_entry=journal_entry)


# ------------------------------------------------------------
# VOID
# ------------------------------------------------------------


def _untouched_since_receipt(product: Product, receipts: list) -> bool:
    """True when the bill's own movements are still the product's latest state."""
    last = receipts[-1]
    receipt_ids = {m.pk for m in receipts}
    later = (
        InventoryMovement.objects.filter(product=product, created_at__gte=last.created_at)
        .exclude(pk__in=receipt_ids)
        .exists()
    )
    if later:
        return False
    return (
        product.quantity_on_hand == last.quantity_after
        and product.cost_price == last.cost_after
    )


@transaction.atomic
def reverse_bill_inventory(*, bill, actor=None) -> BillReversalResult:
    if _bill_movements(bill, BILL_VOID_REFERENCE).exists():
        return BillReversalResult(
            reversed=False,
            journal_entry=reverse_bill_approval_in_ledger(bill=bill, created_by=actor),
        )

    receipts = list(_bill_movements(bill, BILL_REFERENCE))
    had_approval_entry = get_bill_approval_entry(bill=bill) is not None

    by_product: "OrderedDict" = OrderedDict()
    for movement in sorted(receipts, key=lambda m: (str(m.product_id), m.created_at)):
        by_product.setdefault(movement.product_id, []).append(movement)

    locked = {
        p.pk: p
        for p in Product.objects.select_for_update()
        .filter(pk__in=list(by_product.keys()))
        .order_by("pk")
    }

    # Decide every product's cost before anything is written.
    plan = []
    policy = _late_reversal_policy()
    for product_id, group in by_product.items():
        group.sort(key=lambda m: m.created_at)
        product = locked[product_id]

        if _untouched_since_receipt(product, group):
            new_cost = group[0].cost_before
        elif policy == LATE_REVERSAL_REJECT:
            raise InventoryReversalError(
                f"Cannot reverse bill {bill.bill_number}: product {product.sku} has "
                "inventory movements after this receipt"
            )
        else:
            new_cost = product.cost_price
            logger.warning(
                "Approximate inventory reversal; blended cost kept",
                extra={
                    "bill_id": str(bill.id),
                    "product_id": str(product_id),
                    "cost_price": str(product.cost_price),
                },
            )

        # Undo returns before receipts so on-hand never dips below the end result.
        for receipt in sorted(group, key=lambda m: m.quantity > 0):
            plan.append((product, receipt, new_cost))

    journal_entry = reverse_bill_approval_in_ledger(bill=bill, created_by=actor)

    # Each receipt is undone at the location it was booked to.
    for product, receipt, new_cost in plan:
        apply_stock_movement(
            product=product,
            quantity=-receipt.quantity,
            unit_cost=receipt.unit_cost,
            new_cost=new_cost,
            movement_type=InventoryMovement.MovementType.ADJUSTMENT,
            reference_type=BILL_VOID_REFERENCE,
            reference_id=bill.id,
            journal_entry=journal_entry,
            location=receipt.location,
            actor=actor,
            notes=f"Void of bill {bill.bill_number}",
        )

    reversed_ = bool(plan) or had_approval_entry
    logger.info(
        "Bill inventory reversed",
        extra={
            "bill_id": str(bill.id),
            "products": len(by_product),
            "movements": len(plan),
            "journal_entry_id": getattr(journal_entry, "id", None),
            "reversed": reversed_,
        },
    )
    return BillReversalResult(reversed=reversed_, journal_entry=journal_entry)
