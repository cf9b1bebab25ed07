# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create JournalEntry
- Create JournalLine
- Enforce debit == credit (at cent precision)
- Guarantee atomicity (header + lines in one transaction)
- Enforce idempotency via reference (prevents double-posting)

Everything else (bill approval, voids, payments, adjustments) must pass through here.

Line format accepted by post_journal_entry():
    {"account": <Account> | "account_id": <int>, "debit": ..., "credit": ..., "description": ""}
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine
from accounting.services.exceptions import (
    IdempotencyError,
    JournalEntryCreationError,
    JournalReversalError,
    UnbalancedEntryError,
)

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

VALID_SOURCE_MODULES = {value for value, _ in JournalEntry.SOURCE_MODULES}


def _money(value) -> Decimal:
    if value is None or value == "":
        return ZERO

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise JournalEntryCreationError(f"Invalid money value: {value!r}") from exc

    if not amt.is_finite():
        raise JournalEntryCreationError(f"Invalid money value: {value!r}")

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def normalize_reference(reference_type: str | None, reference_id) -> str | None:
    if not reference_type or reference_id in (None, ""):
        return None

    rt = str(reference_type).strip()
    rid = str(reference_id).strip()
    if not rt or not rid:
        return None

    return f"{rt}:{rid}"


def find_journal_entry(*, reference_type: str, reference_id) -> JournalEntry | None:
    reference = normalize_reference(reference_type, reference_id)
    if reference is None:
        return None
    return JournalEntry.objects.filter(reference=reference).first()


def _resolve_line_account(line: dict) -> Account:
    account = line.get("account")
    if account is None and line.get("account_id") is not None:
        account = Account.objects.filter(pk=line["account_id"]).first()
        if account is None:
            raise JournalEntryCreationError(f"Account not found: {line['account_id']}")

    if account is None:
        raise JournalEntryCreationError("Journal line missing account")

    if not account.is_active:
        raise JournalEntryCreationError(f"Account {account.code} is inactive")

    return account


def _normalize_lines(lines) -> list[dict]:
    normalized: list[dict] = []

    for line in lines:
        if not isinstance(line, dict):
            raise JournalEntryCreationError("Each journal line must be an object/dict")

        account = _resolve_line_account(line)
        debit = _money(line.get("debit"))
        credit = _money(line.get("credit"))

        if debit < 0 or credit < 0:
            raise JournalEntryCreationError("Debit or credit cannot be negative")

        if debit > 0 and credit > 0:
            raise JournalEntryCreationError("A journal line cannot have both debit and credit")

        if debit == 0 and credit == 0:
            raise JournalEntryCreationError("A journal line must have either debit or credit")

        normalized.append(
            {
                "account": account,
                "debit": debit,
                "credit": credit,
                "description": str(line.get("description") or "").strip()[:255],
            }
        )

    return normalized


def _assert_single_chart(normalized: list[dict]) -> None:
    chart_id = normalized[0]["account"].chart_id
    for line in normalized[1:]:
        if line["account"].chart_id != chart_id:
            raise JournalEntryCreationError(
                "All lines must belong to the same chart. Cross-chart journal entries are not allowed."
            )


@transaction.atomic
def post_journal_entry(
    *,
    description: str,
    lines: list,
    entry_date: date | None = None,
    source_module: str = JournalEntry.SOURCE_MANUAL,
    reference_type: str | None = None,
    reference_id=None,
    source_document_type: str = "",
    source_document_id="",
    reverses: JournalEntry | None = None,
    created_by=None,
) -> JournalEntry:
    """
    Post one balanced JournalEntry with its JournalLines.

    Raises:
    - UnbalancedEntryError when debits != credits after cent rounding
    - IdempotencyError when the reference has already been posted
    - JournalEntryCreationError for any other invalid input
    Nothing is written when any of these is raised.
    """
    if not lines or len(lines) < 2:
        raise JournalEntryCreationError("Journal entry must contain at least two lines")

    description = (description or "").strip()
    if not description:
        raise JournalEntryCreationError("Journal entry description is required")

    if source_module not in VALID_SOURCE_MODULES:
        raise JournalEntryCreationError(f"Unknown source_module: {source_module!r}")

    reference = normalize_reference(reference_type, reference_id)
    normalized = _normalize_lines(lines)

    total_debits = sum((line["debit"] for line in normalized), ZERO)
    total_credits = sum((line["credit"] for line in normalized), ZERO)

    if total_debits != total_credits:
        raise UnbalancedEntryError(
            f"Journal entry not balanced: debits={total_debits} credits={total_credits}"
        )

    _assert_single_chart(normalized)

    # Clear error before DB constraint race handling
    if reference and JournalEntry.objects.filter(reference=reference).exists():
        raise IdempotencyError(f"Journal entry already exists for reference {reference}")

    try:
        with transaction.atomic():
            journal_entry = JournalEntry.objects.create(
                reference=reference,
                entry_date=entry_date or timezone.localdate(),
                description=description,
                source_module=source_module,
                source_document_type=str(source_document_type or ""),
                source_document_id=str(source_document_id or ""),
                status=JournalEntry.STATUS_POSTED,
                reverses=reverses,
                created_by=created_by,
                posted_at=timezone.now(),
            )
    except (IntegrityError, ValidationError) as exc:
        if reference and JournalEntry.objects.filter(reference=reference).exists():
            raise IdempotencyError(
                f"Journal entry already exists for reference {reference}"
            ) from exc
        raise JournalEntryCreationError(f"Failed to create journal entry: {exc}") from exc

    JournalLine.objects.bulk_create(
        [
            JournalLine(
                journal_entry=journal_entry,
                account=line["account"],
                line_number=index,
                debit=line["debit"],
                credit=line["credit"],
                description=line["description"],
            )
            for index, line in enumerate(normalized, start=1)
        ]
    )

    logger.info(
        "Journal entry posted",
        extra={
            "journal_entry_id": journal_entry.id,
            "reference": reference,
            "source_module": source_module,
            "amount": str(total_debits),
        },
    )
    return journal_entry


@transaction.atomic
def reverse_journal_entry(
    *,
    entry: JournalEntry,
    entry_date: date | None = None,
    description: str | None = None,
    source_module: str = JournalEntry.SOURCE_REVERSAL,
    reference_type: str | None = None,
    reference_id=None,
    created_by=None,
) -> JournalEntry:
    """
    Post a new entry with every line's debit and credit swapped.

    The original stays untouched (entries are immutable); the reversal links
    back to it through `reverses`. An entry can be reversed only once.
    """
    locked = JournalEntry.objects.select_for_update().get(pk=entry.pk)

    if not locked.is_posted:
        raise JournalReversalError("Only posted journal entries can be reversed")

    if locked.reverses_id is not None:
        raise JournalReversalError("Reversing entries cannot themselves be reversed")

    if locked.reversals.exists():
        raise JournalReversalError(f"Journal entry #{locked.id} has already been reversed")

    swapped = [
        {
            "account": line.account,
            "debit": line.credit,
            "credit": line.debit,
            "description": line.description,
        }
        for line in locked.lines.select_related("account").order_by("line_number")
    ]

    if reference_type is None:
        reference_type, reference_id = "REVERSAL", locked.id

    return post_journal_entry(
        description=description or f"Reversal of journal entry #{locked.id}: {locked.description}",
        lines=swapped,
        entry_date=entry_date,
        source_module=source_module,
        reference_type=reference_type,
        reference_id=reference_id,
        source_document_type=locked.source_document_type,
        source_document_id=locked.source_document_id,
        reverses=locked,
        created_by=created_by,
    )
