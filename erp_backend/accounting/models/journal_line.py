# accounting/models/journal_line.py

"""
======================================================
PATH: accounting/models/journal_line.py
======================================================
JOURNAL LINE MODEL

One debit or credit leg of a JournalEntry.

Guarantees:
- Immutable once created (no updates, no deletes)
- debit >= 0, credit >= 0, and exactly one of them is non-zero
- Reporting uses journal_entry.entry_date as the accounting timeline
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.account import Account
from accounting.models.journal import JournalEntry

ZERO = Decimal("0.00")


class JournalLine(models.Model):
    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.PROTECT,
        related_name="lines",
    )

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )

    line_number = models.PositiveIntegerField(default=1)

    debit = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    credit = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)

    description = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Journal Line"
        verbose_name_plural = "Journal Lines"
        ordering = ["journal_entry_id", "line_number"]
        indexes = [
            models.Index(fields=["account"], name="journal_line_account_idx"),
            models.Index(fields=["journal_entry"], name="journal_line_entry_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(debit__gte=ZERO) & Q(credit__gte=ZERO),
                name="chk_journal_line_non_negative",
            ),
            models.CheckConstraint(
                condition=(Q(debit__gt=ZERO) & Q(credit=ZERO))
                | (Q(credit__gt=ZERO) & Q(debit=ZERO)),
                name="chk_journal_line_one_sided",
            ),
        ]

    def __str__(self):
        side = "Dr" if self.debit else "Cr"
        return f"{side} {self.amount} -> {self.account}"

    @property
    def amount(self) -> Decimal:
        return self.debit or self.credit

    def clean(self):
        if self.debit is None or self.credit is None:
            raise ValidationError("debit and credit are required")

        if self.debit < 0 or self.credit < 0:
            raise ValidationError("debit and credit cannot be negative")

        if (self.debit > 0) == (self.credit > 0):
            raise ValidationError("Exactly one of debit or credit must be non-zero")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("JournalLine records are immutable and cannot be modified")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalLine records are immutable and cannot be deleted")
