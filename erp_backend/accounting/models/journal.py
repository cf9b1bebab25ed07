# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODEL

Header of one double-entry accounting record.

Guarantees:
- Immutable once created (no updates, no deletes); corrections are reversing entries
- Idempotency via reference uniqueness (when reference is provided)
- entry_date is the accounting effective date (used by reports)
- An entry can be reversed at most once
"""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class JournalEntry(models.Model):
    STATUS_DRAFT = "draft"
    STATUS_POSTED = "posted"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_POSTED, "Posted"),
    ]

    SOURCE_MANUAL = "manual"
    SOURCE_BILLS = "bills"
    SOURCE_INVENTORY = "inventory"
    SOURCE_INVENTORY_REVERSAL = "inventory_reversal"
    SOURCE_INVENTORY_ADJUSTMENT = "inventory_adjustment"
    SOURCE_BILL_PAYMENT = "bill_payment"
    SOURCE_REVERSAL = "reversal"

    SOURCE_MODULES = [
        (SOURCE_MANUAL, "Manual"),
        (SOURCE_BILLS, "Bills"),
        (SOURCE_INVENTORY, "Inventory"),
        (SOURCE_INVENTORY_REVERSAL, "Inventory Reversal"),
        (SOURCE_INVENTORY_ADJUSTMENT, "Inventory Adjustment"),
        (SOURCE_BILL_PAYMENT, "Bill Payment"),
        (SOURCE_REVERSAL, "Reversal"),
    ]

    reference = models.CharField(
        max_length=100,
        blank=True,
        null=True,
        help_text="Idempotency key, e.g. BILL_APPROVAL:<bill id>",
    )

    entry_date = models.DateField(
        default=timezone.localdate,
        help_text="Accounting effective date",
    )

    description = models.TextField(help_text="Narrative description of the journal entry")

    source_module = models.CharField(
        max_length=40,
        choices=SOURCE_MODULES,
        default=SOURCE_MANUAL,
    )

    source_document_type = models.CharField(max_length=40, blank=True, default="")
    source_document_id = models.CharField(max_length=64, blank=True, default="")

    status = models.CharField(max_length=10, choices=STATUSES, default=STATUS_POSTED)

    reverses = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversals",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="journal_entries_created",
    )

    posted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-entry_date", "-created_at"]
        indexes = [
            models.Index(fields=["entry_date"], name="journal_entry_date_idx"),
            models.Index(fields=["reference"], name="journal_reference_idx"),
            models.Index(fields=["source_module", "entry_date"], name="journal_source_date_idx"),
            models.Index(
                fields=["source_document_type", "source_document_id"],
                name="journal_source_doc_idx",
            ),
            models.Index(fields=["status"], name="journal_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["reference"],
                condition=Q(reference__isnull=False) & ~Q(reference=""),
                name="uniq_journal_reference_not_blank",
            ),
            models.UniqueConstraint(
                fields=["reverses"],
                condition=Q(reverses__isnull=False),
                name="uniq_journal_single_reversal",
            ),
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"JournalEntry #{self.id} - {self.entry_date}"

    @property
    def is_posted(self) -> bool:
        return self.status == self.STATUS_POSTED

    def clean(self):
        if self.reference is not None:
            ref = str(self.reference).strip()
            self.reference = ref or None

        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Journal entry description is required")

        if self.status == self.STATUS_POSTED and self.posted_at is None:
            self.posted_at = timezone.now()

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("JournalEntry records are immutable once created")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalEntry records are immutable and cannot be deleted")
