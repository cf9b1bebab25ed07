# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountSerializer
from accounting.api.serializers.journal_entries import (
    JournalEntryCreateSerializer,
    JournalEntryReverseSerializer,
    JournalEntrySerializer,
    JournalLineSerializer,
)

__all__ = [
    "AccountSerializer",
    "JournalEntrySerializer",
    "JournalEntryCreateSerializer",
    "JournalEntryReverseSerializer",
    "JournalLineSerializer",
]
