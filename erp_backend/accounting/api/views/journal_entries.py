# accounting/api/views/journal_entries.py

"""
PATH: accounting/api/views/journal_entries.py

JOURNAL ENTRY API (AUDIT SAFE)

- List / retrieve posted entries with their lines
- Create a manual entry (goes through the posting engine)
- Reverse an entry (new swapped entry; the original is never edited).
  Entries tied to a source document (bills, payments, adjustments) are
  owned by that workflow and cannot be reversed here.

Security rules:
- Reading requires accounting.view_journalentry
- Creating or reversing requires accounting.add_journalentry

Filtering (django-filter):
    ?source_module=inventory
    ?source_document_type=bill&source_document_id=<uuid>
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from accounting.api.serializers import (
    JournalEntryCreateSerializer,
    JournalEntryReverseSerializer,
    JournalEntrySerializer,
)
from accounting.models.journal import JournalEntry
from accounting.services.account_resolver import get_account_by_code
from accounting.services.exceptions import AccountingServiceError
from accounting.services.journal_entry_service import (
    post_journal_entry,
    reverse_journal_entry,
)

logger = logging.getLogger(__name__)


@extend_schema(tags=["accounting"])
class JournalEntryViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer
    filterset_fields = [
        "source_module",
        "source_document_type",
        "source_document_id",
        "status",
    ]

    queryset = (
        JournalEntry.objects.prefetch_related("lines", "lines__account")
        .order_by("-entry_date", "-created_at")
    )

    def _require(self, perm: str, message: str) -> None:
        if not self.request.user.has_perm(perm):
            raise PermissionDenied(message)

    def get_queryset(self):
        self._require(
            "accounting.view_journalentry",
            "You do not have permission to view journal entries.",
        )
        return super().get_queryset()

    @extend_schema(
        request=JournalEntryCreateSerializer,
        responses={201: JournalEntrySerializer},
    )
    def create(self, request):
        self._require(
            "accounting.add_journalentry",
            "You do not have permission to post journal entries.",
        )

        s = JournalEntryCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            lines = []
            for line in data["lines"]:
                code = (line.get("account_code") or "").strip()
                posting = {
                    "debit": line["debit"],
                    "credit": line["credit"],
                    "description": line["description"],
                }
                if code:
                    posting["account"] = get_account_by_code(code)
                else:
                    posting["account_id"] = line["account_id"]
                lines.append(posting)

            entry = post_journal_entry(
                description=data["description"],
                lines=lines,
                entry_date=data.get("entry_date"),
                source_module=JournalEntry.SOURCE_MANUAL,
                created_by=request.user,
            )
        except AccountingServiceError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        entry = self.get_queryset().get(pk=entry.pk)
        return Response(JournalEntrySerializer(entry).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=JournalEntryReverseSerializer,
        responses={201: JournalEntrySerializer},
    )
    @action(detail=True, methods=["post"])
    def reverse(self, request, pk=None):
        self._require(
            "accounting.add_journalentry",
            "You do not have permission to reverse journal entries.",
        )
        entry = self.get_object()

        if entry.source_document_type:
            return Response(
                {
                    "detail": (
                        f"Journal entry #{entry.id} belongs to a {entry.source_document_type} "
                        "and can only be reversed through that document"
                    )
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        s = JournalEntryReverseSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            reversal = reverse_journal_entry(
                entry=entry,
                entry_date=data.get("entry_date"),
                description=(data.get("description") or "").strip() or None,
                created_by=request.user,
            )
        except AccountingServiceError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(
            "Journal entry reversed via API",
            extra={"journal_entry_id": entry.id, "reversal_id": reversal.id},
        )
        reversal = self.get_queryset().get(pk=reversal.pk)
        return Response(JournalEntrySerializer(reversal).data, status=status.HTTP_201_CREATED)
