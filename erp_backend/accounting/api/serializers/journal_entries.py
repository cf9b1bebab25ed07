# accounting/api/serializers/journal_entries.py

from decimal import Decimal

from rest_framework import serializers

from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine


class JournalLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalLine
        fields = [
            "id",
            "line_number",
            "account",
            "account_code",
            "account_name",
            "debit",
            "credit",
            "description",
        ]
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    lines = JournalLineSerializer(many=True, read_only=True)
    total_debit = serializers.SerializerMethodField()
    total_credit = serializers.SerializerMethodField()

    class Meta:
        model = JournalEntry
        fields = [
            "id",
            "reference",
            "entry_date",
            "description",
            "source_module",
            "source_document_type",
            "source_document_id",
            "status",
            "reverses",
            "posted_at",
            "created_at",
            "lines",
            "total_debit",
            "total_credit",
        ]
        read_only_fields = fields

    def get_total_debit(self, obj):
        return str(sum((line.debit for line in obj.lines.all()), Decimal("0.00")))

    def get_total_credit(self, obj):
        return str(sum((line.credit for line in obj.lines.all()), Decimal("0.00")))


class JournalLineInputSerializer(serializers.Serializer):
    account_id = serializers.IntegerField(required=False)
    account_code = serializers.CharField(required=False, allow_blank=True)
    debit = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, default=Decimal("0.00")
    )
    credit = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, default=Decimal("0.00")
    )
    description = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if not attrs.get("account_id") and not (attrs.get("account_code") or "").strip():
            raise serializers.ValidationError("account_id or account_code is required")
        return attrs


class JournalEntryCreateSerializer(serializers.Serializer):
    entry_date = serializers.DateField(required=False)
    description = serializers.CharField()
    lines = JournalLineInputSerializer(many=True)


class JournalEntryReverseSerializer(serializers.Serializer):
    entry_date = serializers.DateField(required=False)
    description = serializers.CharField(required=False, allow_blank=True)
