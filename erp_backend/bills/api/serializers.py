# bills/api/serializers.py

from rest_framework import serializers

from bills.models import Bill, BillLine, BillPayment, Vendor


class VendorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Vendor
        fields = "__all__"
        read_only_fields = ("id", "created_at")


class BillLineSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source="product.sku", read_only=True, default=None)
    expense_account_code = serializers.CharField(
        source="expense_account.code", read_only=True, default=None
    )

    class Meta:
        model = BillLine
        fields = [
            "id",
            "line_number",
            "product",
            "product_sku",
            "expense_account",
            "expense_account_code",
            "description",
            "quantity",
            "unit_cost",
            "tax_rate",
            "tax_amount",
            "line_total",
        ]
        read_only_fields = fields


class BillSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source="vendor.name", read_only=True)
    balance_due = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    lines = BillLineSerializer(many=True, read_only=True)

    class Meta:
        model = Bill
        fields = [
            "id",
            "bill_number",
            "vendor",
            "vendor_name",
            "vendor_invoice_number",
            "bill_date",
            "due_date",
            "status",
            "subtotal",
            "tax_amount",
            "total_amount",
            "amount_paid",
            "balance_due",
            "currency",
            "notes",
            "lines",
            "created_by",
            "approved_by",
            "approved_at",
            "voided_by",
            "voided_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BillLineInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=False, allow_null=True)
    expense_account_id = serializers.IntegerField(required=False, allow_null=True)
    account_code = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    unit_cost = serializers.DecimalField(
        max_digits=14, decimal_places=4, required=False, allow_null=True
    )
    unit_price = serializers.DecimalField(
        max_digits=14, decimal_places=4, required=False, allow_null=True
    )
    tax_rate = serializers.DecimalField(
        max_digits=7, decimal_places=4, required=False, default=0, min_value=0
    )

    def validate(self, attrs):
        if attrs.get("unit_cost") is None:
            attrs["unit_cost"] = attrs.pop("unit_price", None) or 0
        else:
            attrs.pop("unit_price", None)

        if attrs["unit_cost"] < 0:
            raise serializers.ValidationError({"unit_cost": "unit_cost cannot be negative"})
        return attrs


class BillCreateSerializer(serializers.Serializer):
    vendor_id = serializers.UUIDField()
    vendor_invoice_number = serializers.CharField(required=False, allow_blank=True, default="")
    bill_date = serializers.DateField(required=False)
    due_date = serializers.DateField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    currency = serializers.CharField(required=False, max_length=3)
    line_items = BillLineInputSerializer(many=True, required=False)
    lines = BillLineInputSerializer(many=True, required=False)

    def validate(self, attrs):
        bill_date = attrs.get("bill_date")
        if bill_date and attrs["due_date"] < bill_date:
            raise serializers.ValidationError({"due_date": "due_date cannot be before bill_date"})

        line_items = attrs.pop("line_items", None)
        lines = attrs.pop("lines", None)
        attrs["lines"] = line_items if line_items is not None else (lines or [])
        return attrs


class BillUpdateSerializer(serializers.Serializer):
    """
    PATCH body. Every field is optional; line_items wins over lines.
    """

    vendor_id = serializers.UUIDField(required=False)
    vendor_invoice_number = serializers.CharField(required=False, allow_blank=True)
    bill_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.CharField(required=False)
    line_items = BillLineInputSerializer(many=True, required=False)
    lines = BillLineInputSerializer(many=True, required=False)

    def validate(self, attrs):
        bill_date = attrs.get("bill_date")
        due_date = attrs.get("due_date")
        if bill_date and due_date and due_date < bill_date:
            raise serializers.ValidationError({"due_date": "due_date cannot be before bill_date"})
        return attrs


class BillPaymentSerializer(serializers.ModelSerializer):
    journal_entry_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = BillPayment
        fields = [
            "id",
            "bill",
            "payment_date",
            "amount",
            "payment_method",
            "reference",
            "notes",
            "journal_entry_id",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class BillPaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_method = serializers.ChoiceField(
        choices=["cash", "bank", "transfer", "card"], default="cash"
    )
    payment_date = serializers.DateField(required=False)
    payment_account_code = serializers.CharField(
        required=False, allow_blank=True, allow_null=True
    )
    reference = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
