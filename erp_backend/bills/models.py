# bills/models.py

import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from products.models.product import Product

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _default_currency() -> str:
    return getattr(settings, "DEFAULT_CURRENCY", "USD") or "USD"


User = settings.AUTH_USER_MODEL


class Vendor(models.Model):
    """
    Vendor master.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    address = models.TextField(blank=True, default="")
    tax_id = models.CharField(max_length=64, blank=True, default="")
    payment_terms_days = models.PositiveIntegerField(default=30)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="vendor_name_idx"),
            models.Index(fields=["is_active"], name="vendor_active_idx"),
        ]

    def clean(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError({"name": "name is required"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return self.name


class Bill(models.Model):
    """
    Vendor bill header (accounts payable).

    Lifecycle (bills.services.bill_lifecycle):
        draft -> approved -> partial -> paid
        approved | partial -> overdue
        approved | partial | overdue -> void
    paid and void are terminal.

    Totals are derived from lines by bill_service; clean() enforces
    total_amount == subtotal + tax_amount.
    """

    STATUS_DRAFT = "draft"
    STATUS_APPROVED = "approved"
    STATUS_PARTIAL = "partial"
    STATUS_PAID = "paid"
    STATUS_OVERDUE = "overdue"
    STATUS_VOID = "void"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_PARTIAL, "Partially Paid"),
        (STATUS_PAID, "Paid"),
        (STATUS_OVERDUE, "Overdue"),
        (STATUS_VOID, "Void"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    bill_number = models.CharField(max_length=32, unique=True)

    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.PROTECT,
        related_name="bills",
    )
    vendor_invoice_number = models.CharField(max_length=64, blank=True, default="")

    bill_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField()

    status = models.CharField(
        max_length=20, choices=STATUSES, default=STATUS_DRAFT, db_index=True
    )

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    amount_paid = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    currency = models.CharField(max_length=3, default=_default_currency)
    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bills_created",
    )
    approved_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bills_approved",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bills_voided",
    )
    voided_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-bill_date", "-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_paid__gte=Decimal("0.00")),
                name="bill_amount_paid_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(due_date__gte=models.F("bill_date")),
                name="bill_due_after_bill_date",
            ),
        ]
        indexes = [
            models.Index(fields=["vendor", "bill_date"], name="bill_vendor_date_idx"),
            models.Index(fields=["status", "due_date"], name="bill_status_due_idx"),
        ]

    def __str__(self):
        return f"{self.bill_number} ({self.vendor.name})"

    @property
    def balance_due(self) -> Decimal:
        return _money(self.total_amount) - _money(self.amount_paid)

    @property
    def is_editable(self) -> bool:
        return self.status not in {self.STATUS_PAID, self.STATUS_VOID}

    def clean(self):
        subtotal = _money(self.subtotal)
        tax = _money(self.tax_amount)
        total = _money(self.total_amount)
        paid = _money(self.amount_paid)

        if total != subtotal + tax:
            raise ValidationError(
                {"total_amount": "total_amount must equal subtotal + tax_amount"}
            )

        if paid < 0:
            raise ValidationError({"amount_paid": "amount_paid cannot be negative"})

        if paid > max(total, Decimal("0.00")):
            raise ValidationError({"amount_paid": "amount_paid cannot exceed total_amount"})

        if self.bill_date and self.due_date and self.due_date < self.bill_date:
            raise ValidationError({"due_date": "due_date cannot be before bill_date"})

        if self.currency:
            self.currency = self.currency.strip().upper()

    def save(self, *args, **kwargs):
        if self.vendor_invoice_number is not None:
            self.vendor_invoice_number = self.vendor_invoice_number.strip()
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.status != self.STATUS_DRAFT or _money(self.amount_paid) > 0:
            raise ValidationError("Can only delete draft bills with no payments")
        if self.payments.exists():
            raise ValidationError("Can only delete draft bills with no payments")
        return super().delete(*args, **kwargs)


class BillLine(models.Model):
    """
    One purchased item or service on a bill.

    line_total = round2(quantity * unit_cost)
    tax_amount = round2(quantity * unit_cost * tax_rate)
    A negative quantity is a return to the vendor.
    """

    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name="lines")
    line_number = models.PositiveIntegerField()

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bill_lines",
    )
    expense_account = models.ForeignKey(
        "accounting.Account",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bill_lines",
    )

    description = models.CharField(max_length=255, blank=True, default="")

    quantity = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("1.000"))
    unit_cost = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("0.0000"))
    tax_rate = models.DecimalField(
        max_digits=7,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Fraction, e.g. 0.0750 for 7.5%",
    )
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["line_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["bill", "line_number"],
                name="uniq_bill_line_number",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_cost__gte=Decimal("0")),
                name="bill_line_unit_cost_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(tax_rate__gte=Decimal("0")),
                name="bill_line_tax_rate_nonnegative",
            ),
        ]

    def clean(self):
        qty = Decimal(str(self.quantity or 0))
        cost = Decimal(str(self.unit_cost or 0))
        rate = Decimal(str(self.tax_rate or 0))

        if self.line_total is not None and _money(self.line_total) != _money(qty * cost):
            raise ValidationError({"line_total": "line_total must equal quantity * unit_cost"})

        if self.tax_amount is not None and _money(self.tax_amount) != _money(qty * cost * rate):
            raise ValidationError(
                {"tax_amount": "tax_amount must equal quantity * unit_cost * tax_rate"}
            )

    def save(self, *args, **kwargs):
        if self.description is not None:
            self.description = self.description.strip()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.bill.bill_number} #{self.line_number}: {self.description}"


class BillPayment(models.Model):
    """
    Payment against one bill (settles Accounts Payable).

    Immutable once recorded; the ledger entry is referenced by
    BILL_PAYMENT:<payment id>.
    """

    METHOD_CASH = "cash"
    METHOD_BANK = "bank"

    METHODS = [
        (METHOD_CASH, "Cash"),
        (METHOD_BANK, "Bank"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    bill = models.ForeignKey(Bill, on_delete=models.PROTECT, related_name="payments")

    payment_date = models.DateField(default=timezone.localdate)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=METHODS, default=METHOD_CASH)
    reference = models.CharField(max_length=64, blank=True, default="")
    notes = models.CharField(max_length=255, blank=True, default="")

    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bill_payments",
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bill_payments_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-payment_date", "-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0.00")),
                name="bill_payment_amount_gt_zero",
            ),
        ]
        indexes = [
            models.Index(fields=["bill", "payment_date"], name="bill_payment_date_idx"),
        ]

    def clean(self):
        if self.payment_method not in {self.METHOD_CASH, self.METHOD_BANK}:
            raise ValidationError({"payment_method": "Invalid payment_method"})

        if self.amount is not None and self.amount <= Decimal("0.00"):
            raise ValidationError({"amount": "amount must be > 0"})

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("BillPayment records are immutable")
        self.notes = (self.notes or "").strip()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.bill.bill_number} - {self.amount}"
