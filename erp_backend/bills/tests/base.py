# bills/tests/base.py

from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from bills.models import Vendor
from bills.services.bill_service import create_bill, update_bill
from products.models import Product

User = get_user_model()


class BillTestCase(TestCase):
    """Seeded chart, one vendor, one tracked product and one service item."""

    def setUp(self):
        call_command("seed_chart", stdout=StringIO())

        self.user = User.objects.create_superuser(
            username="ap_clerk", email="ap_clerk@example.com", password="password123"
        )
        self.vendor = Vendor.objects.create(name="Acme Supplies")
        self.product = Product.objects.create(name="Widget", sku="WIDGET-1")
        self.service = Product.objects.create(
            name="Freight", sku="SVC-FREIGHT", track_inventory=False
        )
        self.today = timezone.localdate()

    def make_bill(self, lines=None, **kwargs):
        kwargs.setdefault("due_date", self.today + timedelta(days=30))
        if lines is None:
            lines = [{"product_id": self.product.id, "quantity": "10", "unit_cost": "5.00"}]
        return create_bill(vendor_id=self.vendor.id, lines=lines, actor=self.user, **kwargs)

    def approve(self, bill):
        return update_bill(bill_id=bill.id, patch={"status": "approved"}, actor=self.user)

    def make_approved_bill(self, lines=None, **kwargs):
        bill = self.make_bill(lines, **kwargs)
        self.approve(bill)
        bill.refresh_from_db()
        return bill

    def refresh(self, *objs):
        for obj in objs:
            obj.refresh_from_db()

    def assertDecimal(self, value, expected):
        self.assertEqual(Decimal(value), Decimal(expected))
