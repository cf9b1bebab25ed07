# bills/tests/test_bills_api.py

import uuid
from unittest import mock

from django.test import override_settings
from rest_framework.test import APIClient

from bills.models import Bill
from bills.services.bill_service import void_bill
from bills.services.payment_service import record_bill_payment
from bills.tests.base import BillTestCase
from products.services.valuation import InventoryError


class BillApiTests(BillTestCase):
    """
    Bills API tests.

    GUARANTEES:
    - Anonymous users are rejected (401)
    - Missing bills return 404, rule violations 400
    - Approval and void responses carry the inventory summary
    """

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

    def url(self, bill_id):
        return f"/api/bills/{bill_id}/"

    def test_create_and_list(self):
        res = self.client.post(
            "/api/bills/",
            {
                "vendor_id": str(self.vendor.id),
                "due_date": "2099-01-31",
                "line_items": [
                    {"product_id": str(self.product.id), "quantity": "2", "unit_price": "4.50"},
                ],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["data"]["status"], "draft")
        self.assertEqual(res.data["data"]["total_amount"], "9.00")
        self.assertEqual(len(res.data["data"]["lines"]), 1)

        listing = self.client.get("/api/bills/", {"status": "draft"})
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(listing.data["count"], 1)

    def test_create_with_unknown_vendor_returns_400(self):
        res = self.client.post(
            "/api/bills/",
            {"vendor_id": str(uuid.uuid4()), "due_date": "2099-01-31"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["detail"], "Vendor not found")

    def test_vendors_endpoint(self):
        res = self.client.post("/api/bills/vendors/", {"name": "Beta Traders"}, format="json")
        self.assertEqual(res.status_code, 201)
        names = [row["name"] for row in self.client.get("/api/bills/vendors/").data]
        self.assertEqual(names, ["Acme Supplies", "Beta Traders"])

    # ---------------- PATCH ----------------

    def test_patch_requires_authentication(self):
        bill = self.make_bill()
        res = APIClient().patch(self.url(bill.id), {"notes": "x"}, format="json")
        self.assertEqual(res.status_code, 401)

    def test_patch_missing_bill_returns_404(self):
        res = self.client.patch(self.url(uuid.uuid4()), {"notes": "x"}, format="json")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["detail"], "Bill not found")

    def test_patch_approve_returns_inventory_summary(self):
        bill = self.make_bill()
        res = self.client.patch(self.url(bill.id), {"status": "approved"}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["status"], "approved")
        self.assertTrue(res.data["inventory"]["processed"])
        self.assertEqual(res.data["inventory"]["movements"], 1)
        self.assertIsNotNone(res.data["inventory"]["journal_entry_id"])

    def test_patch_lines_recomputes_totals(self):
        bill = self.make_bill()
        res = self.client.patch(
            self.url(bill.id),
            {"lines": [{"description": "Setup fee", "quantity": "1", "unit_cost": "12.00", "tax_rate": "0.1"}]},
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertNotIn("inventory", res.data)
        self.assertEqual(res.data["data"]["subtotal"], "12.00")
        self.assertEqual(res.data["data"]["tax_amount"], "1.20")
        self.assertEqual(res.data["data"]["total_amount"], "13.20")

    def test_patch_paid_bill_returns_400(self):
        bill = self.make_approved_bill()
        record_bill_payment(bill_id=bill.id, amount="50.00")

        res = self.client.patch(self.url(bill.id), {"notes": "late"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["detail"], "Cannot edit paid or voided bills")

    def test_patch_invalid_status_returns_400(self):
        bill = self.make_bill()
        res = self.client.patch(self.url(bill.id), {"status": "paid"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertIn("Invalid status transition", res.data["detail"])

    @override_settings(BILLS_SIDE_EFFECT_POLICY="best_effort")
    def test_patch_best_effort_reports_unprocessed_inventory(self):
        bill = self.make_bill()
        with mock.patch(
            "bills.services.bill_service.process_bill_inventory",
            side_effect=InventoryError("boom"),
        ), self.assertLogs("bills.services.bill_service", level="ERROR"):
            res = self.client.patch(self.url(bill.id), {"status": "approved"}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["status"], "approved")
        self.assertFalse(res.data["inventory"]["processed"])

    def test_unexpected_error_returns_500(self):
        bill = self.make_bill()
        with mock.patch(
            "bills.api.views.update_bill", side_effect=RuntimeError("database on fire")
        ), self.assertLogs("bills.api.views", level="ERROR"):
            res = self.client.patch(self.url(bill.id), {"notes": "x"}, format="json")

        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.data["detail"], "database on fire")

    # ---------------- DELETE ----------------

    def test_delete_requires_authentication(self):
        bill = self.make_approved_bill()
        res = APIClient().delete(self.url(bill.id))
        self.assertEqual(res.status_code, 401)

    def test_delete_action_removes_draft(self):
        bill = self.make_bill()
        res = self.client.delete(f"{self.url(bill.id)}?action=delete")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, {"message": "Bill deleted"})
        self.assertFalse(Bill.objects.filter(pk=bill.id).exists())

    def test_delete_action_on_approved_returns_400(self):
        bill = self.make_approved_bill()
        res = self.client.delete(f"{self.url(bill.id)}?action=delete")
        self.assertEqual(res.status_code, 400)

    def test_void_is_the_default_action(self):
        bill = self.make_approved_bill()
        res = self.client.delete(self.url(bill.id))

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["message"], "Bill voided")
        self.assertEqual(res.data["data"]["status"], "void")
        self.assertTrue(res.data["inventory"]["reversed"])
        self.assertIsNotNone(res.data["inventory"]["journal_entry_id"])

    def test_void_already_voided_returns_400(self):
        bill = self.make_approved_bill()
        void_bill(bill_id=bill.id)

        res = self.client.delete(f"{self.url(bill.id)}?action=void")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["detail"], "Bill is already voided")

    def test_void_draft_returns_400(self):
        bill = self.make_bill()
        res = self.client.delete(self.url(bill.id))
        self.assertEqual(res.status_code, 400)

    def test_unknown_action_returns_400(self):
        bill = self.make_bill()
        res = self.client.delete(f"{self.url(bill.id)}?action=archive")
        self.assertEqual(res.status_code, 400)

    def test_delete_missing_bill_returns_404(self):
        res = self.client.delete(self.url(uuid.uuid4()))
        self.assertEqual(res.status_code, 404)

    # ---------------- PAYMENTS ----------------

    def test_payment_endpoints(self):
        bill = self.make_approved_bill()
        url = f"{self.url(bill.id)}payments/"

        res = self.client.post(url, {"amount": "15.00", "payment_method": "bank"}, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["bill"]["status"], "partial")
        self.assertEqual(res.data["bill"]["balance_due"], "35.00")

        over = self.client.post(url, {"amount": "100.00"}, format="json")
        self.assertEqual(over.status_code, 400)

        listing = self.client.get(url)
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(len(listing.data), 1)

    def test_payments_for_missing_bill_return_404(self):
        self.assertEqual(self.client.get(f"{self.url(uuid.uuid4())}payments/").status_code, 404)
