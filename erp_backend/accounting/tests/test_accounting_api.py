# accounting/tests/test_accounting_api.py

from io import StringIO

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.core.management import call_command
from django.test import TestCase
from rest_framework.test import APIClient

from accounting.models.journal import JournalEntry
from accounting.services.account_resolver import get_account_by_code
from accounting.services.journal_entry_service import post_journal_entry

User = get_user_model()


class AccountingApiTests(TestCase):
    """
    Accounting API tests.

    GUARANTEES:
    - Anonymous users are rejected
    - Audit endpoints are permission-gated
    - Manual entries go through the posting engine
    """

    def setUp(self):
        call_command("seed_chart", stdout=StringIO())

        self.admin = User.objects.create_superuser(
            username="accountant", email="accountant@example.com", password="password123"
        )
        self.clerk = User.objects.create_user(username="clerk", password="password123")

        self.client = APIClient()
        self.client.force_authenticate(user=self.admin)

    def _manual_entry(self, amount="75.00"):
        return self.client.post(
            "/api/accounting/journal-entries/",
            {
                "description": "Owner funds bank",
                "lines": [
                    {"account_code": "1010", "debit": amount, "credit": "0"},
                    {"account_code": "3000", "debit": "0", "credit": amount},
                ],
            },
            format="json",
        )

    def test_anonymous_user_is_rejected(self):
        res = APIClient().get("/api/accounting/journal-entries/")
        self.assertEqual(res.status_code, 401)

    def test_accounts_lists_active_chart(self):
        res = self.client.get("/api/accounting/accounts/")
        self.assertEqual(res.status_code, 200)
        codes = [row["code"] for row in res.data]
        self.assertIn("1300", codes)
        self.assertIn("2000", codes)

    def test_manual_entry_is_posted(self):
        res = self._manual_entry()
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["total_debit"], "75.00")
        self.assertEqual(res.data["source_module"], JournalEntry.SOURCE_MANUAL)

    def test_unbalanced_manual_entry_returns_400(self):
        res = self.client.post(
            "/api/accounting/journal-entries/",
            {
                "description": "Broken",
                "lines": [
                    {"account_code": "1010", "debit": "10.00"},
                    {"account_code": "3000", "credit": "9.00"},
                ],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertIn("not balanced", res.data["detail"])
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_reverse_endpoint(self):
        entry_id = self._manual_entry().data["id"]

        res = self.client.post(f"/api/accounting/journal-entries/{entry_id}/reverse/", {})
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["reverses"], entry_id)

        again = self.client.post(f"/api/accounting/journal-entries/{entry_id}/reverse/", {})
        self.assertEqual(again.status_code, 400)

    def test_document_entry_cannot_be_reversed_by_hand(self):
        entry = post_journal_entry(
            description="Bill B-1 approved",
            lines=[
                {"account": get_account_by_code("1300"), "debit": "40.00", "credit": "0"},
                {"account": get_account_by_code("2000"), "debit": "0", "credit": "40.00"},
            ],
            source_module=JournalEntry.SOURCE_INVENTORY,
            reference_type="BILL_APPROVAL",
            reference_id="b-1",
            source_document_type="bill",
            source_document_id="b-1",
        )

        res = self.client.post(f"/api/accounting/journal-entries/{entry.id}/reverse/", {})

        self.assertEqual(res.status_code, 400)
        self.assertIn("belongs to a bill", res.data["detail"])
        self.assertFalse(entry.reversals.exists())

    def test_user_without_permission_gets_403(self):
        client = APIClient()
        client.force_authenticate(user=self.clerk)

        self.assertEqual(client.get("/api/accounting/journal-entries/").status_code, 403)
        self.assertEqual(client.get("/api/accounting/trial-balance/").status_code, 403)

    def test_granted_permission_allows_reading(self):
        self.clerk.user_permissions.add(
            Permission.objects.get(codename="view_journalentry", content_type__app_label="accounting")
        )
        clerk = User.objects.get(pk=self.clerk.pk)

        client = APIClient()
        client.force_authenticate(user=clerk)
        self.assertEqual(client.get("/api/accounting/journal-entries/").status_code, 200)

    def test_trial_balance_rejects_bad_date(self):
        res = self.client.get("/api/accounting/trial-balance/", {"as_of": "yesterday"})
        self.assertEqual(res.status_code, 400)

    def test_trial_balance_is_balanced(self):
        self._manual_entry("12.34")
        res = self.client.get("/api/accounting/trial-balance/")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["totals"]["balanced"])
        self.assertEqual(res.data["totals"]["debit"], "12.34")
