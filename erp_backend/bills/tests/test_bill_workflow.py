# bills/tests/test_bill_workflow.py

from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import override_settings

from accounting.models.journal import JournalEntry
from accounting.services.journal_entry_service import reverse_journal_entry
from accounting.services.posting import get_bill_approval_entry
from accounting.services.trial_balance_service import TrialBalanceService
from bills.models import Bill, BillLine
from bills.services.bill_lifecycle import can_transition, validate_transition
from bills.services.bill_service import delete_bill, update_bill, void_bill
from bills.services.exceptions import BillNotFoundError, BillValidationError
from bills.services.payment_service import record_bill_payment
from bills.tests.base import BillTestCase
from products.models import InventoryMovement, ProductStockLocation, StockLocation
from products.services.bill_inventory import process_bill_inventory
from products.services.valuation import (
    InsufficientStockError,
    InventoryReversalError,
    adjust_stock,
)


class BillLifecycleRulesTests(BillTestCase):
    def test_allowed_edges(self):
        self.assertTrue(can_transition("draft", "approved"))
        self.assertTrue(can_transition("overdue", "partial"))
        self.assertFalse(can_transition("draft", "paid"))
        self.assertFalse(can_transition("void", "approved"))
        self.assertFalse(can_transition("paid", "void"))

    def test_invalid_edge_message(self):
        with self.assertRaisesMessage(BillValidationError, "Invalid status transition: paid -> draft"):
            validate_transition("paid", "draft")


class CreateBillTests(BillTestCase):
    def test_draft_with_numbered_lines_and_totals(self):
        bill = self.make_bill(
            [
                {"product_id": self.product.id, "quantity": "2", "unit_cost": "10.00", "tax_rate": "0.075"},
                {"description": "Courier", "quantity": "1", "unit_cost": "5.555"},
                {"description": "", "quantity": "3", "unit_cost": "1.00"},
            ]
        )

        self.assertEqual(bill.status, Bill.STATUS_DRAFT)
        self.assertEqual(bill.bill_number, f"BILL-{self.today.year}-00001")

        lines = list(bill.lines.order_by("line_number"))
        self.assertEqual([line.line_number for line in lines], [1, 2])
        self.assertEqual(lines[0].description, "Widget")
        self.assertEqual(lines[0].line_total, Decimal("20.00"))
        self.assertEqual(lines[0].tax_amount, Decimal("1.50"))
        self.assertEqual(lines[1].line_total, Decimal("5.56"))

        self.assertEqual(bill.subtotal, Decimal("25.56"))
        self.assertEqual(bill.tax_amount, Decimal("1.50"))
        self.assertEqual(bill.total_amount, Decimal("27.06"))

    def test_bill_numbers_increase(self):
        self.make_bill()
        second = self.make_bill()
        self.assertEqual(second.bill_number, f"BILL-{self.today.year}-00002")

    def test_unknown_vendor_is_rejected(self):
        self.vendor.is_active = False
        self.vendor.save()
        with self.assertRaisesMessage(BillValidationError, "Vendor not found"):
            self.make_bill()

    def test_due_date_before_bill_date_is_rejected(self):
        with self.assertRaises(BillValidationError):
            self.make_bill(bill_date=self.today, due_date=self.today - timedelta(days=1))

    def test_model_rejects_inconsistent_totals(self):
        bill = self.make_bill()
        bill.total_amount = Decimal("1.00")
        with self.assertRaises(ValidationError):
            bill.save()


class UpdateBillTests(BillTestCase):
    def test_line_replacement_recomputes_totals(self):
        bill = self.make_bill()

        result = update_bill(
            bill_id=bill.id,
            patch={
                "line_items": [
                    {"product_id": self.product.id, "quantity": "3", "unit_price": "4.00", "tax_rate": "0.10"},
                ],
                "lines": [{"description": "ignored", "quantity": "1", "unit_cost": "999"}],
                "notes": "Revised quote",
            },
        )

        bill = result.bill
        self.assertFalse(result.approved)
        self.assertEqual(bill.notes, "Revised quote")
        self.assertEqual(BillLine.objects.filter(bill=bill).count(), 1)
        self.assertEqual(bill.subtotal, Decimal("12.00"))
        self.assertEqual(bill.tax_amount, Decimal("1.20"))
        self.assertEqual(bill.total_amount, Decimal("13.20"))

    def test_missing_bill(self):
        with self.assertRaises(BillNotFoundError):
            update_bill(bill_id="00000000-0000-0000-0000-000000000000", patch={"notes": "x"})

    def test_status_other_than_approved_is_rejected(self):
        bill = self.make_approved_bill()
        with self.assertRaisesMessage(BillValidationError, "cannot be set by editing a bill"):
            update_bill(bill_id=bill.id, patch={"status": "paid"})

    def test_invalid_transition_is_rejected(self):
        bill = self.make_bill()
        with self.assertRaisesMessage(BillValidationError, "Invalid status transition: draft -> void"):
            update_bill(bill_id=bill.id, patch={"status": "void"})

    def test_lines_are_frozen_after_approval(self):
        bill = self.make_approved_bill()
        with self.assertRaisesMessage(BillValidationError, "only be edited on draft bills"):
            update_bill(
                bill_id=bill.id,
                patch={"line_items": [{"description": "x", "quantity": "1", "unit_cost": "1"}]},
            )

    def test_header_edits_allowed_after_approval(self):
        bill = self.make_approved_bill()
        result = update_bill(bill_id=bill.id, patch={"vendor_invoice_number": " INV-77 "})
        self.assertEqual(result.bill.vendor_invoice_number, "INV-77")

    def test_approval_needs_lines(self):
        bill = self.make_bill(lines=[])
        with self.assertRaisesMessage(BillValidationError, "no line items"):
            self.approve(bill)

        bill.refresh_from_db()
        self.assertEqual(bill.status, Bill.STATUS_DRAFT)


class ApprovalInventoryTests(BillTestCase):
    """
    Approval side effects.

    GUARANTEES:
    - Tracked lines are received at weighted-average cost
    - One balanced aggregate entry per approval
    - Re-processing never double counts
    """

    def test_approve_receives_stock_and_posts_entry(self):
        bill = self.make_bill()
        result = self.approve(bill)

        self.assertTrue(result.approved)
        self.assertEqual(result.bill.status, Bill.STATUS_APPROVED)
        self.assertEqual(result.bill.approved_by, self.user)
        self.assertIsNotNone(result.bill.approved_at)

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("10.000"))
        self.assertEqual(self.product.cost_price, Decimal("5.0000"))

        movements = InventoryMovement.objects.filter(reference_type="bill", reference_id=str(bill.id))
        self.assertEqual(movements.count(), 1)
        self.assertEqual(movements.get().movement_type, "purchase")

        je = JournalEntry.objects.get(reference=f"BILL_APPROVAL:{bill.id}")
        self.assertEqual(je.source_module, JournalEntry.SOURCE_INVENTORY)
        self.assertEqual(movements.get().journal_entry, je)
        self.assertEqual(je.lines.get(account__code="1300").debit, Decimal("50.00"))
        self.assertEqual(je.lines.get(account__code="2000").credit, Decimal("50.00"))
        self.assertEqual(result.inventory.as_dict()["movements"], 1)

    def test_mixed_bill_with_tax(self):
        bill = self.make_bill(
            [
                {"product_id": self.product.id, "quantity": "2", "unit_cost": "10.00", "tax_rate": "0.075"},
                {"product_id": self.service.id, "quantity": "1", "unit_cost": "5.555"},
            ]
        )
        self.approve(bill)

        je = JournalEntry.objects.get(reference=f"BILL_APPROVAL:{bill.id}")
        self.assertEqual(je.lines.get(account__code="1300").debit, Decimal("20.00"))
        self.assertEqual(je.lines.get(account__code="6000").debit, Decimal("5.56"))
        self.assertEqual(je.lines.get(account__code="1400").debit, Decimal("1.50"))
        self.assertEqual(je.lines.get(account__code="2000").credit, Decimal("27.06"))

        self.service.refresh_from_db()
        self.assertEqual(self.service.quantity_on_hand, Decimal("0.000"))
        self.assertFalse(InventoryMovement.objects.filter(product=self.service).exists())

    def test_expense_only_bill_uses_line_account(self):
        bill = self.make_bill([{"description": "Rent", "quantity": "1", "unit_cost": "300", "account_code": "6000"}])
        self.approve(bill)

        je = JournalEntry.objects.get(reference=f"BILL_APPROVAL:{bill.id}")
        self.assertEqual(je.source_module, JournalEntry.SOURCE_BILLS)
        self.assertEqual(je.lines.get(account__code="6000").debit, Decimal("300.00"))

    def test_return_line_reduces_stock(self):
        self.make_approved_bill()

        bill = self.make_bill(
            [
                {"product_id": self.product.id, "quantity": "4", "unit_cost": "6.00"},
                {"product_id": self.product.id, "quantity": "-2", "unit_cost": "5.00"},
            ]
        )
        self.approve(bill)

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("12.000"))
        # (10 * 5 + 4 * 6) / 14
        self.assertEqual(self.product.cost_price, Decimal("5.2857"))

        types = (
            InventoryMovement.objects.filter(reference_id=str(bill.id))
            .values_list("movement_type", flat=True)
        )
        self.assertCountEqual(types, ["purchase", "return"])

        je = JournalEntry.objects.get(reference=f"BILL_APPROVAL:{bill.id}")
        self.assertEqual(je.lines.get(account__code="1300").debit, Decimal("14.00"))
        self.assertEqual(je.lines.get(account__code="2000").credit, Decimal("14.00"))

    def test_process_bill_inventory_is_idempotent(self):
        bill = self.make_approved_bill()

        again = process_bill_inventory(bill=bill)

        self.assertTrue(again.already_processed)
        self.assertEqual(len(again.movements), 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("10.000"))
        self.assertEqual(JournalEntry.objects.filter(reference__startswith="BILL_APPROVAL").count(), 1)


class VoidAndDeleteTests(BillTestCase):
    def test_void_restores_stock_and_cost(self):
        bill = self.make_approved_bill()

        result = void_bill(bill_id=bill.id, actor=self.user)

        self.assertEqual(result.bill.status, Bill.STATUS_VOID)
        self.assertEqual(result.bill.voided_by, self.user)
        self.assertTrue(result.inventory.reversed)

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("0.000"))
        self.assertEqual(self.product.cost_price, Decimal("0.0000"))

        reversal = JournalEntry.objects.get(reference=f"BILL_VOID:{bill.id}")
        self.assertEqual(result.inventory.journal_entry, reversal)
        self.assertEqual(reversal.reverses.reference, f"BILL_APPROVAL:{bill.id}")
        self.assertEqual(reversal.lines.get(account__code="1300").credit, Decimal("50.00"))

        movement = InventoryMovement.objects.get(reference_type="bill_void", reference_id=str(bill.id))
        self.assertEqual(movement.quantity, Decimal("-10.000"))
        self.assertEqual(movement.journal_entry, reversal)

    def test_void_with_return_line_restores_first_cost(self):
        self.make_approved_bill()
        bill = self.make_approved_bill(
            [
                {"product_id": self.product.id, "quantity": "4", "unit_cost": "6.00"},
                {"product_id": self.product.id, "quantity": "-2", "unit_cost": "5.00"},
            ]
        )

        void_bill(bill_id=bill.id)

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("10.000"))
        self.assertEqual(self.product.cost_price, Decimal("5.0000"))

    def test_void_restores_cost_when_lines_net_to_zero(self):
        self.make_approved_bill()
        bill = self.make_approved_bill(
            [
                {"product_id": self.product.id, "quantity": "10", "unit_cost": "8.00"},
                {"product_id": self.product.id, "quantity": "-10", "unit_cost": "5.00"},
            ]
        )
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("10.000"))
        self.assertEqual(self.product.cost_price, Decimal("6.5000"))

        void_bill(bill_id=bill.id)

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("10.000"))
        self.assertEqual(self.product.cost_price, Decimal("5.0000"))
        self.assertEqual(
            InventoryMovement.objects.filter(
                reference_type="bill_void", reference_id=str(bill.id)
            ).count(),
            2,
        )

    def test_void_after_approval_entry_was_reversed_elsewhere(self):
        bill = self.make_approved_bill()
        earlier = reverse_journal_entry(entry=get_bill_approval_entry(bill=bill))

        result = void_bill(bill_id=bill.id)

        self.assertEqual(result.bill.status, Bill.STATUS_VOID)
        self.assertEqual(result.inventory.journal_entry, earlier)
        self.assertFalse(JournalEntry.objects.filter(reference=f"BILL_VOID:{bill.id}").exists())

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("0.000"))

        data = TrialBalanceService().generate()
        self.assertTrue(data["totals"]["balanced"])
        by_code = {row["account_code"]: row for row in data["accounts"]}
        self.assertEqual(by_code["2000"]["balance"], "0.00")

    def test_void_draft_is_rejected(self):
        bill = self.make_bill()
        with self.assertRaisesMessage(BillValidationError, "Draft bills cannot be voided"):
            void_bill(bill_id=bill.id)

    def test_void_twice_is_rejected(self):
        bill = self.make_approved_bill()
        void_bill(bill_id=bill.id)

        with self.assertRaisesMessage(BillValidationError, "Bill is already voided"):
            void_bill(bill_id=bill.id)
        self.assertEqual(JournalEntry.objects.filter(reference=f"BILL_VOID:{bill.id}").count(), 1)

    def test_voided_bill_cannot_be_edited(self):
        bill = self.make_approved_bill()
        void_bill(bill_id=bill.id)
        with self.assertRaisesMessage(BillValidationError, "Cannot edit paid or voided bills"):
            update_bill(bill_id=bill.id, patch={"notes": "late"})

    def test_delete_draft(self):
        bill = self.make_bill()
        delete_bill(bill_id=bill.id)
        self.assertFalse(Bill.objects.filter(pk=bill.id).exists())
        self.assertFalse(BillLine.objects.filter(bill_id=bill.id).exists())

    def test_delete_non_draft_is_rejected(self):
        bill = self.make_approved_bill()
        with self.assertRaisesMessage(BillValidationError, "Can only delete draft bills"):
            delete_bill(bill_id=bill.id)

    def test_delete_voided_is_rejected(self):
        bill = self.make_approved_bill()
        void_bill(bill_id=bill.id)
        with self.assertRaisesMessage(BillValidationError, "Bill is already voided"):
            delete_bill(bill_id=bill.id)


class StockLocationChangeTests(BillTestCase):
    """Voids and write-offs follow the stock, not the current default location."""

    def _location(self, code, **kwargs):
        return StockLocation.objects.create(code=code, name=f"Store {code}", **kwargs)

    def _void_movement(self, bill):
        return InventoryMovement.objects.get(reference_type="bill_void", reference_id=str(bill.id))

    def test_void_after_first_default_location_is_added(self):
        bill = self.make_approved_bill()
        main = self._location("main", is_default=True)

        void_bill(bill_id=bill.id)

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("0.000"))
        self.assertIsNone(self._void_movement(bill).location)
        self.assertFalse(
            ProductStockLocation.objects.filter(product=self.product, location=main).exists()
        )

    def test_void_after_default_location_is_switched(self):
        first = self._location("a", is_default=True)
        bill = self.make_approved_bill()
        second = self._location("b", is_default=True)

        void_bill(bill_id=bill.id)

        self.assertEqual(self._void_movement(bill).location, first)
        row = ProductStockLocation.objects.get(product=self.product, location=first)
        self.assertEqual(row.quantity_on_hand, Decimal("0.000"))
        self.assertFalse(
            ProductStockLocation.objects.filter(product=self.product, location=second).exists()
        )

    def test_write_off_takes_unlocated_stock(self):
        self.make_approved_bill()
        self._location("main", is_default=True)

        result = adjust_stock(product=self.product, quantity_delta="-3", reason="damaged")

        self.assertIsNone(result.movement.location)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("7.000"))

    def test_write_off_takes_stock_from_old_default(self):
        first = self._location("a", is_default=True)
        self.make_approved_bill()
        self._location("b", is_default=True)

        result = adjust_stock(product=self.product, quantity_delta="-3", reason="damaged")

        self.assertEqual(result.movement.location, first)
        row = ProductStockLocation.objects.get(product=self.product, location=first)
        self.assertEqual(row.quantity_on_hand, Decimal("7.000"))


class LateReversalPolicyTests(BillTestCase):
    def _approve_then_adjust(self):
        bill = self.make_approved_bill()
        adjust_stock(product=self.product, quantity_delta=5, unit_cost="8.00")
        self.product.refresh_from_db()
        # (10 * 5 + 5 * 8) / 15
        self.assertEqual(self.product.cost_price, Decimal("6.0000"))
        return bill

    def test_approximate_keeps_blended_cost(self):
        bill = self._approve_then_adjust()

        with self.assertLogs("products.services.bill_inventory", level="WARNING"):
            result = void_bill(bill_id=bill.id)

        self.assertTrue(result.inventory.reversed)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("5.000"))
        self.assertEqual(self.product.cost_price, Decimal("6.0000"))

    @override_settings(INVENTORY_LATE_REVERSAL_POLICY="reject")
    def test_reject_policy_blocks_void(self):
        bill = self._approve_then_adjust()

        with self.assertRaises(InventoryReversalError):
            void_bill(bill_id=bill.id)

        bill.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(bill.status, Bill.STATUS_APPROVED)
        self.assertEqual(self.product.quantity_on_hand, Decimal("15.000"))
        self.assertFalse(JournalEntry.objects.filter(reference=f"BILL_VOID:{bill.id}").exists())

    def test_reversal_cannot_drive_stock_negative(self):
        bill = self.make_approved_bill()
        adjust_stock(product=self.product, quantity_delta=-8)

        with self.assertRaises(InsufficientStockError):
            void_bill(bill_id=bill.id)

        bill.refresh_from_db()
        self.assertEqual(bill.status, Bill.STATUS_APPROVED)


class SideEffectPolicyTests(BillTestCase):
    """An approval whose return line cannot leave stock."""

    def _failing_bill(self):
        other = self.product.__class__.objects.create(name="Gadget", sku="GADGET-1")
        return self.make_bill(
            [
                {"product_id": self.product.id, "quantity": "10", "unit_cost": "5.00"},
                {"product_id": other.id, "quantity": "-2", "unit_cost": "5.00"},
            ]
        )

    def test_atomic_policy_rolls_back_everything(self):
        bill = self._failing_bill()

        with self.assertRaises(InsufficientStockError):
            self.approve(bill)

        bill.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(bill.status, Bill.STATUS_DRAFT)
        self.assertEqual(self.product.quantity_on_hand, Decimal("0.000"))
        self.assertFalse(JournalEntry.objects.exists())

    @override_settings(BILLS_SIDE_EFFECT_POLICY="best_effort")
    def test_best_effort_commits_status_and_logs(self):
        bill = self._failing_bill()

        with self.assertLogs("bills.services.bill_service", level="ERROR"):
            result = self.approve(bill)

        self.assertTrue(result.approved)
        self.assertIsNone(result.inventory)

        bill.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(bill.status, Bill.STATUS_APPROVED)
        self.assertEqual(self.product.quantity_on_hand, Decimal("0.000"))
        self.assertFalse(JournalEntry.objects.exists())


class BooksStayBalancedTests(BillTestCase):
    def test_trial_balance_after_approve_pay_and_void(self):
        service = TrialBalanceService()

        bill = self.make_approved_bill(
            [
                {"product_id": self.product.id, "quantity": "3", "unit_cost": "7.333", "tax_rate": "0.05"},
                {"description": "Handling", "quantity": "1", "unit_cost": "2.49"},
            ]
        )
        self.assertTrue(service.generate()["totals"]["balanced"])

        record_bill_payment(bill_id=bill.id, amount="10.00")
        self.assertTrue(service.generate()["totals"]["balanced"])

        void_bill(bill_id=bill.id)
        data = service.generate()
        self.assertTrue(data["totals"]["balanced"])

        by_code = {row["account_code"]: row for row in data["accounts"]}
        self.assertEqual(by_code["1300"]["balance"], "0.00")

        for entry in JournalEntry.objects.prefetch_related("lines"):
            lines = list(entry.lines.all())
            self.assertEqual(sum(l.debit for l in lines), sum(l.credit for l in lines))
