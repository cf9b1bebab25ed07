# products/tests/test_valuation.py

from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import TestCase

from accounting.models.journal import JournalEntry
from accounting.services.trial_balance_service import TrialBalanceService
from products.models import InventoryMovement, Product, ProductStockLocation, StockLocation
from products.services.valuation import (
    InsufficientStockError,
    InventoryError,
    adjust_stock,
    apply_stock_movement,
    inventory_valuation,
    location_stock,
    transfer_stock,
    unlocated_quantity,
    weighted_average_cost,
)

User = get_user_model()


class WeightedAverageCostTests(TestCase):
    def test_blends_incoming_cost(self):
        # (10 * 5.00 + 10 * 7.00) / 20
        self.assertEqual(weighted_average_cost(10, "5.00", 10, "7.00"), Decimal("6.0000"))

    def test_first_receipt_takes_unit_cost(self):
        self.assertEqual(weighted_average_cost(0, 0, 4, "2.50"), Decimal("2.5000"))

    def test_rounds_to_four_places(self):
        # (1 * 1 + 2 * 2) / 3
        self.assertEqual(weighted_average_cost(1, 1, 2, 2), Decimal("1.6667"))

    def test_empty_result_keeps_old_cost(self):
        self.assertEqual(weighted_average_cost(5, "3.00", -5, "3.00"), Decimal("3.0000"))


class StockMovementTests(TestCase):
    """
    Stock engine tests.

    GUARANTEES:
    - Stock never goes negative
    - Every change leaves one immutable movement with before/after snapshots
    - Inflows re-average the cost, outflows keep it
    """

    def setUp(self):
        self.user = User.objects.create_user(username="stock_admin", password="password123")
        self.product = Product.objects.create(name="Copy Paper A4", sku="PAPER-A4")

    def test_inflow_updates_quantity_and_cost(self):
        apply_stock_movement(
            product=self.product, quantity=10, unit_cost="5.00", movement_type="purchase"
        )
        movement = apply_stock_movement(
            product=self.product,
            quantity=10,
            unit_cost="7.00",
            movement_type="purchase",
            actor=self.user,
        )

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("20.000"))
        self.assertEqual(self.product.cost_price, Decimal("6.0000"))

        self.assertEqual(movement.quantity_before, Decimal("10.000"))
        self.assertEqual(movement.quantity_after, Decimal("20.000"))
        self.assertEqual(movement.cost_before, Decimal("5.0000"))
        self.assertEqual(movement.cost_after, Decimal("6.0000"))
        self.assertEqual(movement.total_cost, Decimal("70.00"))
        self.assertEqual(movement.performed_by, self.user)

    def test_outflow_keeps_cost(self):
        apply_stock_movement(
            product=self.product, quantity=10, unit_cost="5.00", movement_type="purchase"
        )
        movement = apply_stock_movement(product=self.product, quantity=-4, movement_type="sale")

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("6.000"))
        self.assertEqual(self.product.cost_price, Decimal("5.0000"))
        self.assertEqual(movement.unit_cost, Decimal("5.0000"))

    def test_new_cost_pins_result(self):
        apply_stock_movement(
            product=self.product, quantity=10, unit_cost="5.00", movement_type="purchase"
        )
        apply_stock_movement(
            product=self.product, quantity=-10, movement_type="adjustment", new_cost="0"
        )

        self.product.refresh_from_db()
        self.assertEqual(self.product.cost_price, Decimal("0.0000"))

    def test_stock_never_negative(self):
        apply_stock_movement(
            product=self.product, quantity=2, unit_cost="1.00", movement_type="purchase"
        )

        with self.assertRaises(InsufficientStockError):
            apply_stock_movement(product=self.product, quantity=-3, movement_type="sale")

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("2.000"))
        self.assertEqual(InventoryMovement.objects.filter(product=self.product).count(), 1)

    def test_zero_quantity_and_unknown_type_are_rejected(self):
        with self.assertRaises(InventoryError):
            apply_stock_movement(product=self.product, quantity=0, movement_type="purchase")
        with self.assertRaises(InventoryError):
            apply_stock_movement(product=self.product, quantity=1, movement_type="gift")

    def test_untracked_product_is_rejected(self):
        service = Product.objects.create(name="Cleaning", sku="SVC-CLEAN", track_inventory=False)
        with self.assertRaises(InventoryError):
            apply_stock_movement(product=service, quantity=1, movement_type="purchase")

    def test_default_location_is_kept_in_step(self):
        location = StockLocation.objects.create(code="main", name="Main store", is_default=True)

        apply_stock_movement(
            product=self.product, quantity=8, unit_cost="1.00", movement_type="purchase"
        )
        apply_stock_movement(product=self.product, quantity=-3, movement_type="sale")

        row = ProductStockLocation.objects.get(product=self.product, location=location)
        self.assertEqual(row.quantity_on_hand, Decimal("5.000"))

    def test_only_one_default_location(self):
        first = StockLocation.objects.create(code="a", name="A", is_default=True)
        StockLocation.objects.create(code="b", name="B", is_default=True)

        first.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertEqual(StockLocation.objects.filter(is_default=True).count(), 1)

    def test_movement_is_immutable(self):
        movement = apply_stock_movement(
            product=self.product, quantity=1, unit_cost="1.00", movement_type="purchase"
        )
        movement.notes = "edited"
        with self.assertRaises(ValidationError):
            movement.save()
        with self.assertRaises(ValidationError):
            movement.delete()


class StockAdjustmentTests(TestCase):
    def setUp(self):
        call_command("seed_chart", stdout=StringIO())
        self.product = Product.objects.create(name="Toner", sku="TONER-1")

    def test_found_stock_posts_balanced_entry(self):
        result = adjust_stock(product=self.product, quantity_delta=4, unit_cost="2.50")

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("4.000"))
        self.assertEqual(self.product.cost_price, Decimal("2.5000"))

        je = result.journal_entry
        self.assertEqual(je.source_module, JournalEntry.SOURCE_INVENTORY_ADJUSTMENT)
        self.assertEqual(result.movement.journal_entry, je)
        self.assertEqual(je.lines.get(account__code="1300").debit, Decimal("10.00"))
        self.assertEqual(je.lines.get(account__code="5100").credit, Decimal("10.00"))

    def test_write_off_uses_average_cost(self):
        adjust_stock(product=self.product, quantity_delta=4, unit_cost="2.50")
        result = adjust_stock(product=self.product, quantity_delta=-2, unit_cost="99.00")

        self.assertEqual(result.movement.unit_cost, Decimal("2.5000"))
        je = result.journal_entry
        self.assertEqual(je.lines.get(account__code="1300").credit, Decimal("5.00"))
        self.assertEqual(je.lines.get(account__code="5100").debit, Decimal("5.00"))
        self.assertTrue(TrialBalanceService().generate()["totals"]["balanced"])

    def test_write_off_beyond_stock_writes_nothing(self):
        with self.assertRaises(InsufficientStockError):
            adjust_stock(product=self.product, quantity_delta=-1, unit_cost="1.00")

    def test_valuation_sums_tracked_products(self):
        adjust_stock(product=self.product, quantity_delta=4, unit_cost="2.50")
        other = Product.objects.create(name="Stapler", sku="STAPLER-1")
        adjust_stock(product=other, quantity_delta=3, unit_cost="1.10")
        Product.objects.create(name="Delivery", sku="SVC-DELIVERY", track_inventory=False)

        data = inventory_valuation()
        self.assertEqual(data["method"], "weighted_average")
        self.assertEqual(len(data["items"]), 2)
        self.assertEqual(data["total_value"], "13.30")


class StockTransferTests(TestCase):
    """
    Transfer tests.

    GUARANTEES:
    - A transfer is a paired out/in movement sharing one reference
    - Product quantity and cost are unchanged; nothing is posted
    - The source location must hold the quantity
    """

    def setUp(self):
        self.product = Product.objects.create(name="Stapler", sku="STAPLER-1")
        self.store = StockLocation.objects.create(code="store", name="Store", is_default=True)
        self.backroom = StockLocation.objects.create(code="backroom", name="Back room")
        apply_stock_movement(
            product=self.product, quantity=10, unit_cost="4.00", movement_type="purchase"
        )

    def _on_hand(self, location):
        row = ProductStockLocation.objects.filter(product=self.product, location=location).first()
        return row.quantity_on_hand if row else Decimal("0.000")

    def test_transfer_moves_quantity_between_locations(self):
        result = transfer_stock(
            product=self.product,
            from_location=self.store,
            to_location=self.backroom,
            quantity="4",
        )

        self.assertEqual(self._on_hand(self.store), Decimal("6.000"))
        self.assertEqual(self._on_hand(self.backroom), Decimal("4.000"))

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity_on_hand, Decimal("10.000"))
        self.assertEqual(self.product.cost_price, Decimal("4.0000"))

        self.assertEqual(result.outbound.movement_type, "transfer")
        self.assertEqual(result.outbound.quantity, Decimal("-4.000"))
        self.assertEqual(result.outbound.location, self.store)
        self.assertEqual(result.inbound.quantity, Decimal("4.000"))
        self.assertEqual(result.inbound.location, self.backroom)
        self.assertEqual(result.outbound.reference_id, str(result.transfer_id))
        self.assertEqual(result.inbound.reference_id, str(result.transfer_id))
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_transfer_beyond_location_stock_is_rejected(self):
        with self.assertRaises(InsufficientStockError):
            transfer_stock(
                product=self.product,
                from_location=self.backroom,
                to_location=self.store,
                quantity="1",
            )
        self.assertEqual(self.product.movements.filter(movement_type="transfer").count(), 0)

    def test_transfer_to_same_location_is_rejected(self):
        with self.assertRaisesMessage(InventoryError, "same location"):
            transfer_stock(
                product=self.product,
                from_location=self.store,
                to_location=self.store,
                quantity="1",
            )

    def test_unlocated_stock_can_be_placed(self):
        loose = Product.objects.create(name="Tape", sku="TAPE-1")
        self.store.is_default = False
        self.store.save()
        apply_stock_movement(product=loose, quantity=5, unit_cost="1.00", movement_type="purchase")

        self.assertEqual(unlocated_quantity(loose), Decimal("5.000"))

        transfer_stock(product=loose, from_location=None, to_location=self.backroom, quantity="5")

        self.assertEqual(unlocated_quantity(loose), Decimal("0.000"))
        row = ProductStockLocation.objects.get(product=loose, location=self.backroom)
        self.assertEqual(row.quantity_on_hand, Decimal("5.000"))

    def test_outflow_draws_from_location_holding_the_stock(self):
        transfer_stock(
            product=self.product,
            from_location=self.store,
            to_location=self.backroom,
            quantity="10",
        )

        movement = apply_stock_movement(product=self.product, quantity=-3, movement_type="sale")

        self.assertEqual(movement.location, self.backroom)
        self.assertEqual(self._on_hand(self.backroom), Decimal("7.000"))

    def test_location_stock_lists_products_at_location(self):
        transfer_stock(
            product=self.product,
            from_location=self.store,
            to_location=self.backroom,
            quantity="2.5",
        )

        items = location_stock(self.backroom)

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["sku"], "STAPLER-1")
        self.assertEqual(items[0]["quantity_on_hand"], "2.500")
        self.assertEqual(items[0]["value"], "10.00")
