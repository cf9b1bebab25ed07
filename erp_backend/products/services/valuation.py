# products/services/valuation.py

"""
======================================================
PATH: products/services/valuation.py
======================================================
INVENTORY VALUATION ENGINE (WEIGHTED AVERAGE)

This module is the ONLY place allowed to change:
- Product.quantity_on_hand
- Product.cost_price
- ProductStockLocation.quantity_on_hand

Every change goes through apply_stock_movement(), which:
1) locks the product row (select_for_update)
2) computes new on-hand + weighted-average cost
3) refuses to go below zero (InsufficientStockError)
4) keeps the per-location row in step
5) appends one immutable InventoryMovement with before/after snapshots

Locations:
- an explicit location books the movement there
- location=None books nothing per-location (stock that predates locations)
- when the caller does not say, inflows go to the default location and
  outflows draw from wherever the quantity actually sits
  (default -> unlocated -> best-stocked location)
- transfer_stock() moves quantity between locations with a paired
  out/in movement; value is unchanged so nothing is posted

Costing:
- inflows re-average the unit cost:
    (old_qty*old_cost + qty*unit_cost) / (old_qty + qty), 4 dp
- outflows leave the unit cost unchanged
- callers may pin the resulting cost with new_cost (exact reversal restore)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction
from django.db.models import DecimalField, ExpressionWrapper, F, Sum

from accounting.services.posting import post_inventory_adjustment_to_ledger
from products.models import InventoryMovement, Product, ProductStockLocation, StockLocation

logger = logging.getLogger(__name__)

QTY_PLACES = Decimal("0.001")
COST_PLACES = Decimal("0.0001")
TWOPLACES = Decimal("0.01")
ZERO = Decimal("0")


class InventoryError(Exception):
    """Base domain error for stock and valuation failures."""


class InsufficientStockError(InventoryError):
    """A movement would drive on-hand below zero."""


class InventoryReversalError(InventoryError):
    """A receipt cannot be reversed under the configured policy."""


@dataclass(frozen=True)
class AdjustmentResult:
    product: Product
    movement: InventoryMovement
    journal_entry: object | None


@dataclass(frozen=True)
class TransferResult:
    transfer_id: uuid.UUID
    outbound: InventoryMovement
    inbound: InventoryMovement


def _decimal(value, *, field_name: str) -> Decimal:
    if value is None or value == "":
        raise InventoryError(f"{field_name} is required")
    if isinstance(value, bool):
        raise InventoryError(f"{field_name} must be a number")
    try:
        dec = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InventoryError(f"{field_name} must be a valid decimal") from exc
    if not dec.is_finite():
        raise InventoryError(f"{field_name} must be a valid decimal")
    return dec


def _qty(value) -> Decimal:
    return Decimal(value).quantize(QTY_PLACES, rounding=ROUND_HALF_UP)


def _cost(value) -> Decimal:
    return Decimal(value).quantize(COST_PLACES, rounding=ROUND_HALF_UP)


def _money(value) -> Decimal:
    return Decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def weighted_average_cost(old_qty, old_cost, qty, unit_cost) -> Decimal:
    """
    Blend an incoming quantity into the existing average unit cost.

    When old_qty + qty <= 0 the old cost is retained.
    """
    old_qty = Decimal(old_qty or 0)
    old_cost = Decimal(old_cost or 0)
    qty = Decimal(qty or 0)
    unit_cost = Decimal(unit_cost or 0)

    new_qty = old_qty + qty
    if new_qty <= 0:
        return _cost(old_cost)

    return _cost((old_qty * old_cost + qty * unit_cost) / new_qty)


# Marker for "let the engine choose the location".
AUTO_LOCATION = object()


def get_default_location() -> StockLocation | None:
    return StockLocation.objects.filter(is_default=True, is_active=True).first()


def located_quantity(product: Product, location: StockLocation) -> Decimal:
    row = ProductStockLocation.objects.filter(product=product, location=location).first()
    return row.quantity_on_hand if row is not None else ZERO


def unlocated_quantity(product: Product) -> Decimal:
    """On-hand not booked to any location (received before one existed)."""
    located = ProductStockLocation.objects.filter(product=product).aggregate(
        total=Sum("quantity_on_hand")
    )["total"] or ZERO
    return _qty(Decimal(product.quantity_on_hand) - located)


def _choose_location(product: Product, quantity: Decimal) -> StockLocation | None:
    default = get_default_location()
    if quantity > 0:
        return default

    needed = -quantity
    if default is not None and located_quantity(product, default) >= needed:
        return default
    if unlocated_quantity(product) >= needed:
        return None

    row = (
        ProductStockLocation.objects.select_related("location")
        .filter(product=product, quantity_on_hand__gte=needed)
        .order_by("-quantity_on_hand", "location__code")
        .first()
    )
    # nothing covers it: the default raises a clear shortage
    return row.location if row is not None else default


def _bump_location(*, product: Product, location: StockLocation, quantity: Decimal) -> None:
    row, _ = ProductStockLocation.objects.select_for_update().get_or_create(
        product=product,
        location=location,
        defaults={"quantity_on_hand": ZERO},
    )
    new_qty = _qty(row.quantity_on_hand + quantity)
    if new_qty < 0:
        raise InsufficientStockError(
            f"Insufficient stock for {product.sku} at {location.code}: "
            f"on hand {row.quantity_on_hand}, requested {-quantity}"
        )
    row.quantity_on_hand = new_qty
    row.save(update_fields=["quantity_on_hand", "updated_at"])


@transaction.atomic
def apply_stock_movement(
    *,
    product: Product,
    quantity,
    movement_type: str,
    unit_cost=None,
    new_cost=None,
    reference_type: str = "",
    reference_id="",
    journal_entry=None,
    location=AUTO_LOCATION,
    actor=None,
    notes: str = "",
) -> InventoryMovement:
    """
    Apply one signed quantity change to a product and record it.

    unit_cost defaults to the current average cost (outflows, adjustments).
    new_cost pins the resulting average cost instead of computing it.
    location: a StockLocation, None (no per-location booking) or
    AUTO_LOCATION (see module docstring).
    """
    quantity = _qty(_decimal(quantity, field_name="quantity"))
    if quantity == 0:
        raise InventoryError("quantity cannot be 0")

    if movement_type not in InventoryMovement.MovementType.values:
        raise InventoryError(f"Unknown movement_type: {movement_type!r}")

    locked = Product.objects.select_for_update().get(pk=product.pk)

    if not locked.track_inventory:
        raise InventoryError(f"Product {locked.sku} does not track inventory")

    qty_before = _qty(locked.quantity_on_hand)
    cost_before = _cost(locked.cost_price)

    if unit_cost is None:
        unit_cost = cost_before
    unit_cost = _cost(_decimal(unit_cost, field_name="unit_cost"))
    if unit_cost < 0:
        raise InventoryError("unit_cost cannot be negative")

    qty_after = qty_before + quantity
    if qty_after < 0:
        raise InsufficientStockError(
            f"Insufficient stock for {locked.sku}: on hand {qty_before}, requested {-quantity}"
        )

    if new_cost is not None:
        cost_after = _cost(_decimal(new_cost, field_name="new_cost"))
    elif quantity > 0:
        cost_after = weighted_average_cost(qty_before, cost_before, quantity, unit_cost)
    else:
        cost_after = cost_before

    if location is AUTO_LOCATION:
        location = _choose_location(locked, quantity)
    if location is not None:
        _bump_location(product=locked, location=location, quantity=quantity)

    locked.quantity_on_hand = qty_after
    locked.cost_price = cost_after
    locked.save(update_fields=["quantity_on_hand", "cost_price", "updated_at"])

    movement = InventoryMovement.objects.create(
        product=locked,
        location=location,
        movement_type=movement_type,
        quantity=quantity,
        unit_cost=unit_cost,
        total_cost=_money(quantity * unit_cost),
        quantity_before=qty_before,
        quantity_after=qty_after,
        cost_before=cost_before,
        cost_after=cost_after,
        reference_type=str(reference_type or ""),
        reference_id=str(reference_id or ""),
        journal_entry=journal_entry,
        performed_by=actor,
        notes=notes or "",
    )

    # keep the caller's instance in step with the row
    product.quantity_on_hand = qty_after
    product.cost_price = cost_after

    logger.info(
        "Inventory movement recorded",
        extra={
            "product_id": str(locked.pk),
            "movement_id": str(movement.pk),
            "movement_type": movement_type,
            "quantity": str(quantity),
            "cost_after": str(cost_after),
            "reference": f"{movement.reference_type}:{movement.reference_id}",
        },
    )
    return movement


@transaction.atomic
def adjust_stock(
    *,
    product: Product,
    quantity_delta,
    unit_cost=None,
    reason: str = "",
    location=AUTO_LOCATION,
    actor=None,
) -> AdjustmentResult:
    """
    Manual count correction.

    +N: stock found (Dr Inventory, Cr Inventory Adjustments)
    -N: stock written off (Dr Inventory Adjustments, Cr Inventory)
    Values the movement at unit_cost, or at the current average cost.
    """
    delta = _qty(_decimal(quantity_delta, field_name="quantity_delta"))
    if delta == 0:
        raise InventoryError("quantity_delta cannot be 0")

    locked = Product.objects.select_for_update().get(pk=product.pk)
    if unit_cost is None or delta < 0:
        unit_cost = locked.cost_price
    unit_cost = _cost(_decimal(unit_cost, field_name="unit_cost"))

    adjustment_id = uuid.uuid4()
    label = f"{locked.name} ({locked.sku})"

    journal_entry = post_inventory_adjustment_to_ledger(
        adjustment_id=adjustment_id,
        product_label=label,
        amount=delta * unit_cost,
        created_by=actor,
    )

    movement = apply_stock_movement(
        product=locked,
        quantity=delta,
        unit_cost=unit_cost,
        movement_type=InventoryMovement.MovementType.ADJUSTMENT,
        reference_type="adjustment",
        reference_id=adjustment_id,
        journal_entry=journal_entry,
        location=location,
        actor=actor,
        notes=reason,
    )

    return AdjustmentResult(product=locked, movement=movement, journal_entry=journal_entry)


@transaction.atomic
def transfer_stock(
    *,
    product: Product,
    from_location: StockLocation | None,
    to_location: StockLocation,
    quantity,
    actor=None,
    notes: str = "",
) -> TransferResult:
    """
    Move on-hand from one location to another.

    from_location=None moves unlocated stock into to_location.
    Writes a paired `transfer` movement (out, then in) sharing one
    reference_id. Quantity and cost of the product are unchanged.
    """
    qty = _qty(_decimal(quantity, field_name="quantity"))
    if qty <= 0:
        raise InventoryError("quantity must be greater than 0")

    if to_location is None:
        raise InventoryError("to_location is required")
    if not to_location.is_active:
        raise InventoryError(f"Location {to_location.code} is inactive")
    if from_location is not None and from_location.pk == to_location.pk:
        raise InventoryError("Cannot transfer to the same location")

    locked = Product.objects.select_for_update().get(pk=product.pk)

    if from_location is None:
        available = unlocated_quantity(locked)
        source = "unlocated stock"
    else:
        available = located_quantity(locked, from_location)
        source = from_location.code
    if available < qty:
        raise InsufficientStockError(
            f"Insufficient stock for {locked.sku} at {source}: "
            f"on hand {available}, requested {qty}"
        )

    transfer_id = uuid.uuid4()
    cost = _cost(locked.cost_price)
    common = {
        "movement_type": InventoryMovement.MovementType.TRANSFER,
        "unit_cost": cost,
        "new_cost": cost,
        "reference_type": "transfer",
        "reference_id": transfer_id,
        "actor": actor,
        "notes": notes or "",
    }

    outbound = apply_stock_movement(
        product=locked, quantity=-qty, location=from_location, **common
    )
    inbound = apply_stock_movement(
        product=locked, quantity=qty, location=to_location, **common
    )

    logger.info(
        "Stock transferred",
        extra={
            "product_id": str(locked.pk),
            "transfer_id": str(transfer_id),
            "from_location": getattr(from_location, "code", None),
            "to_location": to_location.code,
            "quantity": str(qty),
        },
    )
    return TransferResult(transfer_id=transfer_id, outbound=outbound, inbound=inbound)


def location_stock(location: StockLocation) -> list[dict]:
    """Per-product on-hand at one location, valued at average cost."""
    rows = (
        ProductStockLocation.objects.select_related("product")
        .filter(location=location)
        .order_by("product__name")
    )
    items = []
    for row in rows:
        product = row.product
        items.append(
            {
                "product_id": str(product.pk),
                "sku": product.sku,
                "name": product.name,
                "quantity_on_hand": str(row.quantity_on_hand),
                "reorder_point": str(product.reorder_point),
                "cost_price": str(product.cost_price),
                "value": str(_money(row.quantity_on_hand * product.cost_price)),
            }
        )
    return items


def inventory_valuation() -> dict:
    """Total stock value at weighted-average cost across tracked products."""
    value_expr = ExpressionWrapper(
        F("quantity_on_hand") * F("cost_price"),
        output_field=DecimalField(max_digits=28, decimal_places=7),
    )

    rows = (
        Product.objects.filter(track_inventory=True)
        .annotate(value=value_expr)
        .order_by("name")
        .values("id", "sku", "name", "quantity_on_hand", "cost_price", "value")
    )

    items = []
    total = Decimal("0.00")
    for row in rows:
        value = _money(row["value"] or 0)
        total += value
        items.append(
            {
                "product_id": str(row["id"]),
                "sku": row["sku"],
                "name": row["name"],
                "quantity_on_hand": str(row["quantity_on_hand"]),
                "cost_price": str(row["cost_price"]),
                "value": str(value),
            }
        )

    total_qty = Product.objects.filter(track_inventory=True).aggregate(
        qty=Sum("quantity_on_hand")
    )["qty"] or ZERO

    return {
        "method": "weighted_average",
        "items": items,
        "total_quantity": str(total_qty),
        "total_value": str(_money(total)),
    }
