from datetime import datetime, timezone

import pytest

from storefront.inventory_models import (
    InventoryItem,
    InventoryMovement,
    InventoryStatus,
    MovementReason,
    MovementType,
    StockReservation,
    Warehouse,
)


def make_item(quantity=0, reserved=0, reorder=10):
    item = InventoryItem(
        product_id=1,
        warehouse_id=1,
        sku="SKU-1",
        quantity=quantity,
        reserved_quantity=reserved,
        reorder_level=reorder,
    )
    item.refresh_available()
    return item


def test_enum_values_match_wire_strings():
    assert InventoryStatus("discontinued") is InventoryStatus.DISCONTINUED
    assert MovementType.RELEASE.value == "release"
    assert MovementReason("cancel_reservation") is MovementReason.CANCEL_RESERVATION


def test_item_defaults():
    item = InventoryItem(product_id=3, warehouse_id=4, sku="X")
    assert item.reorder_level == 10
    assert item.max_stock_level == 1000
    assert item.status is InventoryStatus.ACTIVE
    assert item.movements == []


def test_refresh_available_subtracts_reserved():
    item = make_item(quantity=25, reserved=7)
    assert item.available_quantity == 25 - 7


def test_refresh_available_returns_value():
    item = InventoryItem(product_id=1, warehouse_id=1, sku="A", quantity=5)
    assert item.refresh_available() == item.available_quantity == 5


@pytest.mark.parametrize(
    "quantity,reserved,expected",
    [(10, 0, True), (11, 0, False), (20, 10, True), (0, 0, True)],
)
def test_is_low_stock(quantity, reserved, expected):
    assert make_item(quantity, reserved).is_low_stock() is expected


@pytest.mark.parametrize(
    "quantity,reserved,expected",
    [(0, 0, True), (3, 3, True), (3, 5, True), (4, 3, False)],
)
def test_is_out_of_stock(quantity, reserved, expected):
    assert make_item(quantity, reserved).is_out_of_stock() is expected


def test_can_fulfill_order_boundary():
    item = make_item(quantity=8, reserved=3)
    assert item.can_fulfill_order(5)
    assert not item.can_fulfill_order(6)


def test_warehouse_defaults_active_not_default():
    warehouse = Warehouse(name="Main", code="MAIN")
    assert warehouse.is_active is True
    assert warehouse.is_default is False


def test_reservation_default_status_active():
    reservation = StockReservation(
        inventory_item_id=1,
        order_id=2,
        order_item_id=3,
        quantity=4,
        expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
    )
    assert reservation.status == "active"


def test_movement_keeps_quantities():
    movement = InventoryMovement(
        inventory_item_id=1,
        movement_type=MovementType.INBOUND,
        reason=MovementReason.PURCHASE,
        quantity=5,
        previous_quantity=10,
        new_quantity=15,
    )
    assert movement.new_quantity - movement.previous_quantity == movement.quantity