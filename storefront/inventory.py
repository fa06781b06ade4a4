"""Warehouse management, stock movements and reservations."""

from __future__ import annotations

import itertools
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterator, List, Optional, Union

from storefront.inventory_models import (
    InventoryItem,
    InventoryMovement,
    InventoryStatus,
    MovementReason,
    MovementType,
    StockAlert,
    StockReservation,
    Warehouse,
)

RESERVATION_LIFETIME = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InventoryError(Exception):
    """Raised when an inventory operation cannot be carried out."""


@dataclass
class CreateWarehouseRequest:
    """Data for a new warehouse."""

    name: str
    code: str
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    postal_code: str = ""
    phone: str = ""
    email: str = ""
    is_default: bool = False


@dataclass
class StockMovementRequest:
    """A stock movement to record; cost price is in cents."""

    product_id: int
    warehouse_id: int
    movement_type: Union[MovementType, str]
    reason: Union[MovementReason, str]
    quantity: int
    reference_type: str = ""
    reference_id: int = 0
    notes: str = ""
    cost_price: int = 0


@dataclass
class ReservationRequest:
    """Stock to hold back for an order item."""

    product_id: int
    warehouse_id: int
    order_id: int
    order_item_id: int
    quantity: int


class InventoryService:
    """Keeps warehouses, stock levels, movements, reservations and alerts."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._sequences: Dict[str, Iterator[int]] = defaultdict(
            lambda: itertools.count(1)
        )
        self._warehouses: Dict[int, Warehouse] = {}
        self._items: Dict[int, InventoryItem] = {}
        self._movements: List[InventoryMovement] = []
        self._reservations: Dict[int, StockReservation] = {}
        self._alerts: List[StockAlert] = []

    # Warehouses

    def create_warehouse(self, request: CreateWarehouseRequest) -> Warehouse:
        if any(w.code == request.code for w in self._warehouses.values()):
            raise InventoryError(
                f"warehouse with code '{request.code}' already exists"
            )
        now = self._clock()
        if request.is_default:
            for other in self._warehouses.values():
                if other.is_default:
                    other.is_default = False
                    other.updated_at = now
        warehouse = Warehouse(
            id=next(self._sequences["warehouse"]),
            name=request.name,
            code=request.code,
            address=request.address,
            city=request.city,
            state=request.state,
            country=request.country,
            postal_code=request.postal_code,
            phone=request.phone,
            email=request.email,
            is_default=request.is_default,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self._warehouses[warehouse.id] = warehouse
        return warehouse

    def get_warehouses(self) -> List[Warehouse]:
        return [w for w in self._warehouses.values() if w.is_active]

    def get_default_warehouse(self) -> Warehouse:
        for warehouse in self._warehouses.values():
            if warehouse.is_default and warehouse.is_active:
                return warehouse
        raise InventoryError("default warehouse not found")

    # Inventory items

    def _find_item(self, product_id: int, warehouse_id: int) -> Optional[InventoryItem]:
        return next(
            (
                item
                for item in self._items.values()
                if item.product_id == product_id and item.warehouse_id == warehouse_id
            ),
            None,
        )

    def _require_item(self, product_id: int, warehouse_id: int) -> InventoryItem:
        item = self._find_item(product_id, warehouse_id)
        if item is None:
            raise InventoryError("inventory item not found")
        return item

    def _save_item(self, item: InventoryItem) -> None:
        item.refresh_available()
        item.updated_at = self._clock()

    def get_inventory_item(self, product_id: int, warehouse_id: int) -> InventoryItem:
        item = self._require_item(product_id, warehouse_id)
        item.warehouse = self._warehouses.get(item.warehouse_id)
        return item

    def create_or_update_inventory_item(
        self, product_id: int, warehouse_id: int, sku: str, initial_quantity: int
    ) -> InventoryItem:
        """Return the existing item, or create one holding the initial quantity."""
        existing = self._find_item(product_id, warehouse_id)
        if existing is not None:
            return existing
        now = self._clock()
        item = InventoryItem(
            id=next(self._sequences["item"]),
            product_id=product_id,
            warehouse_id=warehouse_id,
            sku=sku,
            quantity=initial_quantity,
            status=InventoryStatus.ACTIVE,
            reorder_level=10,
            max_stock_level=1000,
            created_at=now,
            updated_at=now,
        )
        item.refresh_available()
        self._items[item.id] = item
        return item

    # Stock movements

    def record_stock_movement(
        self, request: StockMovementRequest, user_id: int
    ) -> InventoryMovement:
        item = self._require_item(request.product_id, request.warehouse_id)
        try:
            movement_type = MovementType(request.movement_type)
        except ValueError:
            raise InventoryError(
                f"invalid movement type: {request.movement_type}"
            ) from None

        previous_quantity = item.quantity
        reserved = item.reserved_quantity

        if movement_type is MovementType.INBOUND:
            new_quantity = previous_quantity + request.quantity
        elif movement_type is MovementType.OUTBOUND:
            if previous_quantity < request.quantity:
                raise InventoryError(
                    f"insufficient stock: available {previous_quantity}, "
                    f"requested {request.quantity}"
                )
            new_quantity = previous_quantity - request.quantity
        elif movement_type is MovementType.RESERVATION:
            if item.available_quantity < request.quantity:
                raise InventoryError("insufficient available stock for reservation")
            new_quantity = previous_quantity
            reserved += request.quantity
        else:
            new_quantity = previous_quantity
            reserved = max(reserved - request.quantity, 0)

        now = self._clock()
        item.quantity = new_quantity
        item.reserved_quantity = reserved
        if request.cost_price > 0:
            item.cost_price = request.cost_price
        if movement_type is MovementType.INBOUND:
            item.last_restock_date = now
        self._save_item(item)

        movement = InventoryMovement(
            id=next(self._sequences["movement"]),
            inventory_item_id=item.id,
            movement_type=movement_type,
            reason=MovementReason(request.reason),
            quantity=request.quantity,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            reference_type=request.reference_type,
            reference_id=request.reference_id,
            notes=request.notes,
            created_by=user_id,
            created_at=now,
        )
        self._movements.append(movement)
        item.movements.append(movement)

        self._check_and_create_alerts(item)
        return movement

    # Reservations

    def reserve_stock(self, request: ReservationRequest) -> StockReservation:
        item = self._require_item(request.product_id, request.warehouse_id)
        if not item.can_fulfill_order(request.quantity):
            raise InventoryError(
                f"insufficient stock: available {item.available_quantity}, "
                f"requested {request.quantity}"
            )
        item.reserved_quantity += request.quantity
        self._save_item(item)

        now = self._clock()
        reservation = StockReservation(
            id=next(self._sequences["reservation"]),
            inventory_item_id=item.id,
            order_id=request.order_id,
            order_item_id=request.order_item_id,
            quantity=request.quantity,
            status="active",
            expires_at=now + RESERVATION_LIFETIME,
            created_at=now,
            updated_at=now,
        )
        self._reservations[reservation.id] = reservation
        return reservation

    def _active_reservation(self, order_id: int, order_item_id: int) -> StockReservation:
        for reservation in self._reservations.values():
            if (
                reservation.order_id == order_id
                and reservation.order_item_id == order_item_id
                and reservation.status == "active"
            ):
                return reservation
        raise InventoryError("reservation not found")

    def _reserved_item(self, reservation: StockReservation) -> InventoryItem:
        item = self._items.get(reservation.inventory_item_id)
        if item is None:
            raise InventoryError("inventory item not found")
        return item

    def release_reservation(self, order_id: int, order_item_id: int) -> None:
        reservation = self._active_reservation(order_id, order_item_id)
        item = self._reserved_item(reservation)
        item.reserved_quantity = max(item.reserved_quantity - reservation.quantity, 0)
        self._save_item(item)
        reservation.status = "cancelled"
        reservation.updated_at = self._clock()

    def fulfill_reservation(self, order_id: int, order_item_id: int) -> None:
        """Turn a reservation into a sale, taking the stock off hand."""
        reservation = self._active_reservation(order_id, order_item_id)
        item = self._reserved_item(reservation)
        item.quantity -= reservation.quantity
        item.reserved_quantity -= reservation.quantity
        self._save_item(item)
        reservation.status = "fulfilled"
        reservation.updated_at = self._clock()

    # Queries

    def get_stock_level(self, product_id: int, warehouse_id: Optional[int] = None) -> int:
        return sum(
            item.available_quantity
            for item in self._items.values()
            if item.product_id == product_id
            and item.status is InventoryStatus.ACTIVE
            and (warehouse_id is None or item.warehouse_id == warehouse_id)
        )

    def alerts(self) -> List[StockAlert]:
        return list(self._alerts)

    def _check_and_create_alerts(self, item: InventoryItem) -> None:
        has_open_alert = any(
            alert.inventory_item_id == item.id and not alert.is_resolved
            for alert in self._alerts
        )
        if has_open_alert:
            return
        if item.is_out_of_stock():
            alert_type = "out_of_stock"
            message = f"Product {item.sku} is out of stock"
        elif item.is_low_stock():
            alert_type = "low_stock"
            message = (
                f"Product {item.sku} is running low "
                f"(Available: {item.available_quantity}, "
                f"Reorder Level: {item.reorder_level})"
            )
        else:
            return
        now = self._clock()
        self._alerts.append(
            StockAlert(
                id=next(self._sequences["alert"]),
                inventory_item_id=item.id,
                alert_type=alert_type,
                message=message,
                created_at=now,
                updated_at=now,
            )
        )