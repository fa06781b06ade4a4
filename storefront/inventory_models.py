"""Warehouse and stock-keeping records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InventoryStatus(str, Enum):
    """Lifecycle state of an inventory item."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class MovementType(str, Enum):
    """Kind of stock movement."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"
    RESERVATION = "reservation"
    RELEASE = "release"


class MovementReason(str, Enum):
    """Why a stock movement happened."""

    SALE = "sale"
    PURCHASE = "purchase"
    RETURN = "return"
    DAMAGE = "damage"
    ADJUSTMENT = "adjustment"
    RESERVATION = "reservation"
    CANCEL_RESERVATION = "cancel_reservation"


@dataclass
class Warehouse:
    """A storage location."""

    name: str
    code: str
    id: int = 0
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    postal_code: str = ""
    phone: str = ""
    email: str = ""
    is_active: bool = True
    is_default: bool = False
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    inventory_items: List["InventoryItem"] = field(default_factory=list)


@dataclass
class InventoryItem:
    """Stock levels for one product in one warehouse."""

    product_id: int
    warehouse_id: int
    sku: str
    id: int = 0
    quantity: int = 0
    reserved_quantity: int = 0
    available_quantity: int = 0
    reorder_level: int = 10
    max_stock_level: int = 1000
    cost_price: int = 0
    status: InventoryStatus = InventoryStatus.ACTIVE
    last_restock_date: Optional[datetime] = None
    batch_number: str = ""
    location: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    warehouse: Optional[Warehouse] = None
    movements: List["InventoryMovement"] = field(default_factory=list)

    def refresh_available(self) -> int:
        """Recompute the available quantity from on-hand and reserved stock."""
        self.available_quantity = self.quantity - self.reserved_quantity
        return self.available_quantity

    def is_low_stock(self) -> bool:
        return self.available_quantity <= self.reorder_level

    def is_out_of_stock(self) -> bool:
        return self.available_quantity <= 0

    def can_fulfill_order(self, quantity: int) -> bool:
        return self.available_quantity >= quantity


@dataclass
class InventoryMovement:
    """A recorded change to an inventory item."""

    inventory_item_id: int
    movement_type: MovementType
    reason: MovementReason
    quantity: int
    previous_quantity: int
    new_quantity: int
    id: int = 0
    reference_type: str = ""
    reference_id: int = 0
    notes: str = ""
    created_by: int = 0
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class StockAlert:
    """A low-stock or out-of-stock warning."""

    inventory_item_id: int
    alert_type: str
    message: str = ""
    id: int = 0
    is_resolved: bool = False
    resolved_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass
class StockReservation:
    """Stock held back for an order item."""

    inventory_item_id: int
    order_id: int
    order_item_id: int
    quantity: int
    expires_at: datetime
    id: int = 0
    status: str = "active"
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)