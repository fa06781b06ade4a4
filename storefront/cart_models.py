"""Cart records, a product catalogue and a key-value store for guest carts."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dump_time(value: datetime) -> str:
    return value.isoformat()


def _load_time(text: str) -> datetime:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass
class Product:
    """A sellable product; price is in cents."""

    id: int
    name: str
    sku: str = ""
    price: int = 0
    quantity: int = 0
    track_quantity: bool = True
    is_active: bool = True
    category: Optional[str] = None
    brand: Optional[str] = None


@dataclass
class ProductVariant:
    """A variant of a product; a price of 0 means the product's price applies."""

    id: int
    product_id: int
    name: str = ""
    sku: str = ""
    price: int = 0
    quantity: int = 0
    is_active: bool = True


class Catalog:
    """Products and variants looked up by id."""

    def __init__(self) -> None:
        self._products: Dict[int, Product] = {}
        self._variants: Dict[int, ProductVariant] = {}

    def add_product(self, product: Product) -> Product:
        self._products[product.id] = product
        return product

    def add_variant(self, variant: ProductVariant) -> ProductVariant:
        self._variants[variant.id] = variant
        return variant

    def get_product(self, product_id: int) -> Optional[Product]:
        return self._products.get(product_id)

    def get_variant(self, variant_id: int) -> Optional[ProductVariant]:
        return self._variants.get(variant_id)


class MemoryStore:
    """String key-value store with optional per-key expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, deadline = entry
        if deadline is not None and self._clock() >= deadline:
            del self._data[key]
            return None
        return value

    def set(
        self, key: str, value: str, ttl: Union[timedelta, float, None] = None
    ) -> None:
        if isinstance(ttl, timedelta):
            ttl = ttl.total_seconds()
        deadline = None if ttl is None or ttl <= 0 else self._clock() + ttl
        self._data[key] = (value, deadline)

    def delete(self, key: str) -> int:
        """Remove a key; return how many keys were removed."""
        present = self.get(key) is not None
        self._data.pop(key, None)
        return int(present)


@dataclass
class CartItem:
    """A saved cart line for a signed-in user; price is as of adding."""

    product_id: int
    quantity: int
    price: int
    user_id: Optional[int] = None
    product_variant_id: Optional[int] = None
    id: int = 0
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass
class SessionCartItem:
    """A cart line of a guest cart."""

    product_id: int
    quantity: int
    price: int
    product_variant_id: Optional[int] = None
    added_at: datetime = field(default_factory=_utcnow)

    def _to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"product_id": self.product_id}
        if self.product_variant_id is not None:
            data["product_variant_id"] = self.product_variant_id
        data.update(
            quantity=self.quantity,
            price=self.price,
            added_at=_dump_time(self.added_at),
        )
        return data

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "SessionCartItem":
        return cls(
            product_id=data["product_id"],
            quantity=data["quantity"],
            price=data["price"],
            product_variant_id=data.get("product_variant_id"),
            added_at=_load_time(data["added_at"]),
        )


@dataclass
class SessionCart:
    """A guest cart kept in the key-value store."""

    session_id: str
    items: List[SessionCartItem] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    expires_at: datetime = field(
        default_factory=lambda: _utcnow() + timedelta(hours=24)
    )

    def to_json(self) -> str:
        return json.dumps(
            {
                "session_id": self.session_id,
                "items": [item._to_dict() for item in self.items],
                "created_at": _dump_time(self.created_at),
                "updated_at": _dump_time(self.updated_at),
                "expires_at": _dump_time(self.expires_at),
            }
        )

    @staticmethod
    def from_json(text: str) -> "SessionCart":
        data = json.loads(text)
        return SessionCart(
            session_id=data["session_id"],
            items=[SessionCartItem._from_dict(item) for item in data.get("items") or []],
            created_at=_load_time(data["created_at"]),
            updated_at=_load_time(data["updated_at"]),
            expires_at=_load_time(data["expires_at"]),
        )


@dataclass
class CartTotals:
    """Calculated cart totals in cents."""

    item_count: int = 0
    total_quantity: int = 0
    sub_total: int = 0
    tax_amount: int = 0
    shipping_cost: int = 0
    discount_amount: int = 0
    total_amount: int = 0