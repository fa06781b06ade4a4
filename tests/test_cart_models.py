import json
from datetime import datetime, timedelta, timezone

import pytest

from storefront.cart_models import (
    Catalog,
    MemoryStore,
    Product,
    ProductVariant,
    SessionCart,
    SessionCartItem,
)

WHEN = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def test_catalog_lookup():
    catalog = Catalog()
    product = catalog.add_product(Product(id=1, name="Mug", price=500))
    variant = catalog.add_variant(ProductVariant(id=2, product_id=1, name="Blue"))
    assert catalog.get_product(1) is product
    assert catalog.get_variant(2) is variant
    assert catalog.get_product(99) is None
    assert catalog.get_variant(99) is None


def test_store_round_trip_without_ttl(clock):
    store = MemoryStore(clock=clock)
    store.set("k", "v")
    clock.now = 10**9
    assert store.get("k") == "v"


def test_store_expires_keys(clock):
    store = MemoryStore(clock=clock)
    store.set("k", "v", timedelta(seconds=30))
    clock.now = 29
    assert store.get("k") == "v"
    clock.now = 30
    assert store.get("k") is None


def test_store_delete_reports_count(clock):
    store = MemoryStore(clock=clock)
    store.set("k", "v", 5)
    assert store.delete("k") == 1
    assert store.delete("k") == 0
    assert store.get("k") is None


def test_store_delete_of_expired_key_counts_zero(clock):
    store = MemoryStore(clock=clock)
    store.set("k", "v", 1)
    clock.now = 2
    assert store.delete("k") == 0


def test_session_cart_json_round_trip():
    cart = SessionCart(
        session_id="abc",
        items=[
            SessionCartItem(product_id=1, quantity=2, price=999, added_at=WHEN),
            SessionCartItem(product_id=3, quantity=1, price=50, product_variant_id=4, added_at=WHEN),
        ],
        created_at=WHEN,
        updated_at=WHEN,
        expires_at=WHEN + timedelta(hours=24),
    )
    assert SessionCart.from_json(cart.to_json()) == cart


def test_session_cart_json_omits_missing_variant():
    cart = SessionCart(
        session_id="s",
        items=[SessionCartItem(product_id=1, quantity=1, price=10, added_at=WHEN)],
    )
    data = json.loads(cart.to_json())
    assert data["session_id"] == "s"
    assert "product_variant_id" not in data["items"][0]
    assert set(data) == {"session_id", "items", "created_at", "updated_at", "expires_at"}


def test_session_cart_reads_zulu_timestamps():
    text = json.dumps(
        {
            "session_id": "z",
            "items": [
                {"product_id": 5, "quantity": 2, "price": 100, "added_at": "2024-05-06T07:08:09Z"}
            ],
            "created_at": "2024-05-06T07:08:09Z",
            "updated_at": "2024-05-06T07:08:09Z",
            "expires_at": "2024-05-06T07:08:09Z",
        }
    )
    cart = SessionCart.from_json(text)
    assert cart.created_at == WHEN
    assert cart.items[0].added_at == WHEN
    assert cart.items[0].product_variant_id is None


def test_new_session_cart_expires_a_day_after_creation():
    cart = SessionCart(session_id="x")
    gap = cart.expires_at - cart.created_at
    assert timedelta(hours=23, minutes=59) < gap <= timedelta(hours=24, seconds=1)
    assert cart.items == []