from datetime import datetime, timedelta, timezone

import pytest

from storefront.cart import (
    AddToCartRequest,
    CartError,
    CartItemResponse,
    CartService,
    UpdateCartItemRequest,
    calculate_totals,
)
from storefront.cart_models import Catalog, MemoryStore, Product, ProductVariant

SESSION = "guest-session"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def catalog():
    cat = Catalog()
    cat.add_product(Product(id=1, name="Mug", sku="MUG", price=500, quantity=5))
    cat.add_product(Product(id=2, name="Poster", sku="POS", price=1200, quantity=3))
    cat.add_product(
        Product(id=3, name="Ebook", sku="EBK", price=300, quantity=0, track_quantity=False)
    )
    cat.add_product(Product(id=4, name="Old", sku="OLD", price=100, quantity=9, is_active=False))
    cat.add_variant(ProductVariant(id=10, product_id=2, name="Large", price=1500, quantity=2))
    cat.add_variant(ProductVariant(id=11, product_id=2, name="Small", price=0, quantity=4))
    return cat


@pytest.fixture
def service(catalog):
    return CartService(catalog, MemoryStore())


def test_guest_add_and_get(service, catalog):
    cart = service.add_to_cart(None, SESSION, AddToCartRequest(product_id=1, quantity=2))
    assert len(cart.items) == 1
    line = cart.items[0]
    assert line.product is catalog.get_product(1)
    assert line.price == 500
    assert cart.totals.sub_total == line.price * line.quantity
    assert cart.totals.total_amount == cart.totals.sub_total
    assert cart.session_id == SESSION


def test_adding_same_item_merges_quantity(service):
    service.add_to_cart(None, SESSION, AddToCartRequest(product_id=1, quantity=2))
    cart = service.add_to_cart(None, SESSION, AddToCartRequest(product_id=1, quantity=3))
    assert [i.quantity for i in cart.items] == [5]


def test_insufficient_inventory(service):
    with pytest.raises(CartError, match="Available: 5"):
        service.add_to_cart(None, SESSION, AddToCartRequest(product_id=1, quantity=6))


def test_total_quantity_over_stock_rejected(service):
    service.add_to_cart(None, SESSION, AddToCartRequest(product_id=1, quantity=4))
    with pytest.raises(CartError, match="total quantity"):
        service.add_to_cart(None, SESSION, AddToCartRequest(product_id=1, quantity=2))


def test_untracked_product_ignores_stock(service):
    cart = service.add_to_cart(None, SESSION, AddToCartRequest(product_id=3, quantity=50))
    assert cart.totals.total_quantity == 50


def test_inactive_or_missing_product(service):
    with pytest.raises(CartError, match="not found or inactive"):
        service.add_to_cart(None, SESSION, AddToCartRequest(product_id=4, quantity=1))
    with pytest.raises(CartError, match="not found or inactive"):
        service.add_to_cart(None, SESSION, AddToCartRequest(product_id=99, quantity=1))


def test_variant_pricing(service, catalog):
    cart = service.add_to_cart(
        None, SESSION, AddToCartRequest(product_id=2, quantity=1, product_variant_id=10)
    )
    cart = service.add_to_cart(
        None, SESSION, AddToCartRequest(product_id=2, quantity=1, product_variant_id=11)
    )
    prices = {i.product_variant_id: i.price for i in cart.items}
    assert prices == {10: 1500, 11: catalog.get_product(2).price}
    assert cart.items[0].product_variant is catalog.get_variant(10)


def test_variant_of_other_product_rejected(service):
    with pytest.raises(CartError, match="variant not found"):
        service.add_to_cart(
            None, SESSION, AddToCartRequest(product_id=1, quantity=1, product_variant_id=10)
        )


def test_guest_cart_requires_session(service):
    with pytest.raises(CartError, match="session ID required"):
        service.get_cart(None, "")


def test_update_and_remove_guest_item(service):
    service.add_to_cart(None, SESSION, AddToCartRequest(product_id=1, quantity=1))
    cart = service.update_cart_item(None, SESSION, 1, None, UpdateCartItemRequest(4))
    assert cart.items[0].quantity == 4
    cart = service.remove_from_cart(None, SESSION, 1, None)
    assert cart.items == []


def test_update_errors(service):
    with pytest.raises(CartError, match="negative"):
        service.update_cart_item(None, SESSION, 1, None, UpdateCartItemRequest(-1))
    with pytest.raises(CartError, match="item not found"):
        service.update_cart_item(None, SESSION, 1, None, UpdateCartItemRequest(1))
    with pytest.raises(CartError, match="Available: 5"):
        service.update_cart_item(None, SESSION, 1, None, UpdateCartItemRequest(9))


def test_user_cart_flow(service):
    service.add_to_cart(7, "", AddToCartRequest(product_id=1, quantity=1))
    cart = service.add_to_cart(7, "", AddToCartRequest(product_id=2, quantity=1))
    assert [i.product_id for i in cart.items] == [1, 2]
    assert cart.user_id == 7
    cart = service.update_cart_item(7, "", 2, None, UpdateCartItemRequest(3))
    assert [i.quantity for i in cart.items] == [1, 3]
    cart = service.remove_from_cart(7, "", 1, None)
    assert [i.product_id for i in cart.items] == [2]
    assert service.get_cart(8, "").items == []


def test_user_update_of_missing_item_is_silent(service):
    cart = service.update_cart_item(7, "", 1, None, UpdateCartItemRequest(2))
    assert cart.items == []


def test_clear_cart(service):
    service.add_to_cart(7, "", AddToCartRequest(product_id=1, quantity=1))
    service.add_to_cart(None, SESSION, AddToCartRequest(product_id=1, quantity=1))
    service.clear_cart(7)
    service.clear_cart(None, SESSION)
    assert service.get_cart(7).items == []
    assert service.get_cart(None, SESSION).items == []


def test_item_count(service):
    service.add_to_cart(None, SESSION, AddToCartRequest(product_id=1, quantity=2))
    service.add_to_cart(None, SESSION, AddToCartRequest(product_id=3, quantity=3))
    assert service.get_cart_item_count(None, SESSION) == 2 + 3
    assert service.get_cart_item_count(None, "") == 0


def test_merge_guest_cart(service):
    service.add_to_cart(7, "", AddToCartRequest(product_id=1, quantity=1))
    service.add_to_cart(None, SESSION, AddToCartRequest(product_id=1, quantity=2))
    service.add_to_cart(None, SESSION, AddToCartRequest(product_id=3, quantity=1))
    service.merge_guest_cart_to_user(7, SESSION)
    cart = service.get_cart(7)
    assert {i.product_id: i.quantity for i in cart.items} == {1: 3, 3: 1}
    assert service.get_cart(None, SESSION).items == []


def test_guest_cart_persists_in_store(catalog):
    store = MemoryStore()
    CartService(catalog, store).add_to_cart(
        None, SESSION, AddToCartRequest(product_id=1, quantity=2)
    )
    cart = CartService(catalog, store).get_cart(None, SESSION)
    assert [(i.product_id, i.quantity) for i in cart.items] == [(1, 2)]


def test_guest_cart_expires(catalog):
    clock = FakeClock()
    service = CartService(catalog, MemoryStore(clock=clock))
    service.add_to_cart(None, SESSION, AddToCartRequest(product_id=1, quantity=1))
    clock.now += timedelta(hours=24).total_seconds() + 1
    assert service.get_cart(None, SESSION).items == []


def test_calculate_totals():
    when = datetime(2024, 1, 1, tzinfo=timezone.utc)
    items = [
        CartItemResponse(product_id=1, quantity=2, price=500, added_at=when),
        CartItemResponse(product_id=2, quantity=1, price=1200, added_at=when),
    ]
    totals = calculate_totals(items)
    assert totals.item_count == len(items)
    assert totals.total_quantity == 3
    assert totals.sub_total == 2 * 500 + 1200
    assert totals.total_amount == totals.sub_total
    assert calculate_totals([]).total_amount == 0