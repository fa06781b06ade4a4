"""Shopping carts for signed-in users and guest sessions."""

from __future__ import annotations

import itertools
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional

from storefront.cart_models import (
    CartItem,
    CartTotals,
    Catalog,
    MemoryStore,
    Product,
    ProductVariant,
    SessionCart,
    SessionCartItem,
)

GUEST_CART_TTL = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _guest_key(session_id: str) -> str:
    return f"cart:session:{session_id}"


class CartError(Exception):
    """Raised when a cart operation cannot be carried out."""


@dataclass
class CartItemResponse:
    """A cart line together with its product details."""

    product_id: int
    quantity: int
    price: int
    added_at: datetime
    product_variant_id: Optional[int] = None
    product: Optional[Product] = None
    product_variant: Optional[ProductVariant] = None


@dataclass
class CartResponse:
    """A cart with its lines and totals."""

    items: List[CartItemResponse]
    totals: CartTotals
    created_at: datetime
    updated_at: datetime
    session_id: str = ""
    user_id: Optional[int] = None


@dataclass
class AddToCartRequest:
    """An item to put in the cart."""

    product_id: int
    quantity: int
    product_variant_id: Optional[int] = None


@dataclass
class UpdateCartItemRequest:
    """A new quantity for a cart line; zero removes it."""

    quantity: int


def calculate_totals(items: Iterable[CartItemResponse]) -> CartTotals:
    """Sum up cart lines; tax, shipping and discount are not applied here."""
    items = list(items)
    totals = CartTotals(item_count=len(items))
    for item in items:
        totals.total_quantity += item.quantity
        totals.sub_total += item.price * item.quantity
    totals.total_amount = (
        totals.sub_total
        + totals.tax_amount
        + totals.shipping_cost
        - totals.discount_amount
    )
    return totals


@dataclass
class _UserCarts:
    items: List[CartItem] = field(default_factory=list)


class CartService:
    """Keeps user carts in memory and guest carts in a key-value store."""

    def __init__(
        self,
        catalog: Catalog,
        store: Optional[MemoryStore] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._catalog = catalog
        self._store = store if store is not None else MemoryStore()
        self._clock = clock
        self._ids = itertools.count(1)
        self._user_items: List[CartItem] = []

    # Public operations

    def get_cart(self, user_id: Optional[int], session_id: str = "") -> CartResponse:
        if user_id is not None:
            saved = self._items_of(user_id)
            lines = [
                CartItemResponse(
                    product_id=item.product_id,
                    product_variant_id=item.product_variant_id,
                    quantity=item.quantity,
                    price=item.price,
                    added_at=item.created_at,
                )
                for item in saved
            ]
            if saved:
                created_at, updated_at = saved[0].created_at, saved[0].updated_at
            else:
                created_at = updated_at = self._clock()
        else:
            guest = self._get_guest_cart(session_id)
            lines = [
                CartItemResponse(
                    product_id=item.product_id,
                    product_variant_id=item.product_variant_id,
                    quantity=item.quantity,
                    price=item.price,
                    added_at=item.added_at,
                )
                for item in guest.items
            ]
            created_at, updated_at = guest.created_at, guest.updated_at

        self._load_product_details(lines)
        return CartResponse(
            session_id=session_id,
            user_id=user_id,
            items=lines,
            totals=calculate_totals(lines),
            created_at=created_at,
            updated_at=updated_at,
        )

    def add_to_cart(
        self, user_id: Optional[int], session_id: str, request: AddToCartRequest
    ) -> CartResponse:
        if request.quantity < 1:
            raise CartError("quantity must be at least 1")

        product = self._catalog.get_product(request.product_id)
        if product is None or not product.is_active:
            raise CartError("product not found or inactive")

        variant = None
        if request.product_variant_id is not None:
            variant = self._catalog.get_variant(request.product_variant_id)
            if (
                variant is None
                or variant.product_id != request.product_id
                or not variant.is_active
            ):
                raise CartError("product variant not found or inactive")

        available = variant.quantity if variant is not None else product.quantity
        if product.track_quantity and available < request.quantity:
            raise CartError(f"insufficient inventory. Available: {available}")

        price = variant.price if variant is not None and variant.price > 0 else product.price

        if user_id is not None:
            self._add_to_user_cart(
                user_id, request, price, available, product.track_quantity
            )
        else:
            self._add_to_guest_cart(
                session_id, request, price, available, product.track_quantity
            )
        return self.get_cart(user_id, session_id)

    def update_cart_item(
        self,
        user_id: Optional[int],
        session_id: str,
        product_id: int,
        variant_id: Optional[int],
        request: UpdateCartItemRequest,
    ) -> CartResponse:
        quantity = request.quantity
        if quantity < 0:
            raise CartError("quantity cannot be negative")

        if quantity > 0:
            product = self._catalog.get_product(product_id)
            track = product.track_quantity if product is not None else False
            available = product.quantity if product is not None else 0
            if variant_id is not None:
                variant = self._catalog.get_variant(variant_id)
                available = variant.quantity if variant is not None else 0
            if track and available < quantity:
                raise CartError(f"insufficient inventory. Available: {available}")

        if user_id is not None:
            self._update_user_cart_item(user_id, product_id, variant_id, quantity)
        else:
            self._update_guest_cart_item(session_id, product_id, variant_id, quantity)
        return self.get_cart(user_id, session_id)

    def remove_from_cart(
        self,
        user_id: Optional[int],
        session_id: str,
        product_id: int,
        variant_id: Optional[int],
    ) -> CartResponse:
        return self.update_cart_item(
            user_id, session_id, product_id, variant_id, UpdateCartItemRequest(0)
        )

    def clear_cart(self, user_id: Optional[int], session_id: str = "") -> None:
        if user_id is not None:
            self._user_items = [i for i in self._user_items if i.user_id != user_id]
        else:
            self._store.delete(_guest_key(session_id))

    def get_cart_item_count(self, user_id: Optional[int], session_id: str = "") -> int:
        """Total quantity in the cart; zero when the cart cannot be read."""
        try:
            cart = self.get_cart(user_id, session_id)
        except CartError:
            return 0
        return sum(item.quantity for item in cart.items)

    def merge_guest_cart_to_user(self, user_id: int, session_id: str) -> None:
        """Move a guest cart's lines into a user's cart and drop the guest cart."""
        try:
            guest = self._get_guest_cart(session_id)
        except CartError:
            return
        if not guest.items:
            return

        now = self._clock()
        for guest_item in guest.items:
            existing = self._find_user_item(
                user_id, guest_item.product_id, guest_item.product_variant_id
            )
            if existing is None:
                self._create_user_item(
                    user_id,
                    guest_item.product_id,
                    guest_item.product_variant_id,
                    guest_item.quantity,
                    guest_item.price,
                )
            else:
                existing.quantity += guest_item.quantity
                existing.updated_at = now

        self.clear_cart(None, session_id)

    # User carts

    def _items_of(self, user_id: int) -> List[CartItem]:
        return [item for item in self._user_items if item.user_id == user_id]

    def _find_user_item(
        self, user_id: int, product_id: int, variant_id: Optional[int]
    ) -> Optional[CartItem]:
        return next(
            (
                item
                for item in self._user_items
                if item.user_id == user_id
                and item.product_id == product_id
                and item.product_variant_id == variant_id
            ),
            None,
        )

    def _create_user_item(
        self,
        user_id: int,
        product_id: int,
        variant_id: Optional[int],
        quantity: int,
        price: int,
    ) -> CartItem:
        now = self._clock()
        item = CartItem(
            id=next(self._ids),
            user_id=user_id,
            product_id=product_id,
            product_variant_id=variant_id,
            quantity=quantity,
            price=price,
            created_at=now,
            updated_at=now,
        )
        self._user_items.append(item)
        return item

    def _add_to_user_cart(
        self,
        user_id: int,
        request: AddToCartRequest,
        price: int,
        available: int,
        track_quantity: bool,
    ) -> None:
        existing = self._find_user_item(
            user_id, request.product_id, request.product_variant_id
        )
        if existing is None:
            self._create_user_item(
                user_id,
                request.product_id,
                request.product_variant_id,
                request.quantity,
                price,
            )
            return
        new_quantity = existing.quantity + request.quantity
        if track_quantity and available < new_quantity:
            raise CartError(
                f"insufficient inventory for total quantity. Available: {available}"
            )
        existing.quantity = new_quantity
        existing.price = price
        existing.updated_at = self._clock()

    def _update_user_cart_item(
        self, user_id: int, product_id: int, variant_id: Optional[int], quantity: int
    ) -> None:
        def matches(item: CartItem) -> bool:
            return (
                item.user_id == user_id
                and item.product_id == product_id
                and item.product_variant_id == variant_id
            )

        if quantity == 0:
            self._user_items = [i for i in self._user_items if not matches(i)]
            return
        now = self._clock()
        for item in filter(matches, self._user_items):
            item.quantity = quantity
            item.updated_at = now

    # Guest carts

    def _get_guest_cart(self, session_id: str) -> SessionCart:
        if not session_id:
            raise CartError("session ID required for guest cart")
        text = self._store.get(_guest_key(session_id))
        if text is None:
            now = self._clock()
            return SessionCart(
                session_id=session_id,
                items=[],
                created_at=now,
                updated_at=now,
                expires_at=now + GUEST_CART_TTL,
            )
        try:
            return SessionCart.from_json(text)
        except (ValueError, KeyError, TypeError) as exc:
            raise CartError(f"corrupt guest cart: {exc}") from exc

    def _save_guest_cart(self, session_id: str, cart: SessionCart) -> None:
        cart.updated_at = self._clock()
        self._store.set(_guest_key(session_id), cart.to_json(), GUEST_CART_TTL)

    @staticmethod
    def _find_guest_index(
        cart: SessionCart, product_id: int, variant_id: Optional[int]
    ) -> Optional[int]:
        return next(
            (
                index
                for index, item in enumerate(cart.items)
                if item.product_id == product_id
                and item.product_variant_id == variant_id
            ),
            None,
        )

    def _add_to_guest_cart(
        self,
        session_id: str,
        request: AddToCartRequest,
        price: int,
        available: int,
        track_quantity: bool,
    ) -> None:
        cart = self._get_guest_cart(session_id)
        index = self._find_guest_index(
            cart, request.product_id, request.product_variant_id
        )
        if index is None:
            cart.items.append(
                SessionCartItem(
                    product_id=request.product_id,
                    product_variant_id=request.product_variant_id,
                    quantity=request.quantity,
                    price=price,
                    added_at=self._clock(),
                )
            )
        else:
            item = cart.items[index]
            new_quantity = item.quantity + request.quantity
            if track_quantity and available < new_quantity:
                raise CartError(
                    f"insufficient inventory for total quantity. Available: {available}"
                )
            item.quantity = new_quantity
            item.price = price
        self._save_guest_cart(session_id, cart)

    def _update_guest_cart_item(
        self,
        session_id: str,
        product_id: int,
        variant_id: Optional[int],
        quantity: int,
    ) -> None:
        cart = self._get_guest_cart(session_id)
        index = self._find_guest_index(cart, product_id, variant_id)
        if index is None:
            raise CartError("item not found in cart")
        if quantity == 0:
            del cart.items[index]
        else:
            cart.items[index].quantity = quantity
        self._save_guest_cart(session_id, cart)

    # Details

    def _load_product_details(self, lines: List[CartItemResponse]) -> None:
        for line in lines:
            product = self._catalog.get_product(line.product_id)
            if product is None:
                continue
            line.product = product
            if line.product_variant_id is not None:
                line.product_variant = self._catalog.get_variant(
                    line.product_variant_id
                )