"""Checkout: shipping options, tax, coupons, order summaries and validation."""

from __future__ import annotations

import itertools
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from storefront.cart import CartError, CartResponse, CartService
from storefront.cart_models import MemoryStore
from storefront.checkout_rules import (
    CouponApplication,
    CustomerAddress,
    PaymentMethod,
    ShippingMethod,
    TaxCalculation,
    available_payment_methods,
    shipping_methods_for,
    shipping_tax,
    tax_for_location,
    validate_coupon,
)

COUPON_TTL = timedelta(hours=24)


def _coupon_key(user_id: int) -> str:
    return f"applied_coupon:{user_id}"


class CheckoutError(Exception):
    """Raised when a checkout operation cannot be carried out."""


class AddressBook:
    """Saved customer addresses, looked up per user."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._addresses: Dict[int, CustomerAddress] = {}

    def add(self, user_id: int, address: CustomerAddress) -> CustomerAddress:
        """Save an address for a user; a new default replaces the old one of its kind."""
        if not address.id:
            address.id = next(self._ids)
        address.user_id = user_id
        if address.is_default:
            for other in self._addresses.values():
                if other.user_id == user_id and other.kind == address.kind:
                    other.is_default = False
        self._addresses[address.id] = address
        return address

    def get_address(self, user_id: int, address_id: int) -> CustomerAddress:
        address = self._addresses.get(address_id)
        if address is None or address.user_id != user_id:
            raise CheckoutError("address not found")
        return address

    def get_default_address(self, user_id: int, kind: str) -> CustomerAddress:
        for address in self._addresses.values():
            if address.user_id == user_id and address.kind == kind and address.is_default:
                return address
        raise CheckoutError("default address not found")


@dataclass
class ShippingCalculationRequest:
    """A shipping method to price for a saved address."""

    shipping_method_id: str
    address_id: int


@dataclass
class ShippingCalculation:
    """The cost of a shipping method, with tax; amounts are in cents."""

    shipping_method: ShippingMethod
    cost: int
    tax_amount: int
    total_cost: int
    estimated_days: str


@dataclass
class TaxCalculationRequest:
    """An address to tax against and, optionally, the amount to tax."""

    address_id: int
    subtotal: Optional[int] = None


@dataclass
class CheckoutPricing:
    """Pricing breakdown in cents."""

    subtotal: int = 0
    shipping_cost: int = 0
    tax_amount: int = 0
    discount_amount: int = 0
    total_amount: int = 0


@dataclass
class CheckoutSummary:
    """Everything the customer is about to pay for."""

    cart: CartResponse
    pricing: CheckoutPricing
    payment_methods: List[PaymentMethod]
    shipping_address: Optional[CustomerAddress] = None
    billing_address: Optional[CustomerAddress] = None
    shipping_method: Optional[ShippingMethod] = None
    applied_coupon: Optional[CouponApplication] = None


@dataclass
class CheckoutValidationRequest:
    """The choices made at checkout."""

    shipping_address_id: int
    shipping_method_id: str
    payment_method_id: str
    billing_address_id: Optional[int] = None
    coupon_code: str = ""


@dataclass
class CheckoutValidation:
    """Whether checkout may proceed, and why not."""

    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    summary: Optional[CheckoutSummary] = None
    estimated_total: int = 0


def _coupon_to_json(coupon: CouponApplication) -> str:
    data = asdict(coupon)
    if coupon.valid_until is not None:
        data["valid_until"] = coupon.valid_until.isoformat()
    return json.dumps(data)


def _coupon_from_json(text: str) -> CouponApplication:
    data = json.loads(text)
    valid_until = data.get("valid_until")
    if valid_until is not None:
        data["valid_until"] = datetime.fromisoformat(valid_until)
    return CouponApplication(**data)


class CheckoutService:
    """Works out shipping, tax, coupons and totals for a user's cart."""

    def __init__(
        self,
        cart_service: CartService,
        addresses: Optional[AddressBook] = None,
        store: Optional[MemoryStore] = None,
        razorpay_enabled: bool = False,
    ) -> None:
        self._carts = cart_service
        self.addresses = addresses if addresses is not None else AddressBook()
        self._store = store if store is not None else MemoryStore()
        self._razorpay_enabled = razorpay_enabled

    def _user_cart(self, user_id: int) -> CartResponse:
        try:
            return self._carts.get_cart(user_id, "")
        except CartError as exc:
            raise CheckoutError(f"failed to get cart: {exc}") from exc

    def _non_empty_cart(self, user_id: int) -> CartResponse:
        cart = self._user_cart(user_id)
        if not cart.items:
            raise CheckoutError("cart is empty")
        return cart

    def _address(self, user_id: int, address_id: int, context: str) -> CustomerAddress:
        try:
            return self.addresses.get_address(user_id, address_id)
        except CheckoutError as exc:
            raise CheckoutError(f"{context}: {exc}") from exc

    def get_shipping_methods(
        self,
        user_id: int,
        address_id: Optional[int] = None,
        country: Optional[str] = None,
        state: Optional[str] = None,
        city: Optional[str] = None,
    ) -> List[ShippingMethod]:
        if address_id is not None:
            address = self._address(user_id, address_id, "failed to get shipping address")
        elif country is not None and state is not None and city is not None:
            address = CustomerAddress(country=country, state=state, city=city)
        else:
            try:
                address = self.addresses.get_default_address(user_id, "shipping")
            except CheckoutError as exc:
                raise CheckoutError(f"no shipping address found: {exc}") from exc

        cart = self._non_empty_cart(user_id)
        return shipping_methods_for(address, cart.totals.sub_total)

    def calculate_shipping(
        self, user_id: int, request: ShippingCalculationRequest
    ) -> ShippingCalculation:
        address = self._address(user_id, request.address_id, "failed to get address")
        selected = next(
            (m for m in shipping_methods_for(address) if m.id == request.shipping_method_id),
            None,
        )
        if selected is None:
            raise CheckoutError("shipping method not found or not available")
        tax = shipping_tax(selected.price, address)
        return ShippingCalculation(
            shipping_method=selected,
            cost=selected.price,
            tax_amount=tax,
            total_cost=selected.price + tax,
            estimated_days=selected.estimated_days,
        )

    def apply_coupon(self, user_id: int, coupon_code: str) -> CouponApplication:
        """Validate a coupon against the cart and remember it when it applies."""
        cart = self._non_empty_cart(user_id)
        coupon = validate_coupon(coupon_code, cart.totals.sub_total)
        if coupon.applied:
            self._store.set(_coupon_key(user_id), _coupon_to_json(coupon), COUPON_TTL)
        return coupon

    def remove_coupon(self, user_id: int) -> None:
        self._store.delete(_coupon_key(user_id))

    def calculate_tax(self, user_id: int, request: TaxCalculationRequest) -> TaxCalculation:
        address = self._address(user_id, request.address_id, "failed to get address")
        if request.subtotal is not None:
            subtotal = request.subtotal
        else:
            subtotal = self._user_cart(user_id).totals.sub_total
        return tax_for_location(subtotal, address)

    def _stored_coupon(self, user_id: int) -> Optional[CouponApplication]:
        text = self._store.get(_coupon_key(user_id))
        if text is None:
            return None
        try:
            return _coupon_from_json(text)
        except (ValueError, TypeError):
            return None

    def _optional_default(self, user_id: int, kind: str) -> Optional[CustomerAddress]:
        try:
            return self.addresses.get_default_address(user_id, kind)
        except CheckoutError:
            return None

    def get_checkout_summary(
        self,
        user_id: int,
        address_id: Optional[int] = None,
        shipping_method_id: str = "",
        coupon_code: str = "",
    ) -> CheckoutSummary:
        cart = self._non_empty_cart(user_id)
        summary = CheckoutSummary(
            cart=cart,
            pricing=CheckoutPricing(subtotal=cart.totals.sub_total),
            payment_methods=available_payment_methods(self._razorpay_enabled),
        )

        if address_id is not None:
            try:
                summary.shipping_address = self.addresses.get_address(user_id, address_id)
            except CheckoutError:
                summary.shipping_address = None
            summary.billing_address = summary.shipping_address
        else:
            summary.shipping_address = self._optional_default(user_id, "shipping")
            summary.billing_address = self._optional_default(user_id, "billing")

        pricing = summary.pricing
        if shipping_method_id and summary.shipping_address is not None:
            methods = shipping_methods_for(summary.shipping_address, cart.totals.sub_total)
            method = next((m for m in methods if m.id == shipping_method_id), None)
            if method is not None:
                summary.shipping_method = method
                pricing.shipping_cost = method.price

        if summary.shipping_address is not None:
            pricing.tax_amount = tax_for_location(
                pricing.subtotal, summary.shipping_address
            ).tax_amount

        if coupon_code:
            coupon = validate_coupon(coupon_code, pricing.subtotal)
            if coupon.applied:
                summary.applied_coupon = coupon
                pricing.discount_amount = coupon.discount_amount
        else:
            summary.applied_coupon = self._stored_coupon(user_id)
            if summary.applied_coupon is not None:
                pricing.discount_amount = summary.applied_coupon.discount_amount

        pricing.total_amount = (
            pricing.subtotal
            + pricing.shipping_cost
            + pricing.tax_amount
            - pricing.discount_amount
        )
        return summary

    def validate_checkout(
        self, user_id: int, request: CheckoutValidationRequest
    ) -> CheckoutValidation:
        """Check the checkout choices; problems are reported, not raised."""
        validation = CheckoutValidation()
        try:
            summary = self.get_checkout_summary(
                user_id,
                request.shipping_address_id,
                request.shipping_method_id,
                request.coupon_code,
            )
        except CheckoutError as exc:
            validation.is_valid = False
            validation.errors.append(str(exc))
            return validation

        validation.summary = summary
        validation.estimated_total = summary.pricing.total_amount

        def fail(message: str) -> None:
            validation.is_valid = False
            validation.errors.append(message)

        if summary.shipping_address is None:
            fail("shipping address is required")

        if summary.shipping_method is None:
            fail("shipping method is required")
        elif not summary.shipping_method.available:
            fail("selected shipping method is not available")

        if not any(
            pm.id == request.payment_method_id and pm.available
            for pm in summary.payment_methods
        ):
            fail("invalid or unavailable payment method")

        if not summary.cart.items:
            fail("cart is empty")

        for item in summary.cart.items:
            product = item.product
            if product is None or not product.track_quantity:
                continue
            available = (
                item.product_variant.quantity
                if item.product_variant is not None
                else product.quantity
            )
            if available < item.quantity:
                validation.warnings.append(
                    f"Limited stock for {product.name}. Available: {available}"
                )

        return validation