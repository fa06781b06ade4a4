"""Pricing rules for checkout: shipping options, tax, coupons and payment methods."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional

FREE_SHIPPING_THRESHOLD = 299900
SHIPPING_GST_RATE = 0.18
GST_RATE = 18.0
SAME_DAY_STATES = frozenset({"Maharashtra", "Delhi", "Karnataka"})


@dataclass
class CustomerAddress:
    """A saved customer address used for shipping and billing."""

    country: str = ""
    state: str = ""
    city: str = ""
    id: int = 0
    user_id: int = 0
    kind: str = "shipping"
    is_default: bool = False
    first_name: str = ""
    last_name: str = ""
    company: str = ""
    address_line1: str = ""
    address_line2: str = ""
    postal_code: str = ""
    phone: str = ""


@dataclass
class ShippingMethod:
    """A shipping option; price is in cents."""

    id: str
    name: str
    description: str
    price: int
    estimated_days: str
    available: bool
    carrier: str


@dataclass
class TaxBreakdown:
    """One component of a tax charge."""

    type: str
    rate: float
    amount: int
    description: str


@dataclass
class TaxCalculation:
    """Tax owed on an amount; amounts are in cents, rate is a percentage."""

    tax_rate: float
    tax_amount: int
    taxable_amount: int
    tax_type: str
    breakdown: List[TaxBreakdown] = field(default_factory=list)


@dataclass
class CouponApplication:
    """The outcome of applying a coupon code."""

    coupon_code: str
    discount_type: str = ""
    discount_value: float = 0.0
    discount_amount: int = 0
    min_order_amount: int = 0
    max_discount_amount: int = 0
    valid_until: Optional[datetime] = None
    applied: bool = False
    message: str = ""


@dataclass
class PaymentMethod:
    """A way for the customer to pay."""

    id: str
    name: str
    description: str
    available: bool
    logo: str = ""


_COUPONS: Dict[str, CouponApplication] = {
    "SAVE10": CouponApplication(
        coupon_code="SAVE10",
        discount_type="percentage",
        discount_value=10.0,
        min_order_amount=199900,
        max_discount_amount=149900,
    ),
    "FLAT500": CouponApplication(
        coupon_code="FLAT500",
        discount_type="fixed_amount",
        discount_value=50000,
        min_order_amount=299900,
    ),
    "WELCOME20": CouponApplication(
        coupon_code="WELCOME20",
        discount_type="percentage",
        discount_value=20.0,
        min_order_amount=99900,
        max_discount_amount=199900,
    ),
}


def shipping_methods_for(
    address: CustomerAddress, subtotal: Optional[int] = None
) -> List[ShippingMethod]:
    """List shipping options for an address; a known subtotal may earn free shipping."""
    methods = [
        ShippingMethod(
            id="standard",
            name="Standard Shipping",
            description="Regular delivery in 5-7 business days",
            price=999,
            estimated_days="5-7 business days",
            available=True,
            carrier="India Post",
        ),
        ShippingMethod(
            id="express",
            name="Express Shipping",
            description="Fast delivery in 2-3 business days",
            price=1999,
            estimated_days="2-3 business days",
            available=True,
            carrier="BlueDart",
        ),
    ]
    if address.country == "IN" and address.state in SAME_DAY_STATES:
        methods.append(
            ShippingMethod(
                id="same_day",
                name="Same Day Delivery",
                description="Delivery within 24 hours",
                price=2999,
                estimated_days="Same day",
                available=True,
                carrier="Dunzo",
            )
        )
    if subtotal is not None and subtotal >= FREE_SHIPPING_THRESHOLD:
        for method in methods:
            if method.id == "standard":
                method.price = 0
                method.description = "Free standard shipping on orders over ₹2999"
    return methods


def shipping_tax(shipping_cost: int, address: CustomerAddress) -> int:
    """GST charged on shipping inside India; nothing elsewhere."""
    if address.country == "IN":
        return int(shipping_cost * SHIPPING_GST_RATE)
    return 0


def validate_coupon(coupon_code: str, subtotal: int) -> CouponApplication:
    """Check a coupon against a subtotal and work out its discount."""
    template = _COUPONS.get(coupon_code)
    if template is None:
        return CouponApplication(
            coupon_code=coupon_code, applied=False, message="Invalid coupon code"
        )
    coupon = replace(template)
    if subtotal < coupon.min_order_amount:
        coupon.message = (
            f"Minimum order amount of ₹{coupon.min_order_amount / 100:.2f} required"
        )
        return coupon

    if coupon.discount_type == "percentage":
        coupon.discount_amount = int(subtotal * coupon.discount_value / 100)
        if (
            coupon.max_discount_amount > 0
            and coupon.discount_amount > coupon.max_discount_amount
        ):
            coupon.discount_amount = coupon.max_discount_amount
    else:
        coupon.discount_amount = int(coupon.discount_value)

    coupon.applied = True
    coupon.message = f"Coupon applied! You saved ₹{coupon.discount_amount / 100:.2f}"
    return coupon


def _half(amount: int) -> int:
    half = abs(amount) // 2
    return half if amount >= 0 else -half


def tax_for_location(subtotal: int, address: CustomerAddress) -> TaxCalculation:
    """GST split into central and state halves inside India; no tax elsewhere."""
    if address.country != "IN":
        return TaxCalculation(
            tax_rate=0,
            tax_amount=0,
            taxable_amount=subtotal,
            tax_type="No Tax",
        )
    tax_amount = int(subtotal * GST_RATE / 100)
    half = _half(tax_amount)
    return TaxCalculation(
        tax_rate=GST_RATE,
        tax_amount=tax_amount,
        taxable_amount=subtotal,
        tax_type="GST",
        breakdown=[
            TaxBreakdown(
                type="CGST",
                rate=9.0,
                amount=half,
                description="Central Goods and Services Tax",
            ),
            TaxBreakdown(
                type="SGST",
                rate=9.0,
                amount=half,
                description="State Goods and Services Tax",
            ),
        ],
    )


def available_payment_methods(razorpay_enabled: bool) -> List[PaymentMethod]:
    """Payment options offered at checkout."""
    return [
        PaymentMethod(
            id="razorpay",
            name="Razorpay",
            description="Pay using Credit Card, Debit Card, NetBanking, UPI, or Wallets",
            available=bool(razorpay_enabled),
            logo="/images/razorpay-logo.png",
        ),
        PaymentMethod(
            id="cod",
            name="Cash on Delivery",
            description="Pay cash when your order is delivered",
            available=True,
            logo="/images/cod-logo.png",
        ),
        PaymentMethod(
            id="wallet",
            name="Digital Wallet",
            description="Pay using Paytm, PhonePe, Google Pay",
            available=True,
            logo="/images/wallet-logo.png",
        ),
    ]