# storefront

Domain services for a small online shop: stock keeping, shopping carts and
checkout pricing. All state is kept in memory, and the package has no
dependencies outside the standard library.

All money amounts are integers in the smallest currency unit (cents or
paise).

## Modules

- `storefront.inventory_models` – records for warehouses, inventory items,
  stock movements, stock alerts and stock reservations, with the enums
  `InventoryStatus`, `MovementType` and `MovementReason`. An
  `InventoryItem` can recompute its available quantity
  (`refresh_available`) and tell whether it is low on stock, out of stock,
  or can fulfil a given quantity.
- `storefront.inventory` – `InventoryService`: creates warehouses (one of
  them may be the default), creates inventory items, records inbound,
  outbound, reservation and release movements, reserves stock for order
  items (reservations expire after 24 hours) and releases or fulfils those
  reservations, sums available stock per product, and raises a low-stock or
  out-of-stock alert (`alerts()`) after a movement when none is open yet.
- `storefront.cart_models` – `Product`, `ProductVariant`, a `Catalog` to
  look them up by id, a `MemoryStore` (string key-value store with
  per-key expiry), and the cart records `CartItem`, `SessionCart`,
  `SessionCartItem` and `CartTotals`. A `SessionCart` serialises to and
  from JSON.
- `storefront.cart` – `CartService`: carts for signed-in users (kept in
  memory) and for guest sessions (stored as JSON in a `MemoryStore`,
  expiring after 24 hours). It checks stock on every change, uses a
  variant's price when it has one, can merge a guest cart into a user's
  cart, and `calculate_totals` sums up cart lines.
- `storefront.checkout_rules` – pure pricing rules: `shipping_methods_for`
  (standard and express everywhere, same-day in Maharashtra, Delhi and
  Karnataka, free standard shipping from ₹2999), `shipping_tax` (18% GST
  on shipping in India), `tax_for_location` (18% GST split into CGST and
  SGST in India, no tax elsewhere), `validate_coupon` (codes `SAVE10`,
  `FLAT500`, `WELCOME20`) and `available_payment_methods`.
- `storefront.checkout` – `CheckoutService` together with an
  `AddressBook` of saved `CustomerAddress` records: shipping options for a
  user's cart, shipping and tax calculations, applying and removing a
  coupon (an applied coupon is remembered for 24 hours), a full
  `CheckoutSummary`, and `validate_checkout`, which reports problems as
  errors and warnings instead of raising.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

A guest cart:

```python
from storefront.cart_models import Catalog, MemoryStore, Product
from storefront.cart import AddToCartRequest, CartService

catalog = Catalog()
catalog.add_product(Product(id=1, name="Mug", sku="MUG-1", price=1500, quantity=10))

carts = CartService(catalog, MemoryStore())
cart = carts.add_to_cart(None, "guest-session", AddToCartRequest(product_id=1, quantity=2))
print(cart.totals.sub_total)  # 3000
```

Checkout for a signed-in user:

```python
from storefront.checkout import CheckoutService
from storefront.checkout_rules import CustomerAddress

carts.add_to_cart(7, "", AddToCartRequest(product_id=1, quantity=2))

checkout = CheckoutService(carts)
checkout.addresses.add(
    7, CustomerAddress(country="IN", state="Delhi", city="New Delhi", is_default=True)
)
summary = checkout.get_checkout_summary(7, shipping_method_id="express")
print(summary.pricing.total_amount)  # 3000 + 1999 shipping + 540 GST = 5539
```

Pricing rules on their own:

```python
from storefront.checkout_rules import CustomerAddress, validate_coupon, tax_for_location

coupon = validate_coupon("SAVE10", 250000)
print(coupon.applied, coupon.discount_amount)  # True 25000

tax = tax_for_location(10000, CustomerAddress(country="IN", state="Delhi", city="New Delhi"))
print(tax.tax_type, tax.tax_amount)  # GST 1800
```

Inventory:

```python
from storefront.inventory import CreateWarehouseRequest, InventoryService, StockMovementRequest

stock = InventoryService()
warehouse = stock.create_warehouse(CreateWarehouseRequest(name="Main", code="MAIN", is_default=True))
stock.create_or_update_inventory_item(1, warehouse.id, "MUG-1", 5)
stock.record_stock_movement(
    StockMovementRequest(product_id=1, warehouse_id=warehouse.id,
                         movement_type="outbound", reason="sale", quantity=1),
    user_id=1,
)
print(stock.get_stock_level(1))        # 4
print(stock.alerts()[0].alert_type)    # low_stock
```

Failures raise exceptions: `CartError`, `CheckoutError` and
`InventoryError`.

## What it does not do

- There is no order handling: carts and checkout summaries are priced and
  validated, but nothing turns them into orders, takes payment or tracks
  order status.
- There is no persistent storage: everything lives in memory and is lost
  when the process ends.
- There is no HTTP server, command-line tool or e-mail sending; the
  package is a library to be called from other code.