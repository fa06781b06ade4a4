"""In-memory e-commerce domain services: inventory, carts and checkout pricing."""

__version__ = "0.1.0"

__all__ = [
    "inventory_models",
    "inventory",
    "cart_models",
    "cart",
    "checkout_rules",
    "checkout",
]