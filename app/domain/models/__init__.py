"""
Domain models for business entities.

These models represent core business concepts and contain
business logic and invariants.
"""

from .order import OrderDomain
from .product import MAX_VARIANT_PRICE, MAX_VARIANT_STOCK, ProductDomain, VariantDomain, slugify
from .shipping_region import ShippingRegionDomain

__all__ = [
    "OrderDomain",
    "ProductDomain",
    "VariantDomain",
    "ShippingRegionDomain",
    "slugify",
    "MAX_VARIANT_PRICE",
    "MAX_VARIANT_STOCK",
]
