"""
Storefront Database Repository Package.

Repository Structure:
- BaseRepository: Session scoping and operation logging
- ProductRepository: Products, variants and stock adjustments
- OrderRepository: Order creation, status updates and aggregates
- ShippingRegionRepository: Shipping fee reference data
"""

from .base import BaseRepository
from .order_repository import OrderPage, OrderRepository
from .product_repository import ProductFilters, ProductPage, ProductRepository
from .shipping_region_repository import ShippingRegionRepository

__all__ = [
    "BaseRepository",
    "ProductRepository",
    "ProductFilters",
    "ProductPage",
    "OrderRepository",
    "OrderPage",
    "ShippingRegionRepository",
]
