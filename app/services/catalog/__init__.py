"""
Catalog services: product management.
"""

from .product_service import ProductService, create_product_service

__all__ = ["ProductService", "create_product_service"]
