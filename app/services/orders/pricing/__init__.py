"""
Pricing services: order line quotes and shipping fees.
"""

from .shipping_resolver import PriceQuote, ShippingResolver

__all__ = ["PriceQuote", "ShippingResolver"]
