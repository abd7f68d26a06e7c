"""
Order services package.

This package contains the order core: placement, pricing and the status
lifecycle, following SOLID principles for better maintainability.
"""

from app.services.orders.factories import (
    create_lifecycle_engine,
    create_placement_service,
    create_shipping_resolver,
)
from app.services.orders.lifecycle import OrderLifecycleEngine
from app.services.orders.placement import OrderPlacementService
from app.services.orders.pricing import PriceQuote, ShippingResolver
from app.services.orders.validators import OrderValidator, PlacementRequest

__all__ = [
    "OrderLifecycleEngine",
    "OrderPlacementService",
    "OrderValidator",
    "PlacementRequest",
    "PriceQuote",
    "ShippingResolver",
    "create_lifecycle_engine",
    "create_placement_service",
    "create_shipping_resolver",
]
