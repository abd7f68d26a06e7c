"""
Value objects for the domain layer.

Value objects are immutable objects that represent concepts
with no conceptual identity, only defined by their attributes.
"""

from .money import Money
from .order_status import ALLOWED_TRANSITIONS, CLOSED_STATUSES, STOCK_HOLDING_STATUSES, DeliveryMethod, OrderStatus

__all__ = [
    "Money",
    "OrderStatus",
    "DeliveryMethod",
    "ALLOWED_TRANSITIONS",
    "CLOSED_STATUSES",
    "STOCK_HOLDING_STATUSES",
]
