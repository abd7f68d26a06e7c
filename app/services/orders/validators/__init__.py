"""
Validator services for order placement requests.
"""

from .order_validator import OrderValidator, PlacementRequest, is_valid_phone, normalize_phone

__all__ = ["OrderValidator", "PlacementRequest", "is_valid_phone", "normalize_phone"]
