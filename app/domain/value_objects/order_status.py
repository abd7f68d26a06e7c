"""
Order status and delivery method value objects.

Defines the status domain of an order and the transition graph
enforced by the lifecycle engine.
"""

from enum import Enum


class OrderStatus(str, Enum):
    """Lifecycle status of an order."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]

    @classmethod
    def parse(cls, value: "str | OrderStatus | None") -> "OrderStatus | None":
        """Return the matching status, or None if the value is not a known status."""
        if isinstance(value, OrderStatus):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class DeliveryMethod(str, Enum):
    """How the parcel reaches the customer."""

    HOME = "home"
    PICKUP_POINT = "pickup-point"

    @classmethod
    def values(cls) -> list[str]:
        return [method.value for method in cls]


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Estados desde los que ninguna petición modifica el pedido
CLOSED_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Estados en los que el stock ya fue descontado
STOCK_HOLDING_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.CONFIRMED, OrderStatus.SHIPPED})
