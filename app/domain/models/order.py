"""
Order domain model (Aggregate Root).

Represents a customer order for a single product variant, with the price
snapshot captured at placement time and the lifecycle status.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from app.domain.value_objects.money import Money
from app.domain.value_objects.order_status import DeliveryMethod, OrderStatus


@dataclass
class OrderDomain:
    """
    Domain model representing an order.

    The product and variant are referenced by value (product ID and SKU
    string) so later catalog edits never rewrite historical orders. Price
    fields are snapshots and are never recomputed from the live catalog.

    Attributes:
        product_id: Referenced product ID
        variant_sku: Chosen variant SKU
        quantity: Units ordered (>= 1)
        unit_price: Variant price at placement time
        shipping_fee: Shipping fee charged (0 above the free-shipping threshold)
        total_price: unit_price * quantity + shipping_fee
        customer_name: Customer full name
        customer_phone: Normalized phone number
        region: Destination region (canonical name)
        delivery_method: home or pickup-point
        address: Free-text address
        customer_email: Optional email, lowercased
        note: Optional free-text note
        status: Lifecycle status
        stock_reserved: True while this order holds decremented stock
        id: Order ID (None for new orders)
    """

    product_id: str
    variant_sku: str
    quantity: int
    unit_price: Money
    shipping_fee: Money
    total_price: Money
    customer_name: str
    customer_phone: str
    region: str
    delivery_method: DeliveryMethod
    address: str
    customer_email: str = ""
    note: str = ""
    status: OrderStatus = OrderStatus.PENDING
    stock_reserved: bool = False
    id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Validate order data after initialization."""
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValueError(f"Order quantity must be an integer >= 1: {self.quantity!r}")

        if not self.variant_sku:
            raise ValueError("Variant SKU is required")

        if not (self.unit_price.currency == self.shipping_fee.currency == self.total_price.currency):
            raise ValueError("All monetary values must have the same currency")

        if self.total_price.amount != self.subtotal.amount + self.shipping_fee.amount:
            raise ValueError(
                f"Order total {self.total_price.amount} does not match "
                f"subtotal {self.subtotal.amount} + shipping {self.shipping_fee.amount}"
            )

        self.status = OrderStatus(self.status)
        self.delivery_method = DeliveryMethod(self.delivery_method)
        self.customer_email = (self.customer_email or "").strip().lower()

    @property
    def subtotal(self) -> Money:
        """Calculate subtotal (unit price * quantity)."""
        return self.unit_price * self.quantity

    @property
    def short_reference(self) -> str:
        """Short human reference used in customer messages."""
        return (self.id or "")[-8:].upper()

    @property
    def has_email(self) -> bool:
        return bool(self.customer_email)

    def to_dict(self) -> dict[str, Any]:
        """Convert order to dictionary for API responses."""
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variant_sku": self.variant_sku,
            "quantity": self.quantity,
            "unit_price": int(self.unit_price.amount),
            "subtotal": int(self.subtotal.amount),
            "shipping_fee": int(self.shipping_fee.amount),
            "total_price": int(self.total_price.amount),
            "currency": self.total_price.currency,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "region": self.region,
            "delivery_method": self.delivery_method.value,
            "address": self.address,
            "note": self.note,
            "status": self.status.value,
            "stock_reserved": self.stock_reserved,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
