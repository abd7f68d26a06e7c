"""
Shipping region reference data.

Maps a region name to the fee charged for home delivery and for
pickup-point delivery. Read-only from the order core's perspective.
"""

from dataclasses import dataclass
from typing import Any

from app.domain.value_objects.money import Money
from app.domain.value_objects.order_status import DeliveryMethod


@dataclass(frozen=True)
class ShippingRegionDomain:
    """Fees for one destination region."""

    name: str
    home_fee: Money
    pickup_fee: Money

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Region name is required")

    def fee_for(self, method: DeliveryMethod) -> Money:
        """Fee for the given delivery method."""
        if method == DeliveryMethod.HOME:
            return self.home_fee
        return self.pickup_fee

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "home_fee": int(self.home_fee.amount),
            "pickup_fee": int(self.pickup_fee.amount),
        }
