"""
Interfaces/Protocols for order services (Dependency Inversion Principle).

These protocols define the contracts the order core depends on, allowing
the persistence and notification layers to be swapped for fakes in tests.
"""

from typing import Any, AsyncContextManager, Optional, Protocol

from app.domain.models import OrderDomain, ProductDomain, ShippingRegionDomain
from app.domain.value_objects import OrderStatus


class IProductStore(Protocol):
    """Catalog operations needed by pricing and the lifecycle engine."""

    async def get_product(self, product_id: str, session: Any = None) -> Optional[ProductDomain]:
        """Load a product with its variants."""
        ...

    async def adjust_variant_stock(self, product_id: str, sku: str, delta: int, session: Any = None) -> bool:
        """Atomically add ``delta`` to a variant's stock; False if not applied."""
        ...

    async def refresh_base_price(self, product_id: str, session: Any = None) -> Optional[ProductDomain]:
        """Re-normalize variants and persist the derived price."""
        ...


class IOrderStore(Protocol):
    """Order persistence."""

    async def get_order(self, order_id: str, session: Any = None) -> Optional[OrderDomain]:
        ...

    async def create_order(self, order: OrderDomain, session: Any = None) -> OrderDomain:
        ...

    async def update_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        stock_reserved: bool,
        expected_status: Optional[OrderStatus] = None,
        session: Any = None,
    ) -> bool:
        ...


class IShippingRegionStore(Protocol):
    """Shipping fee reference data (read-only for the order core)."""

    async def get_shipping_region(self, name: str, session: Any = None) -> Optional[ShippingRegionDomain]:
        ...


class ITransactionManager(Protocol):
    """Opens a unit of work; commit on success, rollback on error."""

    def transaction(self) -> AsyncContextManager[Any]:
        ...


class INotifier(Protocol):
    """Customer notification dispatch (fire-and-forget)."""

    def dispatch_status_change(self, order: OrderDomain, new_status: OrderStatus) -> Any:
        ...

    def dispatch_order_placed(self, order: OrderDomain, product_name: str = "", variant_name: str = "") -> Any:
        ...
