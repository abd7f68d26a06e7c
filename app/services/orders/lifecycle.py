"""
OrderLifecycleEngine - applies status transitions and the stock side effects.

Transition graph:
    pending   -> confirmed | cancelled
    confirmed -> shipped   | cancelled
    shipped   -> delivered | cancelled

Stock policy:
- entering ``confirmed`` takes ``quantity`` units from the variant
- ``confirmed``/``shipped`` -> ``cancelled`` puts them back
- nothing else moves stock

The stock change and the status change commit together or not at all.
"""

import logging
from typing import Callable, Optional

from app.domain.models import OrderDomain
from app.domain.value_objects import ALLOWED_TRANSITIONS, CLOSED_STATUSES, STOCK_HOLDING_STATUSES, OrderStatus
from app.services.orders.interfaces import INotifier, IOrderStore, IProductStore, ITransactionManager
from app.utils.error_handler import (
    InsufficientStockException,
    InvalidStatusException,
    InvalidVariantException,
    NotFoundException,
)
from app.utils.order_lock import OrderLock

logger = logging.getLogger(__name__)


class OrderLifecycleEngine:
    """
    Moves orders through their lifecycle.

    Requests for the current status, and any request on a delivered or
    cancelled order, return the order unchanged. Transitions of the same
    order are serialized by ``lock_factory`` (an ``OrderLock`` by default).
    """

    def __init__(
        self,
        order_store: IOrderStore,
        product_store: IProductStore,
        transactions: ITransactionManager,
        notifier: INotifier,
        lock_factory: Optional[Callable[[str], OrderLock]] = None,
    ):
        self.order_store = order_store
        self.product_store = product_store
        self.transactions = transactions
        self.notifier = notifier
        self.lock_factory = lock_factory or OrderLock

    async def update_status(self, order_id: str, requested_status: str | OrderStatus) -> OrderDomain:
        """
        Apply a status change to an order.

        Args:
            order_id: Order to update
            requested_status: Target status

        Returns:
            OrderDomain: The order after the transition (or unchanged for no-ops)

        Raises:
            InvalidStatusException: Unknown status, or transition outside the graph
            NotFoundException: Order missing, or product missing during a stock change
            InvalidVariantException: Ordered SKU no longer exists on the product
            InsufficientStockException: Not enough stock to confirm
            PersistenceException: Storage failure; nothing committed
        """
        new_status = OrderStatus.parse(requested_status)
        if new_status is None:
            raise InvalidStatusException(
                message=f"Unknown order status '{requested_status}'",
                requested_status=str(requested_status),
                allowed=OrderStatus.values(),
            )

        async with self.lock_factory(order_id):
            order = await self.order_store.get_order(order_id)
            if order is None:
                raise NotFoundException(message=f"Order {order_id} not found", resource="order", resource_id=order_id)

            if order.status == new_status or order.status in CLOSED_STATUSES:
                logger.info(f"Order {order_id}: {order.status.value} -> {new_status.value} is a no-op")
                return order

            allowed = ALLOWED_TRANSITIONS[order.status]
            if new_status not in allowed:
                raise InvalidStatusException(
                    message=f"Cannot move order {order_id} from {order.status.value} to {new_status.value}",
                    requested_status=new_status.value,
                    current_status=order.status.value,
                    allowed=sorted(status.value for status in allowed),
                    is_transition=True,
                )

            await self._commit_transition(order, new_status)

            updated = await self.order_store.get_order(order_id) or order
            logger.info(
                f"📦 Order {order_id}: {order.status.value} -> {new_status.value} "
                f"(stock_reserved={updated.stock_reserved})"
            )

        self.notifier.dispatch_status_change(updated, new_status)
        return updated

    async def _commit_transition(self, order: OrderDomain, new_status: OrderStatus) -> None:
        reserve = new_status == OrderStatus.CONFIRMED and not order.stock_reserved
        release = (
            new_status == OrderStatus.CANCELLED
            and order.status in STOCK_HOLDING_STATUSES
            and order.stock_reserved
        )
        stock_reserved = order.stock_reserved

        async with self.transactions.transaction() as session:
            if reserve:
                await self._take_stock(order, session)
                stock_reserved = True
            elif release:
                await self._return_stock(order, session)
                stock_reserved = False

            if reserve or release:
                await self.product_store.refresh_base_price(order.product_id, session=session)

            applied = await self.order_store.update_status(
                order.id,
                new_status,
                stock_reserved=stock_reserved,
                expected_status=order.status,
                session=session,
            )
            if not applied:
                raise InvalidStatusException(
                    message=f"Order {order.id} changed status while it was being updated",
                    requested_status=new_status.value,
                    current_status=order.status.value,
                    is_transition=True,
                )

    async def _take_stock(self, order: OrderDomain, session) -> None:
        applied = await self.product_store.adjust_variant_stock(
            order.product_id, order.variant_sku, -order.quantity, session=session
        )
        if applied:
            return

        variant = await self._resolve_variant(order, session)
        raise InsufficientStockException(
            message=(
                f"Not enough stock for {order.variant_sku}: "
                f"{variant.stock} available, {order.quantity} requested"
            ),
            product_id=order.product_id,
            variant_sku=order.variant_sku,
            available=variant.stock,
            requested=order.quantity,
        )

    async def _return_stock(self, order: OrderDomain, session) -> None:
        applied = await self.product_store.adjust_variant_stock(
            order.product_id, order.variant_sku, order.quantity, session=session
        )
        if not applied:
            await self._resolve_variant(order, session)

    async def _resolve_variant(self, order: OrderDomain, session):
        """Explain why a stock update matched no row."""
        product = await self.product_store.get_product(order.product_id, session=session)
        if product is None:
            raise NotFoundException(
                message=f"Product {order.product_id} of order {order.id} not found",
                resource="product",
                resource_id=order.product_id,
            )
        variant = product.find_variant(order.variant_sku)
        if variant is None:
            raise InvalidVariantException(
                message=f"Variant '{order.variant_sku}' no longer exists on product {order.product_id}",
                product_id=order.product_id,
                variant_sku=order.variant_sku,
            )
        return variant
