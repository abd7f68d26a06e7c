"""
OrderPlacementService - turns a customer request into a pending order.

Flow:
1. Validate and normalize the request
2. Price it (product, variant, region, shipping)
3. Persist the order as ``pending`` (stock untouched)
4. Dispatch the confirmation email when an address was given
"""

import logging
from typing import Any

from app.domain.models import OrderDomain
from app.domain.value_objects import OrderStatus
from app.services.orders.interfaces import INotifier, IOrderStore
from app.services.orders.pricing import ShippingResolver
from app.services.orders.validators import OrderValidator

logger = logging.getLogger(__name__)


class OrderPlacementService:
    """
    Coordinates order placement.

    Placement never touches stock: a pending order is only a request.
    Stock moves when the order is confirmed.
    """

    def __init__(
        self,
        validator: OrderValidator,
        resolver: ShippingResolver,
        order_store: IOrderStore,
        notifier: INotifier,
    ):
        self.validator = validator
        self.resolver = resolver
        self.order_store = order_store
        self.notifier = notifier

    async def place_order(self, payload: dict[str, Any]) -> OrderDomain:
        """
        Validate, price and persist a new order.

        Args:
            payload: Raw request fields (product_id, variant_sku, quantity,
                customer_name, customer_phone, customer_email, region,
                delivery_method, address, note)

        Returns:
            OrderDomain: The persisted pending order

        Raises:
            ValidationException, InvalidPhoneException: Bad input
            NotFoundException, InvalidVariantException, UnknownRegionException: Pricing failed
            PersistenceException: Storage failure
        """
        request = self.validator.validate(payload)

        quote = await self.resolver.quote(
            product_id=request.product_id,
            variant_sku=request.variant_sku,
            quantity=request.quantity,
            region=request.region,
            delivery_method=request.delivery_method,
        )

        draft = OrderDomain(
            product_id=quote.product.id,
            variant_sku=quote.variant.sku,
            quantity=request.quantity,
            unit_price=quote.unit_price,
            shipping_fee=quote.shipping_fee,
            total_price=quote.total_price,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            customer_email=request.customer_email,
            region=quote.region.name,
            delivery_method=request.delivery_method,
            address=request.address,
            note=request.note,
            status=OrderStatus.PENDING,
            stock_reserved=False,
        )

        order = await self.order_store.create_order(draft)
        logger.info(
            f"🛒 Order {order.id} placed: {quote.product.name} ({quote.variant.sku}) x{order.quantity} "
            f"-> {order.region}, total={order.total_price}"
        )

        if order.has_email:
            self.notifier.dispatch_order_placed(order, product_name=quote.product.name, variant_name=quote.variant.name)

        return order
