"""
ShippingResolver - prices an order line.

Resolves the product, the variant and the destination region, then
computes unit price, subtotal, shipping fee and total. Pure read: no
side effects.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from app.core.config import get_settings
from app.domain.models import ProductDomain, ShippingRegionDomain, VariantDomain
from app.domain.value_objects import DeliveryMethod, Money
from app.services.orders.interfaces import IProductStore, IShippingRegionStore
from app.utils.error_handler import InvalidVariantException, NotFoundException, UnknownRegionException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceQuote:
    """Result of pricing one order line."""

    product: ProductDomain
    variant: VariantDomain
    region: ShippingRegionDomain
    quantity: int
    unit_price: Money
    subtotal: Money
    shipping_fee: Money
    total_price: Money

    @property
    def free_shipping(self) -> bool:
        return self.shipping_fee.is_zero


class ShippingResolver:
    """
    Prices an order line against the live catalog and region fees.

    Shipping is free when the subtotal reaches ``free_shipping_threshold``;
    otherwise the region's fee for the delivery method applies.
    """

    def __init__(
        self,
        product_store: IProductStore,
        region_store: IShippingRegionStore,
        free_shipping_threshold: int | None = None,
    ):
        self.product_store = product_store
        self.region_store = region_store
        if free_shipping_threshold is None:
            free_shipping_threshold = get_settings().FREE_SHIPPING_THRESHOLD
        self.free_shipping_threshold = Decimal(free_shipping_threshold)

    async def quote(
        self,
        product_id: str,
        variant_sku: str,
        quantity: int,
        region: str,
        delivery_method: DeliveryMethod | str,
    ) -> PriceQuote:
        """
        Price one line.

        Raises:
            NotFoundException: Product does not exist
            InvalidVariantException: SKU not found on the product
            UnknownRegionException: No shipping region matches ``region``
        """
        product = await self.product_store.get_product(product_id)
        if product is None:
            raise NotFoundException(
                message=f"Product {product_id} not found",
                resource="product",
                resource_id=product_id,
            )

        variant = product.find_variant(variant_sku)
        if variant is None:
            raise InvalidVariantException(
                message=f"Variant '{variant_sku}' does not exist on product {product_id}",
                product_id=product_id,
                variant_sku=variant_sku,
            )

        shipping_region = await self.region_store.get_shipping_region(region)
        if shipping_region is None:
            raise UnknownRegionException(message=f"Unknown shipping region '{region}'", region=region)

        unit_price = variant.price
        subtotal = unit_price * quantity

        if subtotal.amount >= self.free_shipping_threshold:
            shipping_fee = Money.zero(currency=unit_price.currency)
        else:
            shipping_fee = shipping_region.fee_for(DeliveryMethod(delivery_method))

        total_price = subtotal + shipping_fee

        logger.debug(
            f"Quote {product_id}/{variant_sku} x{quantity} -> {shipping_region.name}: "
            f"subtotal={subtotal} shipping={shipping_fee} total={total_price}"
        )

        return PriceQuote(
            product=product,
            variant=variant,
            region=shipping_region,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=subtotal,
            shipping_fee=shipping_fee,
            total_price=total_price,
        )
