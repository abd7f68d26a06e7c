"""Tests unitarios para OrderPlacementService."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.models import ProductDomain, ShippingRegionDomain, VariantDomain
from app.domain.value_objects import DeliveryMethod, Money, OrderStatus
from app.services.orders.placement import OrderPlacementService
from app.services.orders.pricing import ShippingResolver
from app.services.orders.validators import OrderValidator
from app.utils.error_handler import InvalidPhoneException, UnknownRegionException


@pytest.fixture
def product_store():
    store = MagicMock()
    store.get_product = AsyncMock(
        return_value=ProductDomain(
            id="p-1",
            name="Street Cap",
            slug="street-cap",
            description="",
            variants=[VariantDomain(sku="CAP-BLK", name="Black Cap", price=Money.of(5000), stock=10)],
        )
    )
    return store


@pytest.fixture
def region_store():
    store = MagicMock()
    store.get_shipping_region = AsyncMock(
        return_value=ShippingRegionDomain(name="Algiers", home_fee=Money.of(500), pickup_fee=Money.of(300))
    )
    return store


@pytest.fixture
def order_store():
    store = MagicMock()

    async def create_order(order, session=None):
        order.id = "o-1"
        return order

    store.create_order = AsyncMock(side_effect=create_order)
    return store


@pytest.fixture
def service(product_store, region_store, order_store):
    return OrderPlacementService(
        validator=OrderValidator(),
        resolver=ShippingResolver(product_store, region_store, free_shipping_threshold=20000),
        order_store=order_store,
        notifier=MagicMock(),
    )


@pytest.fixture
def payload():
    return {
        "product_id": "p-1",
        "variant_sku": "CAP-BLK",
        "quantity": 3,
        "customer_name": "Amina Benali",
        "customer_phone": "0555123456",
        "customer_email": "amina@example.com",
        "region": "ALGIERS",
        "delivery_method": "home",
        "address": "12 Rue Didouche Mourad",
    }


class TestOrderPlacement:
    """Tests para la creación de pedidos."""

    @pytest.mark.asyncio
    async def test_places_pending_order_with_price_snapshot(self, service, payload, product_store):
        """Debe crear un pedido pendiente con los precios calculados."""
        order = await service.place_order(payload)

        assert order.id == "o-1"
        assert order.status is OrderStatus.PENDING
        assert order.stock_reserved is False
        assert order.unit_price == Money.of(5000)
        assert order.shipping_fee == Money.of(500)
        assert order.total_price == Money.of(15500)
        assert order.region == "Algiers"
        assert order.delivery_method is DeliveryMethod.HOME
        product_store.adjust_variant_stock.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirmation_email_dispatched(self, service, payload):
        """Debe programar el email de confirmación cuando hay email."""
        order = await service.place_order(payload)

        service.notifier.dispatch_order_placed.assert_called_once_with(
            order, product_name="Street Cap", variant_name="Black Cap"
        )

    @pytest.mark.asyncio
    async def test_no_email_no_dispatch(self, service, payload):
        """No debe programar email si el cliente no dio uno."""
        payload.pop("customer_email")

        await service.place_order(payload)

        service.notifier.dispatch_order_placed.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_input_persists_nothing(self, service, payload, order_store):
        """Un teléfono inválido no debe crear el pedido."""
        payload["customer_phone"] = "123"

        with pytest.raises(InvalidPhoneException):
            await service.place_order(payload)

        order_store.create_order.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_region_persists_nothing(self, service, payload, order_store, region_store):
        """Una región sin tarifa no debe crear el pedido."""
        region_store.get_shipping_region.return_value = None

        with pytest.raises(UnknownRegionException):
            await service.place_order(payload)

        order_store.create_order.assert_not_called()
