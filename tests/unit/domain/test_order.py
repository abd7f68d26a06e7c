"""Tests unitarios para el pedido y el grafo de estados."""

import pytest

from app.domain.models import OrderDomain
from app.domain.value_objects import ALLOWED_TRANSITIONS, CLOSED_STATUSES, DeliveryMethod, Money, OrderStatus


def _order(**overrides) -> OrderDomain:
    fields = {
        "id": "3f2b8c1e-0000-4000-8000-00000a1b2c3d",
        "product_id": "p-1",
        "variant_sku": "CAP-BLK",
        "quantity": 3,
        "unit_price": Money.of(5000),
        "shipping_fee": Money.of(500),
        "total_price": Money.of(15500),
        "customer_name": "Amina",
        "customer_phone": "0555123456",
        "region": "Algiers",
        "delivery_method": "home",
        "address": "12 Rue Didouche Mourad",
    }
    fields.update(overrides)
    return OrderDomain(**fields)


class TestOrderDomain:
    """Tests de invariantes del pedido."""

    def test_total_must_match_subtotal_plus_shipping(self):
        """Debe rechazar un total que no cuadra."""
        with pytest.raises(ValueError, match="does not match"):
            _order(total_price=Money.of(15000))

    @pytest.mark.parametrize("quantity", [0, -2, True, 1.5])
    def test_invalid_quantity(self, quantity):
        """Debe exigir una cantidad entera >= 1."""
        with pytest.raises(ValueError, match="quantity"):
            _order(quantity=quantity)

    def test_enums_and_email_normalized(self):
        """Debe convertir estado y método de entrega y normalizar el email."""
        order = _order(status="confirmed", delivery_method="pickup-point", customer_email=" Amina@Example.COM ")

        assert order.status is OrderStatus.CONFIRMED
        assert order.delivery_method is DeliveryMethod.PICKUP_POINT
        assert order.customer_email == "amina@example.com"
        assert order.has_email

    def test_short_reference(self):
        """Debe usar los últimos 8 caracteres del ID en mayúsculas."""
        assert _order().short_reference == "0A1B2C3D"

    def test_to_dict(self):
        """Debe exponer los montos como enteros."""
        data = _order().to_dict()

        assert data["subtotal"] == 15000
        assert data["total_price"] == 15500
        assert data["currency"] == "DZD"
        assert data["status"] == "pending"
        assert data["stock_reserved"] is False


class TestOrderStatus:
    """Tests del grafo de transiciones."""

    def test_parse(self):
        """Debe aceptar estados conocidos sin distinguir mayúsculas."""
        assert OrderStatus.parse(" Shipped ") is OrderStatus.SHIPPED
        assert OrderStatus.parse("refunded") is None
        assert OrderStatus.parse(None) is None

    def test_closed_statuses_have_no_exits(self):
        """Los estados cerrados no deben tener transiciones."""
        for status in CLOSED_STATUSES:
            assert ALLOWED_TRANSITIONS[status] == frozenset()

    def test_every_open_status_can_be_cancelled(self):
        """Debe poder cancelarse desde cualquier estado abierto."""
        for status in (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.SHIPPED):
            assert OrderStatus.CANCELLED in ALLOWED_TRANSITIONS[status]

    def test_no_skipping_steps(self):
        """No debe permitir saltar pasos del ciclo."""
        assert OrderStatus.SHIPPED not in ALLOWED_TRANSITIONS[OrderStatus.PENDING]
        assert OrderStatus.DELIVERED not in ALLOWED_TRANSITIONS[OrderStatus.CONFIRMED]
