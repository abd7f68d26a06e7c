"""Tests unitarios para NotificationDispatcher."""

import asyncio
import smtplib
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.domain.models import OrderDomain
from app.domain.value_objects import Money, OrderStatus
from app.utils.notifications import (
    LoggingEmailSender,
    NotificationDispatcher,
    SmtpEmailSender,
    create_notification_dispatcher,
)


def _order(email: str = "amina@example.com", **overrides) -> OrderDomain:
    fields = dict(
        id="3f2b8c1e-0000-4000-8000-00000a1b2c3d",
        product_id="p-1",
        variant_sku="CAP-BLK",
        quantity=2,
        unit_price=Money.of(5000),
        shipping_fee=Money.of(0),
        total_price=Money.of(10000),
        customer_name="Amina",
        customer_phone="0555123456",
        customer_email=email,
        region="Algiers",
        delivery_method="pickup-point",
        address="12 Rue Didouche Mourad",
    )
    fields.update(overrides)
    return OrderDomain(**fields)


@pytest.fixture
def sender():
    sender = MagicMock()
    sender.send = AsyncMock()
    return sender


@pytest.fixture
def dispatcher(sender):
    return NotificationDispatcher(sender=sender, from_address="orders@storefront.dz", store_name="Storefront")


class TestMessages:
    """Tests del contenido de los emails."""

    def test_status_message(self, dispatcher):
        """Debe incluir la referencia corta y el nuevo estado."""
        message = dispatcher.build_status_message(_order(), OrderStatus.SHIPPED)

        assert message["To"] == "amina@example.com"
        assert message["From"] == "orders@storefront.dz"
        assert "#0A1B2C3D" in message["Subject"]
        assert "SHIPPED" in message.get_body(preferencelist=("plain",)).get_content()
        assert "<h3>SHIPPED</h3>" in message.get_body(preferencelist=("html",)).get_content()

    def test_status_message_escapes_customer_text(self, dispatcher):
        """El nombre y la región del cliente no deben inyectar HTML en el email."""
        order = _order(customer_name="<script>alert(1)</script>", region="Oran <b>")

        message = dispatcher.build_status_message(order, OrderStatus.CONFIRMED)
        html_body = message.get_body(preferencelist=("html",)).get_content()

        assert "<script>" not in html_body
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html_body
        assert "Oran &lt;b&gt;" in html_body

    def test_order_placed_message(self, dispatcher):
        """Debe detallar artículo, envío gratis y total."""
        message = dispatcher.build_order_placed_message(_order(), "Street Cap", "Black Cap")
        body = message.get_content()

        assert "Street Cap (Black Cap)" in body
        assert "FREE" in body
        assert "10,000 DZD" in body


class TestDelivery:
    """Tests del envío y sus fallos."""

    @pytest.mark.asyncio
    async def test_notify_sends(self, dispatcher, sender):
        """Debe entregar el mensaje al sender y devolver True."""
        assert await dispatcher.notify(_order(), OrderStatus.CONFIRMED) is True
        sender.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_notify_without_email_skipped(self, dispatcher, sender):
        """Sin email no debe intentar el envío."""
        assert await dispatcher.notify(_order(email=""), OrderStatus.CONFIRMED) is False
        sender.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_smtp_failure_is_swallowed(self, dispatcher, sender):
        """Un fallo SMTP solo debe loguearse y devolver False."""
        sender.send.side_effect = smtplib.SMTPException("connection refused")

        assert await dispatcher.notify(_order(), OrderStatus.CONFIRMED) is False

    @pytest.mark.asyncio
    async def test_dispatch_runs_in_background(self, dispatcher, sender):
        """dispatch_* debe programar una tarea y drain() debe esperarla."""
        task = dispatcher.dispatch_status_change(_order(), OrderStatus.DELIVERED)

        assert isinstance(task, asyncio.Task)
        await dispatcher.drain(timeout=1)

        assert dispatcher.pending == 0
        assert task.result() is True
        sender.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_dispatch_without_email_returns_none(self, dispatcher):
        """Sin email no debe crear tareas."""
        assert dispatcher.dispatch_order_placed(_order(email="")) is None
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_drain_timeout_leaves_slow_tasks(self, dispatcher, sender):
        """drain() con timeout no debe bloquear indefinidamente."""
        release = asyncio.Event()

        async def slow_send(message):
            await release.wait()

        sender.send.side_effect = slow_send
        dispatcher.dispatch_status_change(_order(), OrderStatus.CONFIRMED)

        await dispatcher.drain(timeout=0.05)
        assert dispatcher.pending == 1

        release.set()
        await dispatcher.drain(timeout=1)
        assert dispatcher.pending == 0


class TestSenders:
    """Tests de los senders concretos."""

    @pytest.mark.asyncio
    async def test_smtp_sender_uses_starttls_and_login(self):
        """Debe negociar TLS, autenticarse y enviar."""
        sender = SmtpEmailSender(host="smtp.example.com", port=587, username="user", password="secret")
        message = NotificationDispatcher(sender, "a@b.dz", "S").build_status_message(_order(), OrderStatus.CONFIRMED)

        with patch("app.utils.notifications.smtplib.SMTP") as smtp_class:
            await sender.send(message)

        smtp = smtp_class.return_value.__enter__.return_value
        smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("user", "secret")
        smtp.send_message.assert_called_once_with(message)

    def test_disabled_email_uses_logging_sender(self):
        """Con EMAIL_ENABLED=false debe usarse el sender que solo loguea."""
        dispatcher = create_notification_dispatcher()

        assert isinstance(dispatcher.sender, LoggingEmailSender)
