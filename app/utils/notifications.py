"""
Customer notifications for order events.

The dispatcher formats an email for an order event and hands it to a
sender. Sends never block the request that triggered them: ``dispatch_*``
schedule a background task and failures are only logged.
"""

import asyncio
import html
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol, Set

from app.core.config import get_settings
from app.domain.models.order import OrderDomain
from app.domain.value_objects.order_status import OrderStatus

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    """Protocol for anything able to deliver an email message."""

    async def send(self, message: EmailMessage) -> None:
        ...


class SmtpEmailSender:
    """Sends through an SMTP server; the blocking client runs in a worker thread."""

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    async def send(self, message: EmailMessage) -> None:
        await asyncio.to_thread(self._send_blocking, message)

    def _send_blocking(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(message)


class LoggingEmailSender:
    """Used when email is disabled: records what would have been sent."""

    async def send(self, message: EmailMessage) -> None:
        logger.info(f"📧 Email (not sent, EMAIL_ENABLED=false) to={message['To']} subject={message['Subject']!r}")


class NotificationDispatcher:
    """
    Formats and delivers order notifications.

    Constructed once at startup and shared; holds no per-order state. The
    set of in-flight tasks is kept so ``drain()`` can wait for them.
    """

    def __init__(self, sender: EmailSender, from_address: str, store_name: str):
        self.sender = sender
        self.from_address = from_address
        self.store_name = store_name
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------- Message building -------------------------
    def _base_message(self, order: OrderDomain, subject: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = order.customer_email
        message["Subject"] = subject
        return message

    def build_status_message(self, order: OrderDomain, new_status: OrderStatus) -> EmailMessage:
        status_label = OrderStatus(new_status).value.upper()
        message = self._base_message(order, f"Update on your order #{order.short_reference}")
        message.set_content(
            f"Hello {order.customer_name},\n\n"
            f"Your order #{order.short_reference} is now: {status_label}\n\n"
            f"Item: {order.variant_sku} x {order.quantity}\n"
            f"Region: {order.region}\n"
            f"Total: {order.total_price}\n\n"
            f"Thank you for your trust!\n"
            f"{self.store_name}\n"
        )
        message.add_alternative(
            f"<h2>Hello {html.escape(order.customer_name)},</h2>"
            f"<p>Your order #{order.short_reference} is now:</p>"
            f"<h3>{status_label}</h3>"
            f"<p>Item: {html.escape(order.variant_sku)} &times; {order.quantity}</p>"
            f"<p>Region: {html.escape(order.region)}</p>"
            f"<p>Total: {order.total_price}</p>"
            f"<p>Thank you for your trust!</p>"
            f"<small>{html.escape(self.store_name)}</small>",
            subtype="html",
        )
        return message

    def build_order_placed_message(
        self, order: OrderDomain, product_name: str = "", variant_name: str = ""
    ) -> EmailMessage:
        item = f"{product_name} ({variant_name})" if product_name else order.variant_sku
        shipping = "FREE" if order.shipping_fee.is_zero else str(order.shipping_fee)
        message = self._base_message(order, f"Order confirmation - {self.store_name}")
        message.set_content(
            f"Thank you for your order!\n\n"
            f"Item: {item}\n"
            f"Quantity: {order.quantity}\n"
            f"Unit price: {order.unit_price}\n"
            f"Subtotal: {order.subtotal}\n"
            f"Shipping ({order.delivery_method.value}) to {order.region}: {shipping}\n"
            f"Total due on delivery: {order.total_price}\n"
            f"Address: {order.address}\n"
            f"Note: {order.note or 'None'}\n\n"
            f"We will call you shortly on {order.customer_phone} to confirm.\n"
            f"{self.store_name}\n"
        )
        return message

    # ------------------------- Sending -------------------------
    async def notify(self, order: OrderDomain, new_status: OrderStatus) -> bool:
        """
        Send a status-change email.

        Returns:
            bool: True if sent, False if skipped or failed
        """
        if not order.has_email:
            logger.debug(f"Order {order.id} has no email, status notification skipped")
            return False
        return await self._deliver(self.build_status_message(order, new_status), order, "status_change")

    async def notify_order_placed(self, order: OrderDomain, product_name: str = "", variant_name: str = "") -> bool:
        """Send the placement confirmation email."""
        if not order.has_email:
            logger.debug(f"Order {order.id} has no email, confirmation skipped")
            return False
        message = self.build_order_placed_message(order, product_name, variant_name)
        return await self._deliver(message, order, "order_placed")

    async def _deliver(self, message: EmailMessage, order: OrderDomain, kind: str) -> bool:
        try:
            await self.sender.send(message)
            logger.info(f"📧 Notification '{kind}' sent for order {order.id}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"⚠️ Notification '{kind}' failed for order {order.id}: {e}")
            return False

    def dispatch_status_change(self, order: OrderDomain, new_status: OrderStatus) -> Optional[asyncio.Task]:
        """Fire-and-forget variant of ``notify``."""
        if not order.has_email:
            return None
        return self._schedule(self.notify(order, new_status), f"notify-status-{order.id}")

    def dispatch_order_placed(
        self, order: OrderDomain, product_name: str = "", variant_name: str = ""
    ) -> Optional[asyncio.Task]:
        """Fire-and-forget variant of ``notify_order_placed``."""
        if not order.has_email:
            return None
        return self._schedule(self.notify_order_placed(order, product_name, variant_name), f"notify-placed-{order.id}")

    def _schedule(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"⚠️ Notification task {task.get_name()} crashed: {error}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight notifications (shutdown and tests)."""
        if not self._tasks:
            return
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning(f"⚠️ {len(pending)} notifications still pending after drain timeout")


def create_notification_dispatcher() -> NotificationDispatcher:
    """Build the dispatcher from settings."""
    settings = get_settings()
    if settings.EMAIL_ENABLED:
        sender: EmailSender = SmtpEmailSender(
            host=settings.EMAIL_SMTP_HOST,
            port=settings.EMAIL_SMTP_PORT,
            username=settings.EMAIL_USERNAME,
            password=settings.EMAIL_PASSWORD,
            use_tls=settings.EMAIL_USE_TLS,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    else:
        sender = LoggingEmailSender()
    return NotificationDispatcher(sender=sender, from_address=settings.EMAIL_FROM, store_name=settings.STORE_NAME)


_dispatcher: Optional[NotificationDispatcher] = None


def get_notification_dispatcher() -> NotificationDispatcher:
    """Shared dispatcher instance."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = create_notification_dispatcher()
    return _dispatcher


def set_notification_dispatcher(dispatcher: Optional[NotificationDispatcher]) -> None:
    global _dispatcher
    _dispatcher = dispatcher
