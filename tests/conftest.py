"""
Fixtures compartidos de la suite.

Las variables de entorno se fijan antes de importar la aplicación porque
``get_settings()`` queda cacheado en el primer uso.
"""

import os
import smtplib

os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "true"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["LOG_FILE_PATH"] = ""
os.environ["ENABLE_RATE_LIMITING"] = "true"
os.environ["FREE_SHIPPING_THRESHOLD"] = "20000"
os.environ["CURRENCY"] = "DZD"
os.environ.pop("REDIS_URL", None)

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from app.core.rate_limiter import get_order_rate_limiter  # noqa: E402
from app.db.connection import ConnDB, set_db_connection  # noqa: E402
from app.db.repositories import OrderRepository, ProductRepository, ShippingRegionRepository  # noqa: E402
from app.domain.models import ProductDomain, ShippingRegionDomain, VariantDomain  # noqa: E402
from app.domain.value_objects import Money  # noqa: E402
from app.utils.notifications import NotificationDispatcher, set_notification_dispatcher  # noqa: E402


class RecordingEmailSender:
    """Sender de prueba: guarda los mensajes o falla como un servidor SMTP caído."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages = []

    async def send(self, message) -> None:
        if self.fail:
            raise smtplib.SMTPException("SMTP server unavailable")
        self.messages.append(message)


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest_asyncio.fixture(autouse=True)
async def notification_dispatcher(email_sender):
    """Dispatcher compartido con un sender que registra los envíos."""
    dispatcher = NotificationDispatcher(
        sender=email_sender,
        from_address="orders@storefront.test",
        store_name="Storefront Test",
    )
    set_notification_dispatcher(dispatcher)
    yield dispatcher
    await dispatcher.drain(timeout=5)
    set_notification_dispatcher(None)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    get_order_rate_limiter().reset()
    yield
    get_order_rate_limiter().reset()


@pytest_asyncio.fixture
async def conn_db(tmp_path):
    """Base SQLite temporaria instalada como conexión global."""
    conn = ConnDB(database_url=f"sqlite+aiosqlite:///{tmp_path / 'storefront-test.db'}", echo=False)
    await conn.initialize(create_schema=True)
    set_db_connection(conn)
    yield conn
    await conn.close()
    set_db_connection(None)


@pytest.fixture
def product_repository(conn_db):
    return ProductRepository(conn_db)


@pytest.fixture
def order_repository(conn_db):
    return OrderRepository(conn_db)


@pytest.fixture
def region_repository(conn_db):
    return ShippingRegionRepository(conn_db)


def make_product(name: str = "Street Cap", stock: int = 10, price: int = 5000) -> ProductDomain:
    return ProductDomain(
        name=name,
        slug=name.lower().replace(" ", "-"),
        description="Cotton cap",
        brand="Urban",
        tags=["street"],
        variants=[
            VariantDomain(sku="CAP-BLK", name="Black Cap", price=Money.of(price), stock=stock, is_default=True),
            VariantDomain(sku="CAP-WHT", name="White Cap", price=Money.of(5500), stock=0),
        ],
    )


@pytest_asyncio.fixture
async def seeded_catalog(product_repository, region_repository):
    """Un producto con dos variantes y dos regiones de envío."""
    product = await product_repository.create_product(make_product())
    await region_repository.upsert_region(
        ShippingRegionDomain(name="Algiers", home_fee=Money.of(500), pickup_fee=Money.of(300))
    )
    await region_repository.upsert_region(
        ShippingRegionDomain(name="Oran", home_fee=Money.of(800), pickup_fee=Money.of(400))
    )
    return product


@pytest.fixture
def placement_payload(seeded_catalog):
    return {
        "product_id": seeded_catalog.id,
        "variant_sku": "CAP-BLK",
        "quantity": 3,
        "customer_name": "Amina Benali",
        "customer_phone": "0555 12 34 56",
        "customer_email": "Amina@Example.com",
        "region": "algiers",
        "delivery_method": "home",
        "address": "12 Rue Didouche Mourad",
        "note": "Call before delivery",
    }


@pytest_asyncio.fixture
async def client(conn_db):
    """Cliente HTTP sobre la app ASGI (sin lifespan: la base la prepara ``conn_db``)."""
    from app.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
