"""
Factory functions wiring the order services (OCP).

The endpoints and tests build services through these functions so the
concrete repositories and dispatcher are chosen in one place.
"""

from typing import Optional

from app.db.connection import ConnDB, get_db_connection
from app.db.repositories import OrderRepository, ProductRepository, ShippingRegionRepository
from app.services.orders.interfaces import INotifier
from app.services.orders.lifecycle import OrderLifecycleEngine
from app.services.orders.placement import OrderPlacementService
from app.services.orders.pricing import ShippingResolver
from app.services.orders.validators import OrderValidator
from app.utils.notifications import get_notification_dispatcher


def create_shipping_resolver(conn_db: Optional[ConnDB] = None) -> ShippingResolver:
    conn_db = conn_db or get_db_connection()
    return ShippingResolver(
        product_store=ProductRepository(conn_db),
        region_store=ShippingRegionRepository(conn_db),
    )


def create_placement_service(
    conn_db: Optional[ConnDB] = None, notifier: Optional[INotifier] = None
) -> OrderPlacementService:
    """
    Build an OrderPlacementService.

    Args:
        conn_db: Database connection (global one by default)
        notifier: Notification dispatcher (shared one by default)
    """
    conn_db = conn_db or get_db_connection()
    return OrderPlacementService(
        validator=OrderValidator(),
        resolver=create_shipping_resolver(conn_db),
        order_store=OrderRepository(conn_db),
        notifier=notifier or get_notification_dispatcher(),
    )


def create_lifecycle_engine(
    conn_db: Optional[ConnDB] = None, notifier: Optional[INotifier] = None
) -> OrderLifecycleEngine:
    """
    Build an OrderLifecycleEngine.

    Args:
        conn_db: Database connection; also provides the transactions
        notifier: Notification dispatcher (shared one by default)
    """
    conn_db = conn_db or get_db_connection()
    return OrderLifecycleEngine(
        order_store=OrderRepository(conn_db),
        product_store=ProductRepository(conn_db),
        transactions=conn_db,
        notifier=notifier or get_notification_dispatcher(),
    )
