"""Tests unitarios para OrderLifecycleEngine con stores en memoria."""

import copy
from contextlib import asynccontextmanager
from unittest.mock import MagicMock

import pytest

from app.domain.models import OrderDomain, ProductDomain, VariantDomain
from app.domain.value_objects import Money, OrderStatus
from app.services.orders.lifecycle import OrderLifecycleEngine
from app.utils.error_handler import (
    ErrorCode,
    InsufficientStockException,
    InvalidStatusException,
    InvalidVariantException,
    NotFoundException,
    PersistenceException,
)


class InMemoryProductStore:
    def __init__(self, *products: ProductDomain):
        self.products = {product.id: product for product in products}
        self.refreshed = []

    async def get_product(self, product_id, session=None):
        return copy.deepcopy(self.products.get(product_id))

    async def adjust_variant_stock(self, product_id, sku, delta, session=None):
        product = self.products.get(product_id)
        variant = product.find_variant(sku) if product else None
        if variant is None or variant.stock + delta < 0:
            return False
        variant.stock += delta
        return True

    async def refresh_base_price(self, product_id, session=None):
        self.refreshed.append(product_id)
        return self.products.get(product_id)

    def stock(self, product_id, sku):
        return self.products[product_id].find_variant(sku).stock


class InMemoryOrderStore:
    def __init__(self, *orders: OrderDomain):
        self.orders = {order.id: order for order in orders}

    async def get_order(self, order_id, session=None):
        return copy.deepcopy(self.orders.get(order_id))

    async def create_order(self, order, session=None):
        self.orders[order.id] = order
        return order

    async def update_status(self, order_id, new_status, stock_reserved, expected_status=None, session=None):
        order = self.orders.get(order_id)
        if order is None or (expected_status is not None and order.status != expected_status):
            return False
        order.status = new_status
        order.stock_reserved = stock_reserved
        return True


class SnapshotTransactions:
    """Restaura el estado de los stores si el bloque falla (como un rollback)."""

    def __init__(self, *stores):
        self.stores = stores
        self.commits = 0
        self.rollbacks = 0

    @asynccontextmanager
    async def transaction(self):
        snapshots = [copy.deepcopy(store.__dict__) for store in self.stores]
        try:
            yield object()
        except BaseException:
            for store, snapshot in zip(self.stores, snapshots):
                store.__dict__.clear()
                store.__dict__.update(snapshot)
            self.rollbacks += 1
            raise
        self.commits += 1


def _product(stock: int = 10) -> ProductDomain:
    return ProductDomain(
        id="p-1",
        name="Street Cap",
        slug="street-cap",
        description="",
        variants=[VariantDomain(sku="CAP-BLK", name="Black Cap", price=Money.of(5000), stock=stock)],
    )


def _order(status=OrderStatus.PENDING, quantity: int = 3, stock_reserved: bool = False, **overrides) -> OrderDomain:
    fields = {
        "id": "o-1",
        "product_id": "p-1",
        "variant_sku": "CAP-BLK",
        "quantity": quantity,
        "unit_price": Money.of(5000),
        "shipping_fee": Money.of(500),
        "total_price": Money.of(5000 * quantity + 500),
        "customer_name": "Amina",
        "customer_phone": "0555123456",
        "customer_email": "amina@example.com",
        "region": "Algiers",
        "delivery_method": "home",
        "address": "12 Rue Didouche Mourad",
        "status": status,
        "stock_reserved": stock_reserved,
    }
    fields.update(overrides)
    return OrderDomain(**fields)


def _engine(order: OrderDomain, product: ProductDomain = None, order_store=None):
    product_store = InMemoryProductStore(*([product] if product else [_product()]))
    order_store = order_store or InMemoryOrderStore(order)
    transactions = SnapshotTransactions(product_store, order_store)
    notifier = MagicMock()
    engine = OrderLifecycleEngine(
        order_store=order_store,
        product_store=product_store,
        transactions=transactions,
        notifier=notifier,
    )
    return engine, product_store, order_store, transactions, notifier


class TestStockTransitions:
    """Tests de las transiciones que mueven stock."""

    @pytest.mark.asyncio
    async def test_confirm_takes_stock(self):
        """Confirmar debe descontar la cantidad y marcar el stock como reservado."""
        engine, products, orders, transactions, notifier = _engine(_order())

        updated = await engine.update_status("o-1", "confirmed")

        assert updated.status is OrderStatus.CONFIRMED
        assert updated.stock_reserved is True
        assert products.stock("p-1", "CAP-BLK") == 7
        assert products.refreshed == ["p-1"]
        assert transactions.commits == 1
        notifier.dispatch_status_change.assert_called_once()
        assert notifier.dispatch_status_change.call_args.args[1] is OrderStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_cancel_confirmed_returns_stock(self):
        """Cancelar un pedido confirmado debe devolver el stock."""
        engine, products, _, _, _ = _engine(
            _order(status=OrderStatus.CONFIRMED, stock_reserved=True), product=_product(stock=7)
        )

        updated = await engine.update_status("o-1", "cancelled")

        assert updated.status is OrderStatus.CANCELLED
        assert updated.stock_reserved is False
        assert products.stock("p-1", "CAP-BLK") == 10

    @pytest.mark.asyncio
    async def test_cancel_shipped_returns_stock(self):
        """Cancelar un pedido enviado también debe devolver el stock."""
        engine, products, _, _, _ = _engine(
            _order(status=OrderStatus.SHIPPED, stock_reserved=True), product=_product(stock=7)
        )

        await engine.update_status("o-1", OrderStatus.CANCELLED)

        assert products.stock("p-1", "CAP-BLK") == 10

    @pytest.mark.asyncio
    async def test_cancel_pending_keeps_stock(self):
        """Cancelar un pedido pendiente no debe tocar el stock."""
        engine, products, _, _, _ = _engine(_order())

        updated = await engine.update_status("o-1", "cancelled")

        assert updated.status is OrderStatus.CANCELLED
        assert products.stock("p-1", "CAP-BLK") == 10
        assert products.refreshed == []

    @pytest.mark.asyncio
    async def test_ship_and_deliver_keep_stock(self):
        """Enviar y entregar no deben mover stock."""
        engine, products, _, _, notifier = _engine(
            _order(status=OrderStatus.CONFIRMED, stock_reserved=True), product=_product(stock=7)
        )

        await engine.update_status("o-1", "shipped")
        delivered = await engine.update_status("o-1", "delivered")

        assert delivered.status is OrderStatus.DELIVERED
        assert products.stock("p-1", "CAP-BLK") == 7
        assert notifier.dispatch_status_change.call_count == 2

    @pytest.mark.asyncio
    async def test_cancel_without_reservation_marker_keeps_stock(self):
        """No debe devolver stock que el pedido nunca descontó."""
        engine, products, _, _, _ = _engine(
            _order(status=OrderStatus.CONFIRMED, stock_reserved=False), product=_product(stock=10)
        )

        await engine.update_status("o-1", "cancelled")

        assert products.stock("p-1", "CAP-BLK") == 10


class TestNoOps:
    """Tests de peticiones que no modifican el pedido."""

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self):
        """Pedir el estado actual debe devolver el pedido sin cambios ni email."""
        engine, products, _, transactions, notifier = _engine(
            _order(status=OrderStatus.CONFIRMED, stock_reserved=True), product=_product(stock=7)
        )

        result = await engine.update_status("o-1", "confirmed")

        assert result.status is OrderStatus.CONFIRMED
        assert products.stock("p-1", "CAP-BLK") == 7
        assert transactions.commits == 0
        notifier.dispatch_status_change.assert_not_called()

    @pytest.mark.parametrize("closed", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    @pytest.mark.asyncio
    async def test_closed_orders_are_frozen(self, closed):
        """Un pedido entregado o cancelado no debe cambiar."""
        engine, products, orders, transactions, notifier = _engine(_order(status=closed), product=_product(stock=7))

        result = await engine.update_status("o-1", "confirmed")

        assert result.status is closed
        assert orders.orders["o-1"].status is closed
        assert products.stock("p-1", "CAP-BLK") == 7
        assert transactions.commits == 0
        notifier.dispatch_status_change.assert_not_called()


class TestRejectedTransitions:
    """Tests de errores y rollback."""

    @pytest.mark.asyncio
    async def test_unknown_status(self):
        """Debe rechazar estados desconocidos con INVALID_STATUS."""
        engine, _, _, _, _ = _engine(_order())

        with pytest.raises(InvalidStatusException) as exc_info:
            await engine.update_status("o-1", "refunded")

        assert exc_info.value.error_code == ErrorCode.INVALID_STATUS
        assert "pending" in exc_info.value.details["allowed"]

    @pytest.mark.asyncio
    async def test_transition_outside_graph(self):
        """Debe rechazar saltos de estado con INVALID_TRANSITION."""
        engine, products, orders, _, notifier = _engine(_order())

        with pytest.raises(InvalidStatusException) as exc_info:
            await engine.update_status("o-1", "shipped")

        assert exc_info.value.error_code == ErrorCode.INVALID_TRANSITION
        assert exc_info.value.details["current_status"] == "pending"
        assert exc_info.value.details["allowed"] == ["cancelled", "confirmed"]
        assert orders.orders["o-1"].status is OrderStatus.PENDING
        assert products.stock("p-1", "CAP-BLK") == 10
        notifier.dispatch_status_change.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_order(self):
        """Debe lanzar NotFoundException si el pedido no existe."""
        engine, _, _, _, _ = _engine(_order())

        with pytest.raises(NotFoundException):
            await engine.update_status("o-404", "confirmed")

    @pytest.mark.asyncio
    async def test_insufficient_stock_rolls_back(self):
        """Sin stock suficiente el pedido debe seguir pendiente y el stock intacto."""
        engine, products, orders, transactions, notifier = _engine(_order(quantity=12))

        with pytest.raises(InsufficientStockException) as exc_info:
            await engine.update_status("o-1", "confirmed")

        assert exc_info.value.details["available"] == 10
        assert exc_info.value.details["requested"] == 12
        assert orders.orders["o-1"].status is OrderStatus.PENDING
        assert products.stock("p-1", "CAP-BLK") == 10
        assert transactions.rollbacks == 1
        notifier.dispatch_status_change.assert_not_called()

    @pytest.mark.asyncio
    async def test_deleted_product_on_confirm(self):
        """Debe lanzar NotFoundException si el producto ya no existe."""
        engine, products, orders, _, _ = _engine(_order())
        products.products.clear()

        with pytest.raises(NotFoundException) as exc_info:
            await engine.update_status("o-1", "confirmed")

        assert exc_info.value.details["resource"] == "product"
        assert orders.orders["o-1"].status is OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_removed_variant_on_cancel(self):
        """Debe lanzar InvalidVariantException si el SKU ya no existe al devolver stock."""
        product = ProductDomain(
            id="p-1",
            name="Street Cap",
            slug="street-cap",
            description="",
            variants=[VariantDomain(sku="CAP-RED", name="Red Cap", price=Money.of(5000), stock=4)],
        )
        engine, _, orders, _, _ = _engine(_order(status=OrderStatus.CONFIRMED, stock_reserved=True), product=product)

        with pytest.raises(InvalidVariantException):
            await engine.update_status("o-1", "cancelled")

        assert orders.orders["o-1"].status is OrderStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_concurrent_status_change_detected(self):
        """Si el estado cambió entre la lectura y la escritura, no debe aplicar nada."""

        class RacingOrderStore(InMemoryOrderStore):
            async def update_status(self, order_id, new_status, stock_reserved, expected_status=None, session=None):
                self.orders[order_id].status = OrderStatus.CANCELLED
                return await super().update_status(
                    order_id, new_status, stock_reserved, expected_status=expected_status, session=session
                )

        engine, products, _, transactions, _ = _engine(_order(), order_store=RacingOrderStore(_order()))

        with pytest.raises(InvalidStatusException) as exc_info:
            await engine.update_status("o-1", "confirmed")

        assert exc_info.value.error_code == ErrorCode.INVALID_TRANSITION
        assert products.stock("p-1", "CAP-BLK") == 10
        assert transactions.rollbacks == 1


class FailingRefreshProductStore(InMemoryProductStore):
    async def refresh_base_price(self, product_id, session=None):
        raise PersistenceException(message="disk I/O error", operation="ProductRepository.refresh_base_price")


class FailingWriteOrderStore(InMemoryOrderStore):
    async def update_status(self, order_id, new_status, stock_reserved, expected_status=None, session=None):
        raise PersistenceException(message="database is locked", operation="OrderRepository.update_status")


def _failing_engine(order: OrderDomain, product_store: InMemoryProductStore, order_store: InMemoryOrderStore):
    transactions = SnapshotTransactions(product_store, order_store)
    notifier = MagicMock()
    engine = OrderLifecycleEngine(
        order_store=order_store,
        product_store=product_store,
        transactions=transactions,
        notifier=notifier,
    )
    return engine, transactions, notifier


class TestPersistenceFailures:
    """Si falla una escritura, el pedido y el stock deben quedar como estaban."""

    @pytest.mark.asyncio
    async def test_product_write_failure_on_confirm(self):
        """Un fallo al guardar el producto no debe confirmar el pedido ni descontar stock."""
        products = FailingRefreshProductStore(_product())
        orders = InMemoryOrderStore(_order())
        engine, transactions, notifier = _failing_engine(_order(), products, orders)

        with pytest.raises(PersistenceException):
            await engine.update_status("o-1", "confirmed")

        assert orders.orders["o-1"].status is OrderStatus.PENDING
        assert orders.orders["o-1"].stock_reserved is False
        assert products.stock("p-1", "CAP-BLK") == 10
        assert transactions.rollbacks == 1
        notifier.dispatch_status_change.assert_not_called()

    @pytest.mark.asyncio
    async def test_product_write_failure_on_cancel(self):
        """Un fallo al guardar el producto no debe cancelar el pedido ni devolver stock."""
        products = FailingRefreshProductStore(_product(stock=7))
        confirmed = _order(status=OrderStatus.CONFIRMED, stock_reserved=True)
        orders = InMemoryOrderStore(confirmed)
        engine, transactions, notifier = _failing_engine(confirmed, products, orders)

        with pytest.raises(PersistenceException):
            await engine.update_status("o-1", "cancelled")

        assert orders.orders["o-1"].status is OrderStatus.CONFIRMED
        assert orders.orders["o-1"].stock_reserved is True
        assert products.stock("p-1", "CAP-BLK") == 7
        assert transactions.rollbacks == 1
        notifier.dispatch_status_change.assert_not_called()

    @pytest.mark.asyncio
    async def test_order_write_failure_returns_taken_stock(self):
        """Si falla la escritura del pedido, el stock ya descontado debe volver."""
        products = InMemoryProductStore(_product())
        orders = FailingWriteOrderStore(_order())
        engine, transactions, notifier = _failing_engine(_order(), products, orders)

        with pytest.raises(PersistenceException):
            await engine.update_status("o-1", "confirmed")

        assert orders.orders["o-1"].status is OrderStatus.PENDING
        assert products.stock("p-1", "CAP-BLK") == 10
        assert transactions.rollbacks == 1
        notifier.dispatch_status_change.assert_not_called()
