"""Tests de integración de los repositorios sobre SQLite."""

import asyncio

import pytest

from app.db.repositories import ProductFilters
from app.domain.models import ProductDomain, ShippingRegionDomain, VariantDomain
from app.domain.value_objects import Money, OrderStatus
from app.services.orders import create_placement_service
from app.utils.error_handler import PersistenceException


class TestProductRepository:
    """Tests de persistencia de productos y variantes."""

    @pytest.mark.asyncio
    async def test_roundtrip_keeps_variant_order_and_default(self, product_repository, seeded_catalog):
        """Debe guardar y leer las variantes en orden y con la default."""
        product = await product_repository.get_product(seeded_catalog.id)

        assert [variant.sku for variant in product.variants] == ["CAP-BLK", "CAP-WHT"]
        assert product.default_variant.sku == "CAP-BLK"
        assert product.base_price == Money.of(5000)
        assert product.tags == ["street"]
        assert product.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_adjust_stock_never_negative(self, product_repository, seeded_catalog):
        """El descuento condicional no debe dejar stock negativo."""
        assert await product_repository.adjust_variant_stock(seeded_catalog.id, "CAP-BLK", -7) is True
        assert await product_repository.adjust_variant_stock(seeded_catalog.id, "CAP-BLK", -4) is False
        assert await product_repository.get_variant_stock(seeded_catalog.id, "CAP-BLK") == 3

    @pytest.mark.asyncio
    async def test_concurrent_decrements(self, product_repository, seeded_catalog):
        """Dos descuentos concurrentes no deben vender más de lo que hay."""
        results = await asyncio.gather(
            product_repository.adjust_variant_stock(seeded_catalog.id, "CAP-BLK", -6),
            product_repository.adjust_variant_stock(seeded_catalog.id, "CAP-BLK", -6),
        )

        assert sorted(results) == [False, True]
        assert await product_repository.get_variant_stock(seeded_catalog.id, "CAP-BLK") == 4

    @pytest.mark.asyncio
    async def test_adjust_unknown_variant(self, product_repository, seeded_catalog):
        """Debe devolver False si la variante no existe."""
        assert await product_repository.adjust_variant_stock(seeded_catalog.id, "NOPE", 1) is False

    @pytest.mark.asyncio
    async def test_save_replaces_variants(self, product_repository, seeded_catalog):
        """save_product debe reemplazar la lista de variantes y recalcular base_price."""
        product = await product_repository.get_product(seeded_catalog.id)
        product.variants = [VariantDomain(sku="CAP-NVY", name="Navy Cap", price=Money.of(4200), stock=5)]

        await product_repository.save_product(product)
        stored = await product_repository.get_product(seeded_catalog.id)

        assert [variant.sku for variant in stored.variants] == ["CAP-NVY"]
        assert stored.variants[0].is_default
        assert stored.base_price == Money.of(4200)

    @pytest.mark.asyncio
    async def test_list_filters(self, product_repository, seeded_catalog):
        """Debe filtrar por marca, precio, stock y búsqueda."""
        await product_repository.create_product(
            ProductDomain(
                name="Trail Sneaker",
                slug="trail-sneaker",
                description="",
                brand="Peak",
                is_featured=True,
                variants=[VariantDomain(sku="TS-42", name="42", price=Money.of(18000), stock=0)],
            )
        )

        assert (await product_repository.list_products(ProductFilters(brand="urban"))).total == 1
        assert (await product_repository.list_products(ProductFilters(min_price=10000))).items[0].slug == "trail-sneaker"
        assert (await product_repository.list_products(ProductFilters(in_stock=True))).items[0].name == "Street Cap"
        assert (await product_repository.list_products(ProductFilters(in_stock=False))).total == 1
        assert (await product_repository.list_products(ProductFilters(search="SNEAK"))).total == 1
        assert (await product_repository.list_products(ProductFilters(is_featured=True))).total == 1

        page = await product_repository.list_products(ProductFilters(page=2, limit=1))
        assert page.total == 2
        assert len(page.items) == 1
        assert page.pagination()["has_prev_page"] is True
        assert page.pagination()["has_next_page"] is False

    @pytest.mark.asyncio
    async def test_delete(self, product_repository, seeded_catalog):
        """Debe borrar el producto y sus variantes."""
        assert await product_repository.delete_product(seeded_catalog.id) is True
        assert await product_repository.get_product(seeded_catalog.id) is None
        assert await product_repository.delete_product(seeded_catalog.id) is False


class TestShippingRegionRepository:
    """Tests de las regiones de envío."""

    @pytest.mark.asyncio
    async def test_case_insensitive_lookup(self, region_repository, seeded_catalog):
        """Debe encontrar la región sin distinguir mayúsculas."""
        region = await region_repository.get_shipping_region("  ALGIERS ")

        assert region.name == "Algiers"
        assert region.home_fee == Money.of(500)

    @pytest.mark.asyncio
    async def test_upsert_keeps_canonical_name(self, region_repository, seeded_catalog):
        """Actualizar una región existente debe conservar su nombre."""
        updated = await region_repository.upsert_region(
            ShippingRegionDomain(name="algiers", home_fee=Money.of(600), pickup_fee=Money.of(350))
        )

        assert updated.name == "Algiers"
        assert updated.home_fee == Money.of(600)
        assert len(await region_repository.list_regions()) == 2

    @pytest.mark.asyncio
    async def test_integer_overflow_becomes_persistence_error(self, region_repository, seeded_catalog):
        """Un monto que no cabe en la columna debe llegar como PersistenceException."""
        with pytest.raises(PersistenceException):
            await region_repository.upsert_region(
                ShippingRegionDomain(name="Algiers", home_fee=Money.of(10**20), pickup_fee=Money.of(300))
            )

        region = await region_repository.get_shipping_region("Algiers")
        assert region.home_fee == Money.of(500)


class TestOrderRepository:
    """Tests de la persistencia de pedidos."""

    @pytest.mark.asyncio
    async def test_expected_status_guard(self, order_repository, placement_payload, conn_db):
        """update_status con expected_status no debe pisar un cambio concurrente."""
        order = await create_placement_service(conn_db).place_order(placement_payload)

        applied = await order_repository.update_status(
            order.id, OrderStatus.CONFIRMED, stock_reserved=True, expected_status=OrderStatus.SHIPPED
        )
        assert applied is False

        applied = await order_repository.update_status(
            order.id, OrderStatus.CONFIRMED, stock_reserved=True, expected_status=OrderStatus.PENDING
        )
        stored = await order_repository.get_order(order.id)

        assert applied is True
        assert stored.status is OrderStatus.CONFIRMED
        assert stored.stock_reserved is True
        assert stored.total_price == Money.of(15500)

    @pytest.mark.asyncio
    async def test_list_search_and_status(self, order_repository, placement_payload, conn_db):
        """Debe filtrar por estado y buscar por nombre, teléfono o email."""
        service = create_placement_service(conn_db)
        await service.place_order(placement_payload)
        await service.place_order(
            {**placement_payload, "customer_name": "Karim", "customer_phone": "0661000000", "customer_email": ""}
        )

        assert (await order_repository.list_orders(search="amina")).total == 1
        assert (await order_repository.list_orders(search="0661")).total == 1
        assert (await order_repository.list_orders(status="pending")).total == 2
        assert (await order_repository.list_orders(status="confirmed")).total == 0
        assert (await order_repository.list_orders(status="all", limit=1)).pagination()["total_pages"] == 2
