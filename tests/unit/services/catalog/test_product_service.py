"""Tests unitarios para ProductService con el repositorio simulado."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.models import ProductDomain, VariantDomain
from app.domain.value_objects import Money
from app.services.catalog.product_service import ProductService
from app.utils.error_handler import DuplicateProductException, NotFoundException, ValidationException


@pytest.fixture
def repository():
    repo = MagicMock()
    repo.name_exists = AsyncMock(return_value=False)
    repo.slug_exists = AsyncMock(return_value=False)
    repo.create_product = AsyncMock(side_effect=lambda product: product)
    repo.save_product = AsyncMock(side_effect=lambda product, **kwargs: product)
    repo.update_product_details = AsyncMock(side_effect=lambda product: product)
    repo.get_product = AsyncMock(return_value=None)
    repo.delete_product = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def service(repository):
    return ProductService(repository)


def _data(**overrides):
    data = {
        "name": "Street Cap",
        "description": "Cotton cap",
        "variants": [
            {"sku": "CAP-BLK", "name": "Black", "price": 5000, "stock": 10},
            {"sku": "CAP-WHT", "name": "White", "price": 5500, "stock": 2, "is_default": True},
        ],
    }
    data.update(overrides)
    return data


class TestCreateProduct:
    """Tests para la creación de productos."""

    @pytest.mark.asyncio
    async def test_create_derives_slug_and_base_price(self, service):
        """Debe generar el slug y tomar el precio de la variante por defecto."""
        product = await service.create_product(_data())

        assert product.slug == "street-cap"
        assert product.base_price == Money.of(5500)
        assert product.default_variant.sku == "CAP-WHT"

    @pytest.mark.asyncio
    async def test_slug_collision_gets_suffix(self, service, repository):
        """Debe agregar un sufijo numérico si el slug ya existe."""
        repository.slug_exists.side_effect = [True, True, False]

        product = await service.create_product(_data())

        assert product.slug == "street-cap-2"

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected(self, service, repository):
        """Debe rechazar nombres ya usados."""
        repository.name_exists.return_value = True

        with pytest.raises(DuplicateProductException):
            await service.create_product(_data())

        repository.create_product.assert_not_called()

    @pytest.mark.asyncio
    async def test_variants_required(self, service):
        """Debe exigir al menos una variante."""
        with pytest.raises(ValidationException) as exc_info:
            await service.create_product(_data(variants=[]))

        assert exc_info.value.details["field"] == "variants"

    @pytest.mark.asyncio
    async def test_duplicate_skus_rejected(self, service):
        """Debe rechazar SKUs repetidos."""
        variants = [
            {"sku": "CAP-BLK", "name": "Black", "price": 5000},
            {"sku": "CAP-BLK", "name": "Black again", "price": 5000},
        ]

        with pytest.raises(ValidationException) as exc_info:
            await service.create_product(_data(variants=variants))

        assert exc_info.value.details["field"] == "variants[1].sku"

    @pytest.mark.asyncio
    async def test_negative_stock_rejected(self, service):
        """Debe rechazar variantes con stock negativo."""
        variants = [{"sku": "CAP-BLK", "name": "Black", "price": 5000, "stock": -3}]

        with pytest.raises(ValidationException):
            await service.create_product(_data(variants=variants))


class TestUpdateProduct:
    """Tests para la edición de productos."""

    @pytest.fixture
    def existing(self, repository):
        product = ProductDomain(
            id="p-1",
            name="Street Cap",
            slug="street-cap",
            description="",
            variants=[VariantDomain(sku="CAP-BLK", name="Black", price=Money.of(5000), stock=10)],
        )
        repository.get_product.return_value = product
        return product

    @pytest.mark.asyncio
    async def test_slug_kept_when_name_unchanged(self, service, existing):
        """El slug no debe cambiar si el nombre no cambia."""
        updated = await service.update_product("p-1", {"description": "New description"})

        assert updated.slug == "street-cap"
        assert updated.description == "New description"

    @pytest.mark.asyncio
    async def test_rename_regenerates_slug(self, service, existing, repository):
        """Renombrar debe regenerar el slug excluyendo al propio producto."""
        updated = await service.update_product("p-1", {"name": "Night Cap"})

        assert updated.slug == "night-cap"
        repository.slug_exists.assert_awaited_with("night-cap", exclude_id="p-1")

    @pytest.mark.asyncio
    async def test_variants_replaced_and_renormalized(self, service, existing):
        """Una nueva lista de variantes debe reemplazar la anterior."""
        updated = await service.update_product(
            "p-1",
            {"variants": [{"sku": "CAP-GRN", "name": "Green", "price": 4000, "stock": 1}]},
        )

        assert [variant.sku for variant in updated.variants] == ["CAP-GRN"]
        assert updated.base_price == Money.of(4000)

    @pytest.mark.asyncio
    async def test_details_edit_does_not_write_variants(self, service, existing, repository):
        """Editar solo campos del producto no debe reescribir variantes ni stock."""
        await service.update_product("p-1", {"description": "New description", "brand": "Urban"})

        repository.update_product_details.assert_awaited_once()
        repository.save_product.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_explicit_stock_is_written(self, service, existing, repository):
        """Solo las variantes que traen stock deben sobrescribir el stock guardado."""
        await service.update_product(
            "p-1",
            {
                "variants": [
                    {"sku": "CAP-BLK", "name": "Black", "price": 5200},
                    {"sku": "CAP-RED", "name": "Red", "price": 5200, "stock": 4},
                ]
            },
        )

        assert repository.save_product.await_args.kwargs["stock_skus"] == {"CAP-RED"}

    @pytest.mark.asyncio
    async def test_price_above_limit_rejected(self, service, existing, repository):
        """Debe rechazar precios o stock por encima de los límites del catálogo."""
        for variant in (
            {"sku": "CAP-BLK", "name": "Black", "price": 10**20},
            {"sku": "CAP-BLK", "name": "Black", "price": 5000, "stock": 10**20},
        ):
            with pytest.raises(ValidationException):
                await service.update_product("p-1", {"variants": [variant]})

        repository.save_product.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_missing_product(self, service):
        """Debe lanzar NotFoundException si el producto no existe."""
        with pytest.raises(NotFoundException):
            await service.update_product("missing", {"name": "X"})


class TestDeleteProduct:
    """Tests para el borrado de productos."""

    @pytest.mark.asyncio
    async def test_delete_missing_product(self, service, repository):
        """Debe lanzar NotFoundException si no había nada que borrar."""
        repository.delete_product.return_value = False

        with pytest.raises(NotFoundException):
            await service.delete_product("missing")
