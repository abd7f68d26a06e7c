"""Tests unitarios para el modelo de producto y sus variantes."""

import pytest

from app.domain.models import ProductDomain, VariantDomain, slugify
from app.domain.value_objects import Money


def _variant(sku: str, price: int = 1000, stock: int = 5, is_default: bool = False) -> VariantDomain:
    return VariantDomain(sku=sku, name=f"Variant {sku}", price=Money.of(price), stock=stock, is_default=is_default)


def _product(variants) -> ProductDomain:
    return ProductDomain(name="Runner Shoe", slug="runner-shoe", description="", variants=variants)


class TestSlugify:
    """Tests para la generación de slugs."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Street Cap", "street-cap"),
            ("  Air   Max 90 ", "air-max-90"),
            ("T-Shirt -- Edition!", "t-shirt-edition"),
            ("Casquette d'été", "casquette-dété"),
        ],
    )
    def test_slugify(self, name, expected):
        """Debe derivar el slug del nombre."""
        assert slugify(name) == expected


class TestVariantDomain:
    """Tests de invariantes de la variante."""

    def test_negative_stock_rejected(self):
        """No debe permitir stock negativo."""
        with pytest.raises(ValueError, match="negative"):
            _variant("A", stock=-1)

    def test_missing_name_rejected(self):
        """Debe exigir nombre."""
        with pytest.raises(ValueError, match="name"):
            VariantDomain(sku="A", name=" ", price=Money.of(10))

    def test_from_dict(self):
        """Debe construir la variante desde un dict de la API."""
        variant = VariantDomain.from_dict({"sku": "CAP-RED", "name": "Red", "price": 4500, "stock": 2})

        assert variant.price == Money.of(4500)
        assert variant.in_stock
        assert variant.images == []


class TestProductDefaultVariant:
    """Tests para la normalización de la variante por defecto."""

    def test_first_variant_promoted_when_none_flagged(self):
        """Debe marcar la primera variante como default si ninguna lo está."""
        product = _product([_variant("A", price=1000), _variant("B", price=2000)])

        assert product.variants[0].is_default
        assert not product.variants[1].is_default
        assert product.base_price == Money.of(1000)

    def test_only_first_flagged_default_kept(self):
        """Debe conservar solo la primera variante marcada como default."""
        product = _product(
            [_variant("A", price=1000), _variant("B", price=2000, is_default=True), _variant("C", is_default=True)]
        )

        assert [variant.is_default for variant in product.variants] == [False, True, False]
        assert product.base_price == Money.of(2000)

    def test_base_price_follows_default_after_edit(self):
        """Debe recalcular base_price al cambiar la variante por defecto."""
        product = _product([_variant("A", price=1000, is_default=True), _variant("B", price=2000)])

        product.variants[0].is_default = False
        product.variants[1].is_default = True
        product.normalize_variants()

        assert product.base_price == Money.of(2000)

    def test_product_without_variants_rejected(self):
        """Debe exigir al menos una variante."""
        with pytest.raises(ValueError, match="at least one variant"):
            _product([])

    def test_duplicate_skus_rejected(self):
        """No debe permitir SKUs repetidos dentro del producto."""
        with pytest.raises(ValueError, match="Duplicate variant SKU"):
            _product([_variant("A"), _variant("A")])

    def test_find_variant_and_total_stock(self):
        """Debe resolver variantes por SKU exacto y sumar el stock."""
        product = _product([_variant("A", stock=3), _variant("B", stock=4)])

        assert product.find_variant("B").sku == "B"
        assert product.find_variant("b") is None
        assert product.total_stock == 7
