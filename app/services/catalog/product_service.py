"""
ProductService - catalog management.

Owns the catalog rules that need the store to check: unique names,
unique slugs, and variant validation before anything is written.
"""

import logging
from typing import Any, Optional

from app.core.config import get_settings
from app.db.connection import ConnDB
from app.db.repositories import ProductFilters, ProductPage, ProductRepository
from app.domain.models import ProductDomain, VariantDomain, slugify
from app.utils.error_handler import DuplicateProductException, NotFoundException, ValidationException

logger = logging.getLogger(__name__)

FALLBACK_SLUG = "product"


class ProductService:
    """Create, update, delete and browse products."""

    def __init__(self, repository: ProductRepository):
        self.repository = repository
        self.currency = get_settings().CURRENCY

    async def get_product(self, product_id: str) -> ProductDomain:
        product = await self.repository.get_product(product_id)
        if product is None:
            raise NotFoundException(message=f"Product {product_id} not found", resource="product", resource_id=product_id)
        return product

    async def list_products(self, filters: Optional[ProductFilters] = None) -> ProductPage:
        return await self.repository.list_products(filters)

    async def create_product(self, data: dict[str, Any]) -> ProductDomain:
        """
        Create a product.

        Args:
            data: name, description, brand, tags, images, is_featured and a
                non-empty ``variants`` list

        Raises:
            ValidationException: Missing name, no variants, duplicate SKUs or bad variant data
            DuplicateProductException: Another product already uses the name
        """
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationException(message="Product name is required", field="name", missing_fields=["name"])

        await self._ensure_name_available(name)

        variants = self._build_variants(data.get("variants"))
        slug = await self._unique_slug(name)

        product = self._build_product(
            name=name,
            slug=slug,
            description=data.get("description") or "",
            variants=variants,
            brand=data.get("brand") or "",
            tags=list(data.get("tags") or []),
            images=list(data.get("images") or []),
            is_featured=bool(data.get("is_featured", False)),
        )

        created = await self.repository.create_product(product)
        logger.info(f"✅ Product '{created.name}' created with {len(created.variants)} variants")
        return created

    async def update_product(self, product_id: str, data: dict[str, Any]) -> ProductDomain:
        """
        Update a product. Only the keys present in ``data`` change; a given
        ``variants`` list replaces the current one. The slug is regenerated
        only when the name changes.

        Stock is never written back from the copy read here: an existing
        SKU keeps its stored stock unless its entry carries ``stock``.
        """
        product = await self.get_product(product_id)

        if "name" in data and data["name"] is not None:
            new_name = data["name"].strip()
            if not new_name:
                raise ValidationException(message="Product name cannot be empty", field="name", invalid_value=data["name"])
            if new_name != product.name:
                if new_name.lower() != product.name.lower():
                    await self._ensure_name_available(new_name, exclude_id=product_id)
                product.rename(new_name, await self._unique_slug(new_name, exclude_id=product_id))

        for field in ("description", "brand"):
            if field in data and data[field] is not None:
                setattr(product, field, data[field])
        for field in ("tags", "images"):
            if field in data and data[field] is not None:
                setattr(product, field, list(data[field]))
        if "is_featured" in data and data["is_featured"] is not None:
            product.is_featured = bool(data["is_featured"])

        if data.get("variants") is None:
            saved = await self.repository.update_product_details(product)
            logger.info(f"✅ Product '{saved.name}' updated")
            return saved

        product.variants = self._build_variants(data["variants"])
        # Sin "stock" explícito se conserva el stock guardado de esa variante
        stock_skus = {variant.sku for variant, raw in zip(product.variants, data["variants"]) if "stock" in raw}

        try:
            product.normalize_variants()
        except ValueError as e:
            raise ValidationException(message=str(e), field="variants") from e

        saved = await self.repository.save_product(product, stock_skus=stock_skus)
        logger.info(f"✅ Product '{saved.name}' updated with {len(saved.variants)} variants")
        return saved

    async def delete_product(self, product_id: str) -> None:
        """Hard delete; orders keep their own copy of the prices."""
        deleted = await self.repository.delete_product(product_id)
        if not deleted:
            raise NotFoundException(message=f"Product {product_id} not found", resource="product", resource_id=product_id)
        logger.info(f"🗑️ Product {product_id} deleted")

    # ------------------------- Helpers -------------------------
    async def _ensure_name_available(self, name: str, exclude_id: Optional[str] = None) -> None:
        if await self.repository.name_exists(name, exclude_id=exclude_id):
            raise DuplicateProductException(
                message=f"A product named '{name}' already exists",
                field="name",
                value=name,
            )

    async def _unique_slug(self, name: str, exclude_id: Optional[str] = None) -> str:
        base = slugify(name) or FALLBACK_SLUG
        candidate = base
        counter = 1
        while await self.repository.slug_exists(candidate, exclude_id=exclude_id):
            candidate = f"{base}-{counter}"
            counter += 1
        return candidate

    def _build_variants(self, raw_variants: Any) -> list[VariantDomain]:
        if not raw_variants:
            raise ValidationException(
                message="A product must have at least one variant",
                field="variants",
                missing_fields=["variants"],
            )

        variants = []
        seen: set[str] = set()
        for index, raw in enumerate(raw_variants):
            sku = (raw.get("sku") or "").strip()
            if sku in seen:
                raise ValidationException(
                    message=f"Duplicate variant SKU '{sku}'",
                    field=f"variants[{index}].sku",
                    invalid_value=sku,
                )
            seen.add(sku)

            try:
                variants.append(
                    VariantDomain.from_dict({**raw, "sku": sku}, currency=self.currency)
                )
            except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                raise ValidationException(
                    message=f"Invalid variant at position {index}: {e}",
                    field=f"variants[{index}]",
                    invalid_value=raw,
                ) from e
        return variants

    def _build_product(self, **fields: Any) -> ProductDomain:
        try:
            return ProductDomain(**fields)
        except ValueError as e:
            raise ValidationException(message=str(e), field="product") from e


def create_product_service(conn_db: Optional[ConnDB] = None) -> ProductService:
    return ProductService(ProductRepository(conn_db))
