"""
ProductRepository: catalog persistence.

Products and their variants are written and read together; variant rows
are never exposed on their own. Stock moves only through
``adjust_variant_stock``, a single conditional UPDATE.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, delete, exists, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.repositories.base import BaseRepository, as_utc, log_operation, utc_now
from app.db.schema import product_variants_table, products_table
from app.domain.models.product import ProductDomain, VariantDomain
from app.domain.value_objects.money import Money

logger = logging.getLogger(__name__)


@dataclass
class ProductFilters:
    """Catalog listing filters; ``None`` means not filtered."""

    brand: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    in_stock: Optional[bool] = None
    search: Optional[str] = None
    is_featured: Optional[bool] = None
    page: int = 1
    limit: int = 12


@dataclass
class ProductPage:
    """One page of products plus pagination metadata."""

    items: List[ProductDomain]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> Dict[str, Any]:
        return {
            "current_page": self.page,
            "total_pages": self.total_pages,
            "total_products": self.total,
            "has_next_page": self.page < self.total_pages,
            "has_prev_page": self.page > 1,
        }


class ProductRepository(BaseRepository):
    """Repository for products and their variants."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.currency = get_settings().CURRENCY

    # ------------------------- Row mapping -------------------------
    def _variant_from_row(self, row) -> VariantDomain:
        return VariantDomain(
            sku=row.sku,
            name=row.name,
            price=Money.of(row.price, currency=self.currency),
            stock=row.stock,
            images=list(row.images or []),
            is_default=bool(row.is_default),
        )

    def _product_from_rows(self, row, variant_rows) -> ProductDomain:
        return ProductDomain(
            id=row.id,
            name=row.name,
            slug=row.slug,
            description=row.description or "",
            brand=row.brand or "",
            tags=list(row.tags or []),
            images=list(row.images or []),
            is_featured=bool(row.is_featured),
            variants=[self._variant_from_row(variant_row) for variant_row in variant_rows],
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

    def _product_values(self, product: ProductDomain) -> Dict[str, Any]:
        return {
            "name": product.name,
            "slug": product.slug,
            "description": product.description,
            "brand": product.brand,
            "tags": list(product.tags),
            "images": list(product.images),
            "is_featured": product.is_featured,
            "base_price": int(product.base_price),
            "updated_at": product.updated_at,
        }

    def _variant_values(self, product_id: str, position: int, variant: VariantDomain) -> Dict[str, Any]:
        return {
            "product_id": product_id,
            "position": position,
            "sku": variant.sku,
            "name": variant.name,
            "price": int(variant.price),
            "stock": variant.stock,
            "images": list(variant.images),
            "is_default": variant.is_default,
        }

    async def _load_variants(self, session: AsyncSession, product_ids: List[str]) -> Dict[str, list]:
        grouped: Dict[str, list] = {product_id: [] for product_id in product_ids}
        if not product_ids:
            return grouped

        result = await session.execute(
            select(product_variants_table)
            .where(product_variants_table.c.product_id.in_(product_ids))
            .order_by(product_variants_table.c.product_id, product_variants_table.c.position)
        )
        for variant_row in result:
            grouped[variant_row.product_id].append(variant_row)
        return grouped

    # ------------------------- Reads -------------------------
    @log_operation()
    async def get_product(self, product_id: str, session: Optional[AsyncSession] = None) -> Optional[ProductDomain]:
        """Load a product with its variants, or None if it does not exist."""
        async with self.session_scope(session) as active:
            result = await active.execute(select(products_table).where(products_table.c.id == product_id))
            row = result.first()
            if row is None:
                return None
            variants = await self._load_variants(active, [row.id])
            return self._product_from_rows(row, variants[row.id])

    @log_operation()
    async def slug_exists(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        condition = products_table.c.slug == slug
        if exclude_id:
            condition = and_(condition, products_table.c.id != exclude_id)
        async with self.session_scope() as session:
            result = await session.execute(select(exists().where(condition)))
            return bool(result.scalar())

    @log_operation()
    async def name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        """Case-insensitive name lookup."""
        condition = func.lower(products_table.c.name) == name.strip().lower()
        if exclude_id:
            condition = and_(condition, products_table.c.id != exclude_id)
        async with self.session_scope() as session:
            result = await session.execute(select(exists().where(condition)))
            return bool(result.scalar())

    @log_operation()
    async def list_products(self, filters: Optional[ProductFilters] = None) -> ProductPage:
        """Filtered, paginated listing, newest first."""
        filters = filters or ProductFilters()
        conditions = []

        if filters.brand:
            conditions.append(func.lower(products_table.c.brand) == filters.brand.strip().lower())
        if filters.min_price is not None:
            conditions.append(products_table.c.base_price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(products_table.c.base_price <= filters.max_price)
        if filters.is_featured is not None:
            conditions.append(products_table.c.is_featured == filters.is_featured)
        if filters.search:
            term = filters.search.strip().lower()
            conditions.append(
                or_(
                    func.lower(products_table.c.name).contains(term, autoescape=True),
                    func.lower(products_table.c.slug).contains(term, autoescape=True),
                )
            )
        if filters.in_stock is not None:
            has_stock = exists().where(
                and_(
                    product_variants_table.c.product_id == products_table.c.id,
                    product_variants_table.c.stock > 0,
                )
            )
            conditions.append(has_stock if filters.in_stock else ~has_stock)

        page = max(filters.page, 1)
        limit = max(filters.limit, 1)

        async with self.session_scope() as session:
            total = (
                await session.execute(select(func.count()).select_from(products_table).where(*conditions))
            ).scalar_one()

            rows = (
                await session.execute(
                    select(products_table)
                    .where(*conditions)
                    .order_by(products_table.c.created_at.desc(), products_table.c.id)
                    .offset((page - 1) * limit)
                    .limit(limit)
                )
            ).all()

            variants = await self._load_variants(session, [row.id for row in rows])
            items = [self._product_from_rows(row, variants[row.id]) for row in rows]

        return ProductPage(items=items, total=total, page=page, limit=limit)

    # ------------------------- Writes -------------------------
    @log_operation()
    async def create_product(self, product: ProductDomain, session: Optional[AsyncSession] = None) -> ProductDomain:
        """Insert a new product and its variants; assigns the ID."""
        product.normalize_variants()
        product.id = product.id or str(uuid.uuid4())
        now = utc_now()
        product.created_at = now
        product.updated_at = now

        async with self.session_scope(session) as active:
            await active.execute(
                insert(products_table).values(id=product.id, created_at=now, **self._product_values(product))
            )
            await active.execute(
                insert(product_variants_table),
                [
                    self._variant_values(product.id, position, variant)
                    for position, variant in enumerate(product.variants)
                ],
            )

        logger.info(f"Product created: {product.id} ({product.slug})")
        return product

    @log_operation()
    async def update_product_details(
        self, product: ProductDomain, session: Optional[AsyncSession] = None
    ) -> ProductDomain:
        """
        Persist the product-level fields only.

        Variant rows (and therefore stock) are left untouched, so a catalog
        edit can run alongside order confirmations without undoing them.

        Returns:
            ProductDomain: The stored product, variants read back in the same transaction
        """
        product.updated_at = utc_now()
        values = self._product_values(product)
        values.pop("base_price")

        async with self.session_scope(session) as active:
            await active.execute(update(products_table).where(products_table.c.id == product.id).values(**values))
            stored = await self.get_product(product.id, session=active)

        logger.info(f"Product details saved: {product.id} ({product.slug})")
        return stored

    @log_operation()
    async def save_product(
        self,
        product: ProductDomain,
        session: Optional[AsyncSession] = None,
        stock_skus: Optional[Iterable[str]] = None,
    ) -> ProductDomain:
        """
        Persist an existing product together with its variant list.

        Variants are matched by SKU: SKUs no longer listed are deleted, new
        SKUs are inserted with their stock, and existing SKUs get their
        name, price, images, position and default flag rewritten. Stock of an
        existing SKU is only overwritten when the SKU is in ``stock_skus``;
        otherwise the stored count is kept, since stock only moves through
        ``adjust_variant_stock``.

        Args:
            product: Product with its full, ordered variant list
            session: Session of an enclosing transaction, if any
            stock_skus: SKUs whose submitted stock replaces the stored one

        Returns:
            ProductDomain: The stored product, variants read back in the same transaction
        """
        product.normalize_variants()
        product.updated_at = utc_now()
        explicit_stock = set(stock_skus or ())
        wanted = {variant.sku for variant in product.variants}

        async with self.session_scope(session) as active:
            await active.execute(
                update(products_table)
                .where(products_table.c.id == product.id)
                .values(**self._product_values(product))
            )

            result = await active.execute(
                select(product_variants_table.c.sku).where(product_variants_table.c.product_id == product.id)
            )
            existing = set(result.scalars().all())

            stale = existing - wanted
            if stale:
                await active.execute(
                    delete(product_variants_table).where(
                        and_(
                            product_variants_table.c.product_id == product.id,
                            product_variants_table.c.sku.in_(stale),
                        )
                    )
                )

            for position, variant in enumerate(product.variants):
                values = self._variant_values(product.id, position, variant)
                if variant.sku not in existing:
                    await active.execute(insert(product_variants_table).values(**values))
                    continue

                if variant.sku not in explicit_stock:
                    values.pop("stock")
                await active.execute(
                    update(product_variants_table)
                    .where(
                        and_(
                            product_variants_table.c.product_id == product.id,
                            product_variants_table.c.sku == variant.sku,
                        )
                    )
                    .values(**values)
                )

            stored = await self.get_product(product.id, session=active)

        logger.info(f"Product saved: {product.id} ({product.slug})")
        return stored

    @log_operation()
    async def refresh_base_price(
        self, product_id: str, session: Optional[AsyncSession] = None
    ) -> Optional[ProductDomain]:
        """Reload a product, re-run variant normalization and store the derived fields."""
        async with self.session_scope(session) as active:
            product = await self.get_product(product_id, session=active)
            if product is None:
                return None

            product.normalize_variants()
            product.updated_at = utc_now()
            await active.execute(
                update(products_table)
                .where(products_table.c.id == product_id)
                .values(base_price=int(product.base_price), updated_at=product.updated_at)
            )
            for variant in product.variants:
                await active.execute(
                    update(product_variants_table)
                    .where(
                        and_(
                            product_variants_table.c.product_id == product_id,
                            product_variants_table.c.sku == variant.sku,
                        )
                    )
                    .values(is_default=variant.is_default)
                )
            return product

    @log_operation()
    async def delete_product(self, product_id: str, session: Optional[AsyncSession] = None) -> bool:
        """Hard delete. Returns False when the product did not exist."""
        async with self.session_scope(session) as active:
            await active.execute(
                delete(product_variants_table).where(product_variants_table.c.product_id == product_id)
            )
            result = await active.execute(delete(products_table).where(products_table.c.id == product_id))
            deleted = result.rowcount > 0

        if deleted:
            logger.info(f"Product deleted: {product_id}")
        return deleted

    @log_operation()
    async def adjust_variant_stock(
        self, product_id: str, sku: str, delta: int, session: Optional[AsyncSession] = None
    ) -> bool:
        """
        Atomically add ``delta`` to a variant's stock.

        A negative delta only applies while ``stock >= -delta``, so two
        concurrent decrements can never drive stock below zero.

        Returns:
            bool: True if a row was updated; False if the variant is missing
            or (for decrements) the stock is insufficient
        """
        conditions = [
            product_variants_table.c.product_id == product_id,
            product_variants_table.c.sku == sku,
        ]
        if delta < 0:
            conditions.append(product_variants_table.c.stock >= -delta)

        async with self.session_scope(session) as active:
            result = await active.execute(
                update(product_variants_table)
                .where(and_(*conditions))
                .values(stock=product_variants_table.c.stock + delta)
            )
            return result.rowcount > 0

    async def get_variant_stock(
        self, product_id: str, sku: str, session: Optional[AsyncSession] = None
    ) -> Optional[int]:
        async with self.session_scope(session) as active:
            result = await active.execute(
                select(product_variants_table.c.stock).where(
                    and_(
                        product_variants_table.c.product_id == product_id,
                        product_variants_table.c.sku == sku,
                    )
                )
            )
            return result.scalar_one_or_none()
