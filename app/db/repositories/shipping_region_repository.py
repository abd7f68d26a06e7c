"""
ShippingRegionRepository: shipping fee reference data.

Region lookups are case-insensitive; the stored ``name`` is the canonical
spelling copied onto orders.
"""

import logging
from typing import List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.repositories.base import BaseRepository, log_operation
from app.db.schema import shipping_regions_table
from app.domain.models.shipping_region import ShippingRegionDomain
from app.domain.value_objects.money import Money

logger = logging.getLogger(__name__)


def region_key(name: str) -> str:
    return name.strip().lower()


class ShippingRegionRepository(BaseRepository):
    """Repository for shipping regions."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.currency = get_settings().CURRENCY

    def _region_from_row(self, row) -> ShippingRegionDomain:
        return ShippingRegionDomain(
            name=row.name,
            home_fee=Money.of(row.home_fee, currency=self.currency),
            pickup_fee=Money.of(row.pickup_fee, currency=self.currency),
        )

    @log_operation()
    async def get_shipping_region(
        self, name: str, session: Optional[AsyncSession] = None
    ) -> Optional[ShippingRegionDomain]:
        """Case-insensitive lookup by region name."""
        if not name or not name.strip():
            return None
        async with self.session_scope(session) as active:
            result = await active.execute(
                select(shipping_regions_table).where(shipping_regions_table.c.name_key == region_key(name))
            )
            row = result.first()
            return self._region_from_row(row) if row is not None else None

    @log_operation()
    async def list_regions(self) -> List[ShippingRegionDomain]:
        async with self.session_scope() as session:
            result = await session.execute(select(shipping_regions_table).order_by(shipping_regions_table.c.name))
            return [self._region_from_row(row) for row in result.all()]

    @log_operation()
    async def upsert_region(
        self, region: ShippingRegionDomain, session: Optional[AsyncSession] = None
    ) -> ShippingRegionDomain:
        """Insert or update a region; an existing region keeps its canonical name."""
        key = region_key(region.name)
        async with self.session_scope(session) as active:
            result = await active.execute(
                update(shipping_regions_table)
                .where(shipping_regions_table.c.name_key == key)
                .values(home_fee=int(region.home_fee), pickup_fee=int(region.pickup_fee))
            )
            if result.rowcount == 0:
                await active.execute(
                    insert(shipping_regions_table).values(
                        name=region.name.strip(),
                        name_key=key,
                        home_fee=int(region.home_fee),
                        pickup_fee=int(region.pickup_fee),
                    )
                )
                logger.info(f"Shipping region created: {region.name}")
            else:
                logger.info(f"Shipping region updated: {region.name}")

            stored = await active.execute(
                select(shipping_regions_table).where(shipping_regions_table.c.name_key == key)
            )
            return self._region_from_row(stored.first())
