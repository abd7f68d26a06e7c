"""
OrderRepository: order persistence and read-side aggregates.

Orders are created once, then only their status (and the stock marker that
travels with it) changes. Price columns are written at creation and never
updated.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.base import BaseRepository, as_utc, log_operation, utc_now
from app.db.schema import orders_table
from app.domain.models.order import OrderDomain
from app.domain.value_objects.money import Money
from app.domain.value_objects.order_status import OrderStatus

logger = logging.getLogger(__name__)


@dataclass
class OrderPage:
    """One page of orders plus pagination metadata."""

    items: List[OrderDomain]
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
            "total_orders": self.total,
            "has_next_page": self.page < self.total_pages,
            "has_prev_page": self.page > 1,
        }


class OrderRepository(BaseRepository):
    """Repository for customer orders."""

    # ------------------------- Row mapping -------------------------
    @staticmethod
    def _order_from_row(row) -> OrderDomain:
        return OrderDomain(
            id=row.id,
            product_id=row.product_id,
            variant_sku=row.variant_sku,
            quantity=row.quantity,
            unit_price=Money.of(row.unit_price, currency=row.currency),
            shipping_fee=Money.of(row.shipping_fee, currency=row.currency),
            total_price=Money.of(row.total_price, currency=row.currency),
            customer_name=row.customer_name,
            customer_phone=row.customer_phone,
            customer_email=row.customer_email or "",
            region=row.region,
            delivery_method=row.delivery_method,
            address=row.address or "",
            note=row.note or "",
            status=row.status,
            stock_reserved=bool(row.stock_reserved),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

    # ------------------------- Reads -------------------------
    @log_operation()
    async def get_order(self, order_id: str, session: Optional[AsyncSession] = None) -> Optional[OrderDomain]:
        async with self.session_scope(session) as active:
            result = await active.execute(select(orders_table).where(orders_table.c.id == order_id))
            row = result.first()
            return self._order_from_row(row) if row is not None else None

    @log_operation()
    async def list_orders(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> OrderPage:
        """
        Newest-first listing.

        Args:
            status: Exact status filter; ``None`` or ``"all"`` disables it
            search: Case-insensitive substring over customer name, phone and email
            page: 1-based page number
            limit: Page size
        """
        conditions = []
        if status and status != "all":
            conditions.append(orders_table.c.status == status)
        if search:
            term = search.strip().lower()
            conditions.append(
                or_(
                    func.lower(orders_table.c.customer_name).contains(term, autoescape=True),
                    orders_table.c.customer_phone.contains(term, autoescape=True),
                    func.lower(orders_table.c.customer_email).contains(term, autoescape=True),
                )
            )

        page = max(page, 1)
        limit = max(limit, 1)

        async with self.session_scope() as session:
            total = (
                await session.execute(select(func.count()).select_from(orders_table).where(*conditions))
            ).scalar_one()
            rows = (
                await session.execute(
                    select(orders_table)
                    .where(*conditions)
                    .order_by(orders_table.c.created_at.desc(), orders_table.c.id)
                    .offset((page - 1) * limit)
                    .limit(limit)
                )
            ).all()

        return OrderPage(items=[self._order_from_row(row) for row in rows], total=total, page=page, limit=limit)

    # ------------------------- Writes -------------------------
    @log_operation()
    async def create_order(self, order: OrderDomain, session: Optional[AsyncSession] = None) -> OrderDomain:
        """Insert a new order; assigns the ID and timestamps."""
        order.id = order.id or str(uuid.uuid4())
        now = utc_now()
        order.created_at = now
        order.updated_at = now

        async with self.session_scope(session) as active:
            await active.execute(
                insert(orders_table).values(
                    id=order.id,
                    product_id=order.product_id,
                    variant_sku=order.variant_sku,
                    quantity=order.quantity,
                    unit_price=int(order.unit_price),
                    shipping_fee=int(order.shipping_fee),
                    total_price=int(order.total_price),
                    currency=order.total_price.currency,
                    customer_name=order.customer_name,
                    customer_phone=order.customer_phone,
                    customer_email=order.customer_email,
                    region=order.region,
                    delivery_method=order.delivery_method.value,
                    address=order.address,
                    note=order.note,
                    status=order.status.value,
                    stock_reserved=order.stock_reserved,
                    created_at=now,
                    updated_at=now,
                )
            )

        logger.info(f"Order created: {order.id} ({order.status.value}, total={order.total_price})")
        return order

    @log_operation()
    async def update_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        stock_reserved: bool,
        expected_status: Optional[OrderStatus] = None,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        """
        Write the new status and stock marker.

        When ``expected_status`` is given the update only applies if the
        stored status still matches it.

        Returns:
            bool: True if the row was updated
        """
        conditions = [orders_table.c.id == order_id]
        if expected_status is not None:
            conditions.append(orders_table.c.status == expected_status.value)

        async with self.session_scope(session) as active:
            result = await active.execute(
                update(orders_table)
                .where(and_(*conditions))
                .values(status=new_status.value, stock_reserved=stock_reserved, updated_at=utc_now())
            )
            return result.rowcount > 0

    # ------------------------- Aggregates -------------------------
    @log_operation()
    async def count_by_status(self) -> Dict[str, int]:
        async with self.session_scope() as session:
            result = await session.execute(
                select(orders_table.c.status, func.count()).group_by(orders_table.c.status)
            )
            return {status: count for status, count in result.all()}

    @log_operation()
    async def revenue_by_status(self) -> Dict[str, Tuple[int, int]]:
        """status -> (order count, summed total_price)."""
        async with self.session_scope() as session:
            result = await session.execute(
                select(orders_table.c.status, func.count(), func.coalesce(func.sum(orders_table.c.total_price), 0))
                .group_by(orders_table.c.status)
            )
            return {status: (count, int(revenue)) for status, count, revenue in result.all()}

    @log_operation()
    async def count_by_delivery_method(self) -> Dict[str, int]:
        async with self.session_scope() as session:
            result = await session.execute(
                select(orders_table.c.delivery_method, func.count()).group_by(orders_table.c.delivery_method)
            )
            return {method: count for method, count in result.all()}

    @log_operation()
    async def top_regions(self, limit: int = 5) -> List[Tuple[str, int, int]]:
        """(region, order count, revenue) ordered by order count."""
        order_count = func.count().label("order_count")
        async with self.session_scope() as session:
            result = await session.execute(
                select(
                    orders_table.c.region,
                    order_count,
                    func.coalesce(func.sum(orders_table.c.total_price), 0),
                )
                .group_by(orders_table.c.region)
                .order_by(order_count.desc(), orders_table.c.region)
                .limit(limit)
            )
            return [(region, count, int(revenue)) for region, count, revenue in result.all()]

    @log_operation()
    async def sum_revenue(self, statuses: Iterable[OrderStatus], since: Optional[datetime] = None) -> int:
        conditions = [orders_table.c.status.in_([status.value for status in statuses])]
        if since is not None:
            conditions.append(orders_table.c.created_at >= since)
        async with self.session_scope() as session:
            result = await session.execute(
                select(func.coalesce(func.sum(orders_table.c.total_price), 0)).where(*conditions)
            )
            return int(result.scalar_one())

    @log_operation()
    async def count_since(self, since: datetime) -> int:
        async with self.session_scope() as session:
            result = await session.execute(
                select(func.count()).select_from(orders_table).where(orders_table.c.created_at >= since)
            )
            return result.scalar_one()

    @log_operation()
    async def activity_since(self, since: datetime) -> List[Tuple[datetime, str, int]]:
        """(created_at, status, total_price) for every order created since ``since``."""
        async with self.session_scope() as session:
            result = await session.execute(
                select(orders_table.c.created_at, orders_table.c.status, orders_table.c.total_price)
                .where(orders_table.c.created_at >= since)
                .order_by(orders_table.c.created_at)
            )
            return [(as_utc(created_at), status, total) for created_at, status, total in result.all()]
