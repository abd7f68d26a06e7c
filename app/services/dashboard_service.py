"""
DashboardService - read-only sales summary for the back office.

Revenue only counts ``confirmed`` and ``delivered`` orders. Day and month
boundaries follow the store timezone (STORE_TIMEZONE).
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import pytz

from app.core.config import get_settings
from app.db.connection import ConnDB
from app.db.repositories import OrderRepository
from app.domain.value_objects import OrderStatus

logger = logging.getLogger(__name__)

REVENUE_STATUSES = (OrderStatus.CONFIRMED, OrderStatus.DELIVERED)
REVENUE_STATUS_VALUES = frozenset(status.value for status in REVENUE_STATUSES)
DAILY_WINDOW_DAYS = 30
TOP_REGIONS_LIMIT = 5


class DashboardService:
    """Aggregates order statistics."""

    def __init__(self, order_repository: OrderRepository, timezone: Optional[str] = None):
        self.order_repository = order_repository
        self.timezone = pytz.timezone(timezone or get_settings().STORE_TIMEZONE)

    def _local_now(self) -> datetime:
        return datetime.now(self.timezone)

    def _start_of_day(self, moment: datetime) -> datetime:
        return self.timezone.localize(datetime(moment.year, moment.month, moment.day))

    async def get_summary(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Build the dashboard summary.

        Args:
            now: Reference time (defaults to the current time in the store timezone)
        """
        now = now.astimezone(self.timezone) if now else self._local_now()
        today_start = self._start_of_day(now)
        month_start = self.timezone.localize(datetime(now.year, now.month, 1))
        window_start = self._start_of_day(now - timedelta(days=DAILY_WINDOW_DAYS))

        status_counts = await self.order_repository.count_by_status()
        total_orders = sum(status_counts.values())
        cancelled_orders = status_counts.get(OrderStatus.CANCELLED.value, 0)

        total_revenue = await self.order_repository.sum_revenue(REVENUE_STATUSES)
        monthly_revenue = await self.order_repository.sum_revenue(
            REVENUE_STATUSES, since=month_start.astimezone(pytz.utc)
        )
        today_orders = await self.order_repository.count_since(today_start.astimezone(pytz.utc))

        revenue_by_status = await self.order_repository.revenue_by_status()
        orders_by_delivery = await self.order_repository.count_by_delivery_method()
        top_regions = await self.order_repository.top_regions(limit=TOP_REGIONS_LIMIT)
        daily_data = await self._daily_data(window_start)

        cancellation_rate = round(cancelled_orders / total_orders * 100, 2) if total_orders else 0.0

        logger.debug(f"Dashboard summary computed: {total_orders} orders, revenue={total_revenue}")

        return {
            "total_orders": total_orders,
            "pending_orders": status_counts.get(OrderStatus.PENDING.value, 0),
            "delivered_orders": status_counts.get(OrderStatus.DELIVERED.value, 0),
            "cancelled_orders": cancelled_orders,
            "total_revenue": total_revenue,
            "monthly_revenue": monthly_revenue,
            "today_orders": today_orders,
            "cancellation_rate": cancellation_rate,
            "currency": get_settings().CURRENCY,
            "daily_data": daily_data,
            "revenue_by_status": [
                {"status": status, "orders": count, "total": revenue}
                for status, (count, revenue) in sorted(
                    revenue_by_status.items(), key=lambda item: item[1][1], reverse=True
                )
            ],
            "orders_by_delivery": [
                {"delivery_method": method, "count": count} for method, count in sorted(orders_by_delivery.items())
            ],
            "top_regions": [
                {"region": region, "count": count, "revenue": revenue} for region, count, revenue in top_regions
            ],
        }

    async def _daily_data(self, window_start: datetime) -> list[Dict[str, Any]]:
        """Orders and revenue per local day, oldest first; days without orders are omitted."""
        rows = await self.order_repository.activity_since(window_start.astimezone(pytz.utc))

        days: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for created_at, status, total_price in rows:
            day = created_at.astimezone(self.timezone).strftime("%Y-%m-%d")
            bucket = days.setdefault(day, {"date": day, "orders": 0, "revenue": 0})
            bucket["orders"] += 1
            if status in REVENUE_STATUS_VALUES:
                bucket["revenue"] += total_price

        return list(days.values())


def create_dashboard_service(conn_db: Optional[ConnDB] = None) -> DashboardService:
    return DashboardService(OrderRepository(conn_db))
