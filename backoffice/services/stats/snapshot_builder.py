"""Assembles statistics documents from the aggregation queries.

Each build fans its independent queries out concurrently, every query in its
own session, and only assembles the document once all of them succeeded. A
failing query aborts the build, so nothing partial is ever handed to the store.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import async_sessionmaker

from backoffice.core.config import Settings, get_settings
from backoffice.schemas.stats import (
    CategorySales, CategoryStock, CustomerSnapshot, MonthlySalesRecord, OrderCounts,
    PaymentMethodSales, ProductSnapshot, SalesSnapshot, TopCustomer, TopSellingProduct,
    WindowCounts
)
from backoffice.services.stats import aggregations

logger = logging.getLogger(__name__)


def money(value) -> float:
    if value is None:
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def safe_ratio(numerator, denominator) -> Decimal:
    if not denominator:
        return Decimal("0")
    return Decimal(str(numerator)) / Decimal(str(denominator))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def previous_month(now: datetime) -> Tuple[int, int]:
    """(year, month) of the last completed calendar month."""
    if now.month == 1:
        return now.year - 1, 12
    return now.year, now.month - 1


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """Half-open [first instant, first instant of next month) in UTC."""
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


class SnapshotBuilder:
    def __init__(self, session_factory: async_sessionmaker, settings: Optional[Settings] = None):
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    async def _query(self, query, *args, **kwargs):
        async with self.session_factory() as db:
            return await query(db, *args, **kwargs)

    async def build_sales(self, now: Optional[datetime] = None) -> SalesSnapshot:
        now = now or utcnow()
        windows = aggregations.time_windows(now)

        (daily, weekly, monthly, yearly, total, by_method, by_category) = await asyncio.gather(
            self._query(aggregations.revenue_in_window, since=windows["day"]),
            self._query(aggregations.revenue_in_window, since=windows["week"]),
            self._query(aggregations.revenue_in_window, since=windows["month"]),
            self._query(aggregations.revenue_in_window, since=windows["year"]),
            self._query(aggregations.revenue_in_window),
            self._query(aggregations.sales_by_payment_method),
            self._query(aggregations.sales_by_category),
        )

        return SalesSnapshot(
            date=now,
            daily_revenue=money(daily.total),
            weekly_revenue=money(weekly.total),
            monthly_revenue=money(monthly.total),
            yearly_revenue=money(yearly.total),
            total_revenue=money(total.total),
            order_count=OrderCounts(
                daily=daily.count,
                weekly=weekly.count,
                monthly=monthly.count,
                yearly=yearly.count,
                total=total.count,
            ),
            average_order_value=money(safe_ratio(total.total, total.count)),
            sales_by_payment_method=[
                PaymentMethodSales(method=row["method"], amount=money(row["amount"]), count=row["count"])
                for row in by_method
            ],
            sales_by_category=[
                CategorySales(category=row["category"], amount=money(row["amount"]), count=row["count"])
                for row in by_category
            ],
            last_updated=utcnow(),
        )

    async def build_products(self, now: Optional[datetime] = None) -> ProductSnapshot:
        now = now or utcnow()
        threshold = self.settings.LOW_STOCK_THRESHOLD

        total_products, by_category, top_selling, (low_stock, out_of_stock) = await asyncio.gather(
            self._query(aggregations.count_products),
            self._query(aggregations.products_by_category, threshold),
            self._query(aggregations.top_selling_products, self.settings.TOP_N),
            self._query(aggregations.stock_tier_counts, threshold),
        )

        return ProductSnapshot(
            date=now,
            total_products=total_products,
            products_by_category=[CategoryStock(**row) for row in by_category],
            top_selling_products=[
                TopSellingProduct(
                    product_id=row["product_id"],
                    name=row["name"],
                    category=row["category"],
                    total_sold=row["total_sold"],
                    revenue=money(row["revenue"]),
                )
                for row in top_selling
            ],
            low_stock_count=low_stock,
            out_of_stock_count=out_of_stock,
            last_updated=utcnow(),
        )

    async def build_customers(self, now: Optional[datetime] = None) -> CustomerSnapshot:
        now = now or utcnow()
        windows = aggregations.time_windows(now)
        active_since = windows["day"] - timedelta(days=self.settings.ACTIVE_CUSTOMER_DAYS)

        (total, new_daily, new_weekly, new_monthly, new_yearly, active, top) = await asyncio.gather(
            self._query(aggregations.count_customers),
            self._query(aggregations.count_customers, since=windows["day"]),
            self._query(aggregations.count_customers, since=windows["week"]),
            self._query(aggregations.count_customers, since=windows["month"]),
            self._query(aggregations.count_customers, since=windows["year"]),
            self._query(aggregations.count_active_customers, active_since),
            self._query(aggregations.top_customers, self.settings.TOP_N),
        )

        retention = safe_ratio(active, total) * 100

        return CustomerSnapshot(
            date=now,
            total_customers=total,
            new_customers=WindowCounts(
                daily=new_daily,
                weekly=new_weekly,
                monthly=new_monthly,
                yearly=new_yearly,
            ),
            active_customers=active,
            top_customers=[
                TopCustomer(
                    customer_id=row["customer_id"],
                    name=row["name"],
                    email=row["email"],
                    total_spent=money(row["total_spent"]),
                    order_count=row["order_count"],
                )
                for row in top
            ],
            customer_retention_rate=money(retention),
            last_updated=utcnow(),
        )

    async def build_monthly(self, year: int, month: int) -> MonthlySalesRecord:
        start, end = month_bounds(year, month)

        revenue, by_category = await asyncio.gather(
            self._query(aggregations.revenue_in_window, since=start, until=end),
            self._query(aggregations.sales_by_category, since=start, until=end),
        )

        return MonthlySalesRecord(
            year=year,
            month=month,
            revenue=money(revenue.total),
            order_count=revenue.count,
            average_order_value=money(safe_ratio(revenue.total, revenue.count)),
            sales_by_category=[
                CategorySales(category=row["category"], amount=money(row["amount"]), count=row["count"])
                for row in by_category
            ],
        )
