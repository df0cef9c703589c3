"""Read-only rollups over the order, product and customer tables.

Every function takes an open session and returns plain values or lists of
dicts. Empty tables produce zeros and empty lists; database errors propagate.
"""
import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, case, desc, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db.models.customer import Customer
from backoffice.db.models.order import CANCELLED_STATUS, Order
from backoffice.db.models.order_item import OrderItem
from backoffice.db.models.product import Product

DELETED_PRODUCT_NAME = "Deleted product"


@dataclass
class RevenueTotal:
    total: Decimal = Decimal("0")
    count: int = 0


def start_of_day(now: datetime) -> datetime:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def subtract_months(moment: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day to the target month's length."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def time_windows(now: datetime) -> Dict[str, datetime]:
    """Lower bounds of the trailing day/week/month/year windows, anchored at the start of today (UTC)."""
    today = start_of_day(now)
    return {
        "day": today,
        "week": today - timedelta(days=7),
        "month": subtract_months(today, 1),
        "year": subtract_months(today, 12),
    }


def _created_between(column, since: Optional[datetime], until: Optional[datetime]) -> list:
    conditions = []
    if since is not None:
        conditions.append(column >= since)
    if until is not None:
        conditions.append(column < until)
    return conditions


def _revenue_filter(since: Optional[datetime] = None, until: Optional[datetime] = None):
    return and_(Order.status != CANCELLED_STATUS, *_created_between(Order.created_at, since, until))


async def revenue_in_window(
    db: AsyncSession,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None
) -> RevenueTotal:
    """Sum and count of non-cancelled orders created in [since, until)."""
    query = select(
        func.coalesce(func.sum(Order.total), 0).label("total"),
        func.count(Order.id).label("count")
    ).where(_revenue_filter(since, until))

    result = await db.execute(query)
    row = result.one()
    return RevenueTotal(total=Decimal(str(row.total or 0)), count=row.count or 0)


async def sales_by_payment_method(db: AsyncSession) -> List[dict]:
    query = select(
        Order.payment_method.label("method"),
        func.sum(Order.total).label("amount"),
        func.count(Order.id).label("count")
    ).where(
        _revenue_filter()
    ).group_by(Order.payment_method)

    result = await db.execute(query)
    return [
        {"method": row.method, "amount": row.amount or 0, "count": row.count}
        for row in result.all()
    ]


async def sales_by_category(
    db: AsyncSession,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None
) -> List[dict]:
    """Line-item revenue and units per product category.

    Items whose product no longer exists are dropped by the inner join.
    """
    query = select(
        Product.category.label("category"),
        func.sum(OrderItem.price * OrderItem.quantity).label("amount"),
        func.sum(OrderItem.quantity).label("count")
    ).select_from(
        OrderItem
    ).join(
        Order, OrderItem.order_id == Order.id
    ).join(
        Product, OrderItem.product_id == Product.id
    ).where(
        _revenue_filter(since, until)
    ).group_by(Product.category)

    result = await db.execute(query)
    return [
        {"category": row.category, "amount": row.amount or 0, "count": row.count or 0}
        for row in result.all()
    ]


async def count_products(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Product.id)))
    return result.scalar() or 0


async def products_by_category(db: AsyncSession, low_stock_threshold: int) -> List[dict]:
    # Tiers: out of stock (0), low stock (1..threshold), in stock (> threshold)
    query = select(
        Product.category.label("category"),
        func.count(Product.id).label("count"),
        func.sum(case((Product.stock > low_stock_threshold, 1), else_=0)).label("in_stock"),
        func.sum(
            case((and_(Product.stock > 0, Product.stock <= low_stock_threshold), 1), else_=0)
        ).label("low_stock"),
        func.sum(case((Product.stock == 0, 1), else_=0)).label("out_of_stock")
    ).group_by(Product.category)

    result = await db.execute(query)
    return [
        {
            "category": row.category,
            "count": row.count,
            "in_stock": row.in_stock or 0,
            "low_stock": row.low_stock or 0,
            "out_of_stock": row.out_of_stock or 0,
        }
        for row in result.all()
    ]


async def stock_tier_counts(db: AsyncSession, low_stock_threshold: int) -> Tuple[int, int]:
    """Return (low_stock_count, out_of_stock_count)."""
    query = select(
        func.coalesce(
            func.sum(case((and_(Product.stock > 0, Product.stock <= low_stock_threshold), 1), else_=0)), 0
        ).label("low_stock"),
        func.coalesce(func.sum(case((Product.stock == 0, 1), else_=0)), 0).label("out_of_stock")
    )
    result = await db.execute(query)
    row = result.one()
    return int(row.low_stock or 0), int(row.out_of_stock or 0)


async def top_selling_products(db: AsyncSession, limit: int, keep_deleted: bool = False) -> List[dict]:
    """Products ranked by units sold in non-cancelled orders.

    With keep_deleted=False sold items whose product row is gone are dropped;
    with keep_deleted=True they are grouped under a placeholder entry.
    """
    total_sold = func.sum(OrderItem.quantity).label("total_sold")
    query = select(
        OrderItem.product_id.label("product_id"),
        Product.name.label("name"),
        Product.category.label("category"),
        total_sold,
        func.sum(OrderItem.price * OrderItem.quantity).label("revenue")
    ).select_from(
        OrderItem
    ).join(
        Order, OrderItem.order_id == Order.id
    ).join(
        Product, OrderItem.product_id == Product.id, isouter=keep_deleted
    ).where(
        Order.status != CANCELLED_STATUS
    ).group_by(
        OrderItem.product_id, Product.name, Product.category
    ).order_by(
        desc("total_sold")
    ).limit(limit)

    result = await db.execute(query)
    return [
        {
            "product_id": row.product_id if row.name is not None else None,
            "name": row.name if row.name is not None else DELETED_PRODUCT_NAME,
            "category": row.category,
            "total_sold": row.total_sold or 0,
            "revenue": row.revenue or 0,
        }
        for row in result.all()
    ]


async def count_customers(db: AsyncSession, since: Optional[datetime] = None) -> int:
    query = select(func.count(Customer.id))
    if since is not None:
        query = query.where(Customer.created_at >= since)
    result = await db.execute(query)
    return result.scalar() or 0


async def count_active_customers(db: AsyncSession, since: datetime) -> int:
    """Distinct customers with at least one order (any status) since the bound."""
    query = select(func.count(distinct(Order.customer_id))).where(
        and_(
            Order.created_at >= since,
            Order.customer_id.is_not(None)
        )
    )
    result = await db.execute(query)
    return result.scalar() or 0


async def top_customers(db: AsyncSession, limit: int) -> List[dict]:
    total_spent = func.sum(Order.total).label("total_spent")
    query = select(
        Order.customer_id.label("customer_id"),
        Customer.fullname.label("name"),
        Customer.email.label("email"),
        total_spent,
        func.count(Order.id).label("order_count")
    ).join(
        Customer, Order.customer_id == Customer.id
    ).where(
        Order.status != CANCELLED_STATUS
    ).group_by(
        Order.customer_id, Customer.fullname, Customer.email
    ).order_by(
        desc("total_spent")
    ).limit(limit)

    result = await db.execute(query)
    return [
        {
            "customer_id": row.customer_id,
            "name": row.name,
            "email": row.email,
            "total_spent": row.total_spent or 0,
            "order_count": row.order_count,
        }
        for row in result.all()
    ]
