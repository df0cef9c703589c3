from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import and_, desc, extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.db.models.order import CANCELLED_STATUS, Order
from backoffice.db.models.product import Product
from backoffice.services.stats.aggregations import RevenueTotal


class DashboardService:
    """Live (uncached) aggregates for the dashboard's ad-hoc widgets."""

    @staticmethod
    async def get_monthly_sales(
        db: AsyncSession,
        start_date: datetime,
        end_date: Optional[datetime] = None
    ) -> List[Dict]:
        """Non-cancelled revenue grouped by calendar month, oldest first.

        Args:
            db: Database session
            start_date: Inclusive lower bound on order creation
            end_date: Inclusive upper bound, or None for no bound

        Returns:
            List of dicts with year, month, totalSales and count
        """
        year = extract("year", Order.created_at).label("year")
        month = extract("month", Order.created_at).label("month")
        conditions = [Order.status != CANCELLED_STATUS, Order.created_at >= start_date]
        if end_date is not None:
            conditions.append(Order.created_at <= end_date)

        query = select(
            year,
            month,
            func.sum(Order.total).label("total_sales"),
            func.count(Order.id).label("count")
        ).where(
            and_(*conditions)
        ).group_by(year, month).order_by(year, month)

        result = await db.execute(query)
        return [
            {
                "year": int(row.year),
                "month": int(row.month),
                "totalSales": float(row.total_sales or 0),
                "count": row.count,
            }
            for row in result.all()
        ]

    @staticmethod
    async def get_total_sales(
        db: AsyncSession,
        start_date: datetime,
        end_date: Optional[datetime] = None
    ) -> RevenueTotal:
        conditions = [Order.status != CANCELLED_STATUS, Order.created_at >= start_date]
        if end_date is not None:
            conditions.append(Order.created_at <= end_date)

        query = select(
            func.coalesce(func.sum(Order.total), 0).label("total"),
            func.count(Order.id).label("count")
        ).where(and_(*conditions))

        result = await db.execute(query)
        row = result.one()
        return RevenueTotal(total=Decimal(str(row.total or 0)), count=row.count or 0)

    @staticmethod
    async def get_sales_by_payment_method(
        db: AsyncSession,
        start_date: datetime,
        end_date: Optional[datetime] = None
    ) -> List[Dict]:
        conditions = [Order.status != CANCELLED_STATUS, Order.created_at >= start_date]
        if end_date is not None:
            conditions.append(Order.created_at <= end_date)

        query = select(
            Order.payment_method.label("method"),
            func.sum(Order.total).label("amount"),
            func.count(Order.id).label("count")
        ).where(
            and_(*conditions)
        ).group_by(Order.payment_method)

        result = await db.execute(query)
        return [
            {"method": row.method, "amount": row.amount or 0, "count": row.count}
            for row in result.all()
        ]

    @staticmethod
    async def get_low_stock_products(db: AsyncSession, threshold: int, limit: int = 10) -> List[Dict]:
        query = select(Product).where(
            Product.stock <= threshold
        ).order_by(Product.stock).limit(limit)

        result = await db.execute(query)
        return [
            {
                "id": str(product.id),
                "name": product.name,
                "category": product.category,
                "stock": product.stock,
                "price": float(product.price),
            }
            for product in result.scalars().all()
        ]

    @staticmethod
    async def get_orders_by_status(db: AsyncSession) -> List[Dict]:
        query = select(
            Order.status,
            func.count(Order.id).label("count"),
            func.sum(Order.total).label("total_sales")
        ).group_by(Order.status)

        result = await db.execute(query)
        return [
            {"status": row.status, "count": row.count, "totalSales": float(row.total_sales or 0)}
            for row in result.all()
        ]

    @staticmethod
    async def get_average_order_value(db: AsyncSession) -> float:
        query = select(func.avg(Order.total)).where(Order.status != CANCELLED_STATUS)
        result = await db.execute(query)
        average = result.scalar()
        return float(average) if average is not None else 0.0

    @staticmethod
    async def get_recent_orders(db: AsyncSession, limit: int = 5) -> List[Dict]:
        query = select(Order).options(
            selectinload(Order.customer)
        ).order_by(desc(Order.created_at)).limit(limit)

        result = await db.execute(query)
        orders = []
        for order in result.scalars().all():
            customer = None
            if order.customer is not None:
                customer = {
                    "id": str(order.customer.id),
                    "fullname": order.customer.fullname,
                    "email": order.customer.email,
                }
            orders.append({
                "id": str(order.id),
                "total": float(order.total),
                "status": order.status,
                "paymentMethod": order.payment_method,
                "createdAt": order.created_at.isoformat() if order.created_at else None,
                "customer": customer,
            })
        return orders
