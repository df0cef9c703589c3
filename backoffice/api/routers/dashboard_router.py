from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.auth import require_admin
from backoffice.core.config import get_settings
from backoffice.core.errors import ValidationFailedError
from backoffice.db.base import get_db
from backoffice.services.dashboard_service import DashboardService
from backoffice.services.stats import aggregations
from backoffice.services.stats.snapshot_builder import money
from backoffice.services.stats.snapshot_store import as_utc

router = APIRouter(dependencies=[Depends(require_admin)])
settings = get_settings()


@router.get("/dashboard/sales", response_model=Dict[str, Any])
async def get_sales_stats(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db)
):
    """
    Live sales figures for a date range (default: the last six months).
    """
    start_date, end_date = as_utc(start_date), as_utc(end_date)
    if start_date and end_date:
        if start_date > end_date:
            raise ValidationFailedError("startDate must not be after endDate")
    else:
        start_date = aggregations.subtract_months(datetime.now(timezone.utc), 6)
        end_date = None

    monthly_sales = await DashboardService.get_monthly_sales(db, start_date, end_date)
    total_sales = await DashboardService.get_total_sales(db, start_date, end_date)
    by_method = await DashboardService.get_sales_by_payment_method(db, start_date, end_date)

    return {
        "status": "success",
        "data": {
            "monthlySales": monthly_sales,
            "totalSales": {"totalSales": money(total_sales.total), "count": total_sales.count},
            "salesByPaymentMethod": [
                {"paymentMethod": row["method"], "totalSales": money(row["amount"]), "count": row["count"]}
                for row in by_method
            ],
        }
    }


@router.get("/dashboard/products", response_model=Dict[str, Any])
async def get_product_stats(db: AsyncSession = Depends(get_db)):
    threshold = settings.LOW_STOCK_THRESHOLD
    by_category = await aggregations.products_by_category(db, threshold)
    low_stock_products = await DashboardService.get_low_stock_products(db, threshold)
    _, out_of_stock_count = await aggregations.stock_tier_counts(db, threshold)

    return {
        "status": "success",
        "data": {
            "productsByCategory": [
                {
                    "category": row["category"],
                    "count": row["count"],
                    "inStock": row["in_stock"],
                    "lowStock": row["low_stock"],
                    "outOfStock": row["out_of_stock"],
                }
                for row in by_category
            ],
            "lowStockProducts": low_stock_products,
            "outOfStockCount": out_of_stock_count,
        }
    }


@router.get("/dashboard/customers", response_model=Dict[str, Any])
async def get_customer_stats(db: AsyncSession = Depends(get_db)):
    """
    Customer totals, sign-ups over the last 30 days and the top spenders.
    """
    since = datetime.now(timezone.utc) - timedelta(days=30)
    total_customers = await aggregations.count_customers(db)
    new_customers = await aggregations.count_customers(db, since=since)
    top = await aggregations.top_customers(db, settings.TOP_N)

    return {
        "status": "success",
        "data": {
            "totalCustomers": total_customers,
            "newCustomers": new_customers,
            "customersWithOrders": [
                {
                    "customerId": str(row["customer_id"]),
                    "name": row["name"],
                    "email": row["email"],
                    "orderCount": row["order_count"],
                    "totalSpent": money(row["total_spent"]),
                }
                for row in top
            ],
        }
    }


@router.get("/dashboard/orders", response_model=Dict[str, Any])
async def get_order_stats(db: AsyncSession = Depends(get_db)):
    orders_by_status = await DashboardService.get_orders_by_status(db)
    average_order_value = await DashboardService.get_average_order_value(db)
    return {
        "status": "success",
        "data": {
            "ordersByStatus": orders_by_status,
            "averageOrderValue": money(average_order_value),
        }
    }


@router.get("/dashboard/recent-orders", response_model=Dict[str, Any])
async def get_recent_orders(
    limit: int = Query(5, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    orders = await DashboardService.get_recent_orders(db, limit)
    return {
        "status": "success",
        "results": len(orders),
        "data": {"orders": orders},
    }


@router.get("/dashboard/top-products", response_model=Dict[str, Any])
async def get_top_selling_products(
    limit: int = Query(5, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """
    Best sellers by units. Products deleted since the sale are kept under a placeholder name.
    """
    products = await aggregations.top_selling_products(db, limit, keep_deleted=True)
    return {
        "status": "success",
        "results": len(products),
        "data": {
            "products": [
                {
                    "productId": str(row["product_id"]) if row["product_id"] else None,
                    "name": row["name"],
                    "category": row["category"],
                    "totalSold": row["total_sold"],
                    "revenue": money(row["revenue"]),
                }
                for row in products
            ]
        }
    }
