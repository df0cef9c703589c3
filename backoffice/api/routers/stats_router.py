from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import async_sessionmaker

from backoffice.core.auth import require_admin
from backoffice.db.base import get_session_factory
from backoffice.services.stats import StatsService

router = APIRouter(dependencies=[Depends(require_admin)])


def get_stats_service(session_factory: async_sessionmaker = Depends(get_session_factory)) -> StatsService:
    return StatsService(session_factory)


def _document(snapshot) -> Dict[str, Any]:
    return snapshot.to_document() if snapshot is not None else {}


@router.get("/dashboard-stats", response_model=Dict[str, Any])
async def get_dashboard_stats(service: StatsService = Depends(get_stats_service)):
    """
    Latest stored statistics; never recomputes.
    """
    stats = await service.get_dashboard_stats()
    return {
        "status": "success",
        "data": {
            "sales": _document(stats["sales"]),
            "products": _document(stats["products"]),
            "customers": _document(stats["customers"]),
            "monthlySales": [record.to_document() for record in stats["monthly_sales"]],
        }
    }


@router.post("/dashboard-stats/sales", response_model=Dict[str, Any])
async def update_sales_stats(service: StatsService = Depends(get_stats_service)):
    sales_stats = await service.refresh_sales()
    return {"status": "success", "data": {"salesStats": sales_stats.to_document()}}


@router.post("/dashboard-stats/products", response_model=Dict[str, Any])
async def update_product_stats(service: StatsService = Depends(get_stats_service)):
    product_stats = await service.refresh_products()
    return {"status": "success", "data": {"productStats": product_stats.to_document()}}


@router.post("/dashboard-stats/customers", response_model=Dict[str, Any])
async def update_customer_stats(service: StatsService = Depends(get_stats_service)):
    customer_stats = await service.refresh_customers()
    return {"status": "success", "data": {"customerStats": customer_stats.to_document()}}


@router.post("/dashboard-stats/monthly-sales", response_model=Dict[str, Any])
async def update_monthly_sales(
    response: Response,
    year: Optional[int] = Query(None, ge=1970),
    month: Optional[int] = Query(None, ge=1, le=12),
    service: StatsService = Depends(get_stats_service)
):
    """
    Record the previous month's sales (or the given completed month) once.
    """
    result = await service.refresh_monthly(year=year, month=month)
    body = {"status": "success", "data": {"monthlySales": result.record.to_document()}}
    if result.created:
        response.status_code = status.HTTP_201_CREATED
    else:
        body["message"] = f"Monthly sales record already exists for {result.record.year}-{result.record.month:02d}"
    return body


@router.post("/dashboard-stats/update-all", response_model=Dict[str, Any])
async def update_all_stats(service: StatsService = Depends(get_stats_service)):
    """
    Refresh every category. The core three must succeed; monthly sales is best-effort
    and its outcome is reported under `operations`.
    """
    result = await service.refresh_all()
    if result.fully_succeeded:
        message = "All dashboard statistics updated successfully"
    else:
        message = "Dashboard statistics updated; monthly sales could not be recorded"
    return {
        "status": "success",
        "partial": not result.fully_succeeded,
        "message": message,
        "data": {
            "salesStats": result.sales.to_document(),
            "productStats": result.products.to_document(),
            "customerStats": result.customers.to_document(),
        },
        "operations": result.operations,
    }
