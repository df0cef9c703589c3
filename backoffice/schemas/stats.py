from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Statistics documents are exchanged with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class WindowCounts(CamelModel):
    daily: int = 0
    weekly: int = 0
    monthly: int = 0
    yearly: int = 0


class OrderCounts(WindowCounts):
    total: int = 0


class PaymentMethodSales(CamelModel):
    method: Optional[str] = None
    amount: float = 0
    count: int = 0


class CategorySales(CamelModel):
    category: Optional[str] = None
    amount: float = 0
    count: int = 0


class CategoryStock(CamelModel):
    category: Optional[str] = None
    count: int = 0
    in_stock: int = 0
    low_stock: int = 0
    out_of_stock: int = 0


class TopSellingProduct(CamelModel):
    product_id: Optional[UUID] = None
    name: str
    category: Optional[str] = None
    total_sold: int = 0
    revenue: float = 0


class TopCustomer(CamelModel):
    customer_id: UUID
    name: str
    email: str
    total_spent: float = 0
    order_count: int = 0


class SalesSnapshot(CamelModel):
    date: datetime
    daily_revenue: float = 0
    weekly_revenue: float = 0
    monthly_revenue: float = 0
    yearly_revenue: float = 0
    total_revenue: float = 0
    order_count: OrderCounts = OrderCounts()
    average_order_value: float = 0
    sales_by_payment_method: List[PaymentMethodSales] = []
    sales_by_category: List[CategorySales] = []
    last_updated: datetime


class ProductSnapshot(CamelModel):
    date: datetime
    total_products: int = 0
    products_by_category: List[CategoryStock] = []
    top_selling_products: List[TopSellingProduct] = []
    low_stock_count: int = 0
    out_of_stock_count: int = 0
    last_updated: datetime


class CustomerSnapshot(CamelModel):
    date: datetime
    total_customers: int = 0
    new_customers: WindowCounts = WindowCounts()
    active_customers: int = 0
    top_customers: List[TopCustomer] = []
    customer_retention_rate: float = 0
    last_updated: datetime


class MonthlySalesRecord(CamelModel):
    year: int
    month: int
    revenue: float = 0
    order_count: int = 0
    average_order_value: float = 0
    sales_by_category: List[CategorySales] = []


SNAPSHOT_SCHEMAS = {
    "sales": SalesSnapshot,
    "products": ProductSnapshot,
    "customers": CustomerSnapshot,
}
