import uuid
from sqlalchemy import (CheckConstraint, Column, DateTime, Integer, JSON, Numeric, String,
                        UniqueConstraint, Uuid, func)
from sqlalchemy.dialects.postgresql import JSONB

from backoffice.db.base import Base

SNAPSHOT_CATEGORIES = ("sales", "products", "customers")

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class StatsSnapshot(Base):
    """Latest computed statistics document, one row per category."""
    __tablename__ = "stats_snapshots"

    category = Column(String(20), primary_key=True)
    date = Column(DateTime(timezone=True), nullable=False)
    last_updated = Column(DateTime(timezone=True), nullable=False)
    data = Column(JSONDocument, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "category IN ('sales', 'products', 'customers')",
            name="ck_stats_snapshots_category",
        ),
    )

    def __repr__(self):
        return f"<StatsSnapshot(category={self.category}, last_updated={self.last_updated})>"


class MonthlySales(Base):
    """Closed-month sales history. Written once per (year, month)."""
    __tablename__ = "monthly_sales"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    revenue = Column(Numeric(14, 2), nullable=False, default=0)
    order_count = Column(Integer, nullable=False, default=0)
    average_order_value = Column(Numeric(14, 2), nullable=False, default=0)
    sales_by_category = Column(JSONDocument, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("year", "month", name="uq_monthly_sales_year_month"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_monthly_sales_month"),
    )

    def __repr__(self):
        return f"<MonthlySales(year={self.year}, month={self.month}, revenue={self.revenue})>"
