import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from backoffice.core.config import Settings, get_settings
from backoffice.core.errors import ValidationFailedError
from backoffice.db.models.stats import MonthlySales
from backoffice.schemas.stats import (
    CustomerSnapshot, MonthlySalesRecord, ProductSnapshot, SalesSnapshot
)
from backoffice.services.stats import snapshot_store
from backoffice.services.stats.snapshot_builder import SnapshotBuilder, previous_month, utcnow

logger = logging.getLogger(__name__)

OPERATION_SUCCESS = "success"
OPERATION_FAILED = "failed"


@dataclass
class MonthlyRefreshResult:
    record: MonthlySalesRecord
    created: bool


@dataclass
class RefreshAllResult:
    sales: SalesSnapshot
    products: ProductSnapshot
    customers: CustomerSnapshot
    monthly: Optional[MonthlyRefreshResult] = None
    operations: Dict[str, str] = field(default_factory=dict)

    @property
    def fully_succeeded(self) -> bool:
        return all(outcome == OPERATION_SUCCESS for outcome in self.operations.values())


class StatsService:
    """Refreshes and serves the stored dashboard statistics.

    Reads never recompute; refreshes recompute one category and replace its
    stored snapshot.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        settings: Optional[Settings] = None,
        builder: Optional[SnapshotBuilder] = None
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.builder = builder or SnapshotBuilder(session_factory, self.settings)

    async def get_dashboard_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Latest stored snapshots plus the trailing monthly history.

        Categories that were never refreshed come back as None / [].
        """
        now = now or utcnow()

        async def _fetch(category: str):
            async with self.session_factory() as db:
                return await snapshot_store.get_snapshot(db, category)

        async def _history():
            async with self.session_factory() as db:
                return await snapshot_store.list_monthly_history(
                    db, now, self.settings.MONTHLY_HISTORY_MONTHS
                )

        sales, products, customers, history = await asyncio.gather(
            _fetch("sales"), _fetch("products"), _fetch("customers"), _history()
        )
        return {
            "sales": sales,
            "products": products,
            "customers": customers,
            "monthly_sales": [MonthlySalesRecord.model_validate(row) for row in history],
        }

    async def _store(self, category: str, snapshot):
        async with self.session_factory() as db:
            return await snapshot_store.upsert_snapshot(db, category, snapshot)

    async def refresh_sales(self, now: Optional[datetime] = None) -> SalesSnapshot:
        logger.info("Refreshing sales statistics")
        snapshot = await self.builder.build_sales(now)
        return await self._store("sales", snapshot)

    async def refresh_products(self, now: Optional[datetime] = None) -> ProductSnapshot:
        logger.info("Refreshing product statistics")
        snapshot = await self.builder.build_products(now)
        return await self._store("products", snapshot)

    async def refresh_customers(self, now: Optional[datetime] = None) -> CustomerSnapshot:
        logger.info("Refreshing customer statistics")
        snapshot = await self.builder.build_customers(now)
        return await self._store("customers", snapshot)

    async def refresh_monthly(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> MonthlyRefreshResult:
        """Record a completed month's sales once.

        Defaults to the previous calendar month. An existing record for the
        target month is returned unchanged.
        """
        now = now or utcnow()
        if (year is None) != (month is None):
            raise ValidationFailedError("Provide both year and month, or neither")
        if year is None:
            year, month = previous_month(now)
        if not 1 <= month <= 12:
            raise ValidationFailedError("Month must be between 1 and 12")
        if (year, month) >= (now.year, now.month):
            raise ValidationFailedError("Monthly sales can only be recorded for a completed month")

        async with self.session_factory() as db:
            existing: Optional[MonthlySales] = await snapshot_store.get_monthly(db, year, month)
        if existing is not None:
            logger.info(f"Monthly sales for {year}-{month:02d} already exist, skipping")
            return MonthlyRefreshResult(record=MonthlySalesRecord.model_validate(existing), created=False)

        record = await self.builder.build_monthly(year, month)
        async with self.session_factory() as db:
            row, created = await snapshot_store.create_monthly(db, record)
        return MonthlyRefreshResult(record=MonthlySalesRecord.model_validate(row), created=created)

    async def refresh_all(self, now: Optional[datetime] = None) -> RefreshAllResult:
        """Refresh the three core categories concurrently, then the monthly history best-effort.

        A core failure propagates. A monthly failure is logged and reported in
        `operations` only.
        """
        now = now or utcnow()
        sales, products, customers = await asyncio.gather(
            self.refresh_sales(now),
            self.refresh_products(now),
            self.refresh_customers(now),
        )
        result = RefreshAllResult(
            sales=sales,
            products=products,
            customers=customers,
            operations={
                "sales": OPERATION_SUCCESS,
                "products": OPERATION_SUCCESS,
                "customers": OPERATION_SUCCESS,
            },
        )

        try:
            result.monthly = await self.refresh_monthly(now=now)
            result.operations["monthlySales"] = OPERATION_SUCCESS
        except Exception as e:
            logger.error(f"Error updating monthly sales: {e}", exc_info=True)
            result.operations["monthlySales"] = OPERATION_FAILED

        return result
