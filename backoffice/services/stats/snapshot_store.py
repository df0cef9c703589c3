"""Persistence of the latest statistics snapshots and the monthly history."""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import and_, or_, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db.models.stats import SNAPSHOT_CATEGORIES, MonthlySales, StatsSnapshot
from backoffice.schemas.stats import SNAPSHOT_SCHEMAS, CamelModel, MonthlySalesRecord
from backoffice.services.stats.aggregations import subtract_months

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; every stored timestamp is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _insert_for(db: AsyncSession, table):
    dialect = db.bind.dialect.name
    try:
        return _DIALECT_INSERTS[dialect](table)
    except KeyError:
        raise RuntimeError(f"Snapshot upsert is not supported on the '{dialect}' dialect")


def _check_category(category: str) -> None:
    if category not in SNAPSHOT_CATEGORIES:
        raise ValueError(f"Unknown statistics category: {category}")


def _snapshot_from_row(row: StatsSnapshot) -> CamelModel:
    schema = SNAPSHOT_SCHEMAS[row.category]
    return schema.model_validate({
        **row.data,
        "date": as_utc(row.date),
        "lastUpdated": as_utc(row.last_updated),
    })


async def upsert_snapshot(db: AsyncSession, category: str, snapshot: CamelModel) -> CamelModel:
    """Insert or replace the single snapshot row for a category.

    The category is the primary key, so the statement is an atomic
    INSERT ... ON CONFLICT (category) DO UPDATE.
    """
    _check_category(category)
    document = snapshot.to_document()
    document.pop("date", None)
    document.pop("lastUpdated", None)

    values = {
        "category": category,
        "date": snapshot.date,
        "last_updated": snapshot.last_updated,
        "data": document,
    }
    stmt = _insert_for(db, StatsSnapshot).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[StatsSnapshot.category],
        set_={
            "date": stmt.excluded.date,
            "last_updated": stmt.excluded.last_updated,
            "data": stmt.excluded.data,
        }
    )
    await db.execute(stmt)
    await db.commit()

    stored = await get_snapshot(db, category)
    logger.info(f"Stored {category} snapshot computed at {snapshot.date.isoformat()}")
    return stored


async def get_snapshot(db: AsyncSession, category: str) -> Optional[CamelModel]:
    _check_category(category)
    result = await db.execute(
        select(StatsSnapshot)
        .where(StatsSnapshot.category == category)
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one_or_none()
    if row is None:
        return None
    return _snapshot_from_row(row)


async def get_monthly(db: AsyncSession, year: int, month: int) -> Optional[MonthlySales]:
    result = await db.execute(
        select(MonthlySales).where(
            and_(
                MonthlySales.year == year,
                MonthlySales.month == month
            )
        )
    )
    return result.scalar_one_or_none()


async def create_monthly(db: AsyncSession, record: MonthlySalesRecord) -> Tuple[MonthlySales, bool]:
    """Create the record for (year, month) unless one exists.

    Returns (row, created). A concurrent writer that wins the unique
    (year, month) constraint turns this call into a read of its row.
    """
    row = MonthlySales(
        year=record.year,
        month=record.month,
        revenue=Decimal(str(record.revenue)),
        order_count=record.order_count,
        average_order_value=Decimal(str(record.average_order_value)),
        sales_by_category=[item.to_document() for item in record.sales_by_category],
    )
    db.add(row)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await get_monthly(db, record.year, record.month)
        if existing is None:
            raise
        logger.info(f"Monthly sales for {record.year}-{record.month:02d} already recorded")
        return existing, False

    await db.refresh(row)
    logger.info(f"Recorded monthly sales for {record.year}-{record.month:02d}")
    return row, True


async def list_monthly_history(db: AsyncSession, now: datetime, months: int = 12) -> List[MonthlySales]:
    """Records for `now`'s month and the months-1 before it, oldest first."""
    oldest = subtract_months(now.replace(day=1), months - 1)
    query = select(MonthlySales).where(
        or_(
            MonthlySales.year > oldest.year,
            and_(MonthlySales.year == oldest.year, MonthlySales.month >= oldest.month)
        ),
        or_(
            MonthlySales.year < now.year,
            and_(MonthlySales.year == now.year, MonthlySales.month <= now.month)
        )
    ).order_by(MonthlySales.year, MonthlySales.month)

    result = await db.execute(query)
    return list(result.scalars().all())
