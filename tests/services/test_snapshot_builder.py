from datetime import datetime, timedelta, timezone

import pytest

from backoffice.core.config import get_settings
from backoffice.services.stats.snapshot_builder import (
    SnapshotBuilder, money, month_bounds, previous_month, safe_ratio
)


@pytest.fixture
def builder(session_factory):
    return SnapshotBuilder(session_factory, get_settings())


def test_money_rounds_half_up():
    assert money("10.005") == 10.01
    assert money(None) == 0.0
    assert money(safe_ratio(10, 3)) == 3.33


def test_safe_ratio_with_zero_denominator():
    assert safe_ratio(100, 0) == 0


def test_previous_month_wraps_january():
    assert previous_month(datetime(2026, 1, 5, tzinfo=timezone.utc)) == (2025, 12)
    assert previous_month(datetime(2026, 7, 31, tzinfo=timezone.utc)) == (2026, 6)


def test_month_bounds_are_half_open():
    start, end = month_bounds(2025, 12)
    assert start == datetime(2025, 12, 1, tzinfo=timezone.utc)
    assert end == datetime(2026, 1, 1, tzinfo=timezone.utc)


async def test_sales_snapshot_with_no_orders(builder):
    """Test that an empty store produces zeros rather than errors"""
    snapshot = await builder.build_sales()

    assert snapshot.total_revenue == 0
    assert snapshot.average_order_value == 0
    assert snapshot.order_count.total == 0
    assert snapshot.sales_by_payment_method == []
    assert snapshot.sales_by_category == []


async def test_sales_snapshot_windows_nest(builder, seed):
    now = datetime.now(timezone.utc)
    await seed.order(total="100.00", created_at=now)
    await seed.order(total="40.00", created_at=now - timedelta(days=3))
    await seed.order(total="60.00", created_at=now - timedelta(days=20))
    await seed.order(total="200.00", created_at=now - timedelta(days=200))
    await seed.order(total="100.00", created_at=now - timedelta(days=400))
    await seed.order(total="999.00", status="Cancelled", created_at=now)

    snapshot = await builder.build_sales(now)

    assert snapshot.daily_revenue == 100
    assert snapshot.weekly_revenue == 140
    assert snapshot.monthly_revenue == 200
    assert snapshot.yearly_revenue == 400
    assert snapshot.total_revenue == 500
    assert snapshot.order_count.model_dump() == {
        "daily": 1, "weekly": 2, "monthly": 3, "yearly": 4, "total": 5
    }
    assert snapshot.daily_revenue <= snapshot.weekly_revenue <= snapshot.monthly_revenue
    assert snapshot.monthly_revenue <= snapshot.yearly_revenue <= snapshot.total_revenue
    assert snapshot.average_order_value == 100


async def test_sales_snapshot_average_matches_total(builder, seed):
    for total in ("10.00", "10.00", "13.37"):
        await seed.order(total=total, payment_method="card")

    snapshot = await builder.build_sales()

    assert snapshot.average_order_value == 11.12
    assert abs(snapshot.average_order_value * snapshot.order_count.total - snapshot.total_revenue) < 0.02
    assert snapshot.sales_by_payment_method[0].method == "card"
    assert snapshot.sales_by_payment_method[0].count == 3


async def test_product_snapshot_tiers(builder, seed):
    for stock in (0, 0, 5, 10, 25):
        await seed.product(name=f"Fabric {stock}", category="fabric", stock=stock)
    await seed.product(name="Buttons", category="notions", stock=200)

    snapshot = await builder.build_products()

    assert snapshot.total_products == 6
    assert snapshot.out_of_stock_count == 2
    assert snapshot.low_stock_count == 2
    assert sum(row.count for row in snapshot.products_by_category) == snapshot.total_products
    for row in snapshot.products_by_category:
        assert row.in_stock + row.low_stock + row.out_of_stock == row.count
    assert snapshot.top_selling_products == []


async def test_product_snapshot_top_sellers(builder, seed):
    dress = await seed.product(name="Dress", category="clothing")
    scarf = await seed.product(name="Scarf", category="accessory")
    await seed.order(total="130.00", items=[(dress, 2, "50.00"), (scarf, 1, "30.00")])
    await seed.order(total="50.00", items=[(dress, 1, "50.00")])

    snapshot = await builder.build_products()

    top = snapshot.top_selling_products
    assert [product.name for product in top] == ["Dress", "Scarf"]
    assert top[0].product_id == dress.id
    assert top[0].total_sold == 3
    assert top[0].revenue == 150


async def test_customer_snapshot(builder, seed):
    now = datetime.now(timezone.utc)
    ada = await seed.customer("Ada Lovelace", created_at=now)
    grace = await seed.customer("Grace Hopper", created_at=now - timedelta(days=100))
    await seed.customer("Alan Turing", created_at=now - timedelta(days=500))
    await seed.order(total="80.00", customer=ada, created_at=now)
    await seed.order(total="120.00", customer=grace, created_at=now - timedelta(days=90))

    snapshot = await builder.build_customers(now)

    assert snapshot.total_customers == 3
    assert snapshot.new_customers.model_dump() == {"daily": 1, "weekly": 1, "monthly": 1, "yearly": 2}
    assert snapshot.active_customers == 1
    assert snapshot.customer_retention_rate == 33.33
    assert [customer.name for customer in snapshot.top_customers] == ["Grace Hopper", "Ada Lovelace"]
    assert snapshot.top_customers[0].total_spent == 120


async def test_customer_snapshot_with_no_customers(builder):
    snapshot = await builder.build_customers()
    assert snapshot.total_customers == 0
    assert snapshot.customer_retention_rate == 0
    assert snapshot.top_customers == []


async def test_monthly_record_uses_month_boundaries(builder, seed):
    """Test that only orders inside the calendar month are counted"""
    dress = await seed.product(name="Dress", category="clothing")
    await seed.order(total="10.00", created_at=datetime(2026, 2, 1, tzinfo=timezone.utc),
                     items=[(dress, 1, "10.00")])
    await seed.order(total="30.00", created_at=datetime(2026, 2, 28, 23, 59, 59, tzinfo=timezone.utc))
    await seed.order(total="500.00", created_at=datetime(2026, 3, 1, tzinfo=timezone.utc))
    await seed.order(total="700.00", created_at=datetime(2026, 1, 31, 23, 59, 59, tzinfo=timezone.utc))
    await seed.order(total="900.00", status="Cancelled", created_at=datetime(2026, 2, 10, tzinfo=timezone.utc))

    record = await builder.build_monthly(2026, 2)

    assert (record.year, record.month) == (2026, 2)
    assert record.revenue == 40
    assert record.order_count == 2
    assert record.average_order_value == 20
    assert [(row.category, row.amount) for row in record.sales_by_category] == [("clothing", 10)]


async def test_monthly_record_for_empty_month(builder):
    record = await builder.build_monthly(2025, 12)
    assert record.revenue == 0
    assert record.order_count == 0
    assert record.average_order_value == 0
    assert record.sales_by_category == []
