from datetime import datetime, timedelta, timezone


async def test_live_sales_for_a_range(client, auth_headers, seed):
    await seed.order(total="10.00", payment_method="card", created_at=datetime(2026, 1, 10, tzinfo=timezone.utc))
    await seed.order(total="30.00", payment_method="cash", created_at=datetime(2026, 2, 10, tzinfo=timezone.utc))
    await seed.order(total="99.00", status="Cancelled", created_at=datetime(2026, 2, 11, tzinfo=timezone.utc))
    await seed.order(total="70.00", created_at=datetime(2026, 5, 1, tzinfo=timezone.utc))

    response = await client.get(
        "/api/dashboard/sales",
        params={"startDate": "2026-01-01T00:00:00Z", "endDate": "2026-02-28T23:59:59Z"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["monthlySales"] == [
        {"year": 2026, "month": 1, "totalSales": 10.0, "count": 1},
        {"year": 2026, "month": 2, "totalSales": 30.0, "count": 1},
    ]
    assert data["totalSales"] == {"totalSales": 40.0, "count": 2}


async def test_live_sales_rejects_inverted_range(client, auth_headers):
    response = await client.get(
        "/api/dashboard/sales",
        params={"startDate": "2026-03-01T00:00:00Z", "endDate": "2026-01-01T00:00:00Z"},
        headers=auth_headers,
    )
    assert response.status_code == 400


async def test_live_products(client, auth_headers, seed):
    await seed.product(name="Dress", category="clothing", stock=0)
    await seed.product(name="Coat", category="clothing", stock=50)

    response = await client.get("/api/dashboard/products", headers=auth_headers)
    data = response.json()["data"]
    assert data["outOfStockCount"] == 1
    assert [product["name"] for product in data["lowStockProducts"]] == ["Dress"]


async def test_live_orders(client, auth_headers, seed):
    await seed.order(total="10.00", status="paid")
    await seed.order(total="30.00", status="paid")
    await seed.order(total="50.00", status="Cancelled")

    response = await client.get("/api/dashboard/orders", headers=auth_headers)
    data = response.json()["data"]
    statuses = {row["status"]: row["count"] for row in data["ordersByStatus"]}
    assert statuses == {"paid": 2, "Cancelled": 1}
    assert data["averageOrderValue"] == 20


async def test_recent_orders(client, auth_headers, seed):
    ada = await seed.customer("Ada Lovelace")
    now = datetime.now(timezone.utc)
    await seed.order(total="10.00", customer=ada, created_at=now - timedelta(days=2))
    await seed.order(total="20.00", created_at=now)

    response = await client.get("/api/dashboard/recent-orders", params={"limit": 1}, headers=auth_headers)
    body = response.json()
    assert body["results"] == 1
    assert body["data"]["orders"][0]["total"] == 20
    assert body["data"]["orders"][0]["customer"] is None


async def test_top_products_keep_deleted_items(client, auth_headers, seed):
    dress = await seed.product(name="Dress", category="clothing")
    await seed.order(total="60.00", items=[(dress, 1, "50.00"), (None, 10, "1.00")])

    response = await client.get("/api/dashboard/top-products", headers=auth_headers)
    products = response.json()["data"]["products"]
    assert products[0] == {
        "productId": None,
        "name": "Deleted product",
        "category": None,
        "totalSold": 10,
        "revenue": 10.0,
    }
    assert products[1]["name"] == "Dress"


async def test_live_dashboard_requires_auth(client):
    response = await client.get("/api/dashboard/orders")
    assert response.status_code == 401


async def test_live_sales_accepts_mixed_offset_bounds(client, auth_headers, seed):
    """Test that a bound without an offset is read as UTC"""
    await seed.order(total="10.00", created_at=datetime(2026, 1, 10, tzinfo=timezone.utc))

    response = await client.get(
        "/api/dashboard/sales",
        params={"startDate": "2026-01-01T00:00:00Z", "endDate": "2026-02-28T23:59:59"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["totalSales"] == {"totalSales": 10.0, "count": 1}

    response = await client.get(
        "/api/dashboard/sales",
        params={"startDate": "2026-03-01T00:00:00", "endDate": "2026-01-01T00:00:00Z"},
        headers=auth_headers,
    )
    assert response.status_code == 400


async def test_live_payment_methods_follow_the_range(client, auth_headers, seed):
    await seed.order(total="10.00", payment_method="card", created_at=datetime(2026, 1, 10, tzinfo=timezone.utc))
    await seed.order(total="500.00", payment_method="cash", created_at=datetime(2020, 6, 1, tzinfo=timezone.utc))

    response = await client.get(
        "/api/dashboard/sales",
        params={"startDate": "2026-01-01T00:00:00Z", "endDate": "2026-02-28T23:59:59Z"},
        headers=auth_headers,
    )
    data = response.json()["data"]
    assert data["salesByPaymentMethod"] == [{"paymentMethod": "card", "totalSales": 10.0, "count": 1}]
    assert sum(row["totalSales"] for row in data["salesByPaymentMethod"]) == data["totalSales"]["totalSales"]


async def test_live_customers(client, auth_headers, seed):
    now = datetime.now(timezone.utc)
    ada = await seed.customer("Ada Lovelace", created_at=now)
    grace = await seed.customer("Grace Hopper", created_at=now - timedelta(days=100))
    await seed.order(total="300.00", customer=grace)
    await seed.order(total="50.00", customer=ada)
    await seed.order(total="70.00", customer=ada, status="Cancelled")

    response = await client.get("/api/dashboard/customers", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalCustomers"] == 2
    assert data["newCustomers"] == 1
    assert data["customersWithOrders"] == [
        {"customerId": str(grace.id), "name": "Grace Hopper", "email": "grace.hopper@example.com",
         "orderCount": 1, "totalSpent": 300.0},
        {"customerId": str(ada.id), "name": "Ada Lovelace", "email": "ada.lovelace@example.com",
         "orderCount": 1, "totalSpent": 50.0},
    ]
