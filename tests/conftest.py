import os

# Settings are read once at import time; point them at a throwaway database first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./backoffice-test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "production")

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from backoffice.core.security import create_access_token, hash_password
from backoffice.db.base import Base, get_db, get_session_factory
from backoffice.db.models import Admin, Customer, Order, OrderItem, Product
from backoffice.server import app


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite so concurrent sessions each get their own connection"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """HTTP client wired to the test database"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.fixture
async def admin(db):
    admin = Admin(name="Test Admin", email="admin@example.com",
                  hashed_password=hash_password("correct-horse"), role="admin", active=True)
    db.add(admin)
    await db.commit()
    await db.refresh(admin)
    return admin


@pytest.fixture
def auth_headers(admin):
    token = create_access_token({"sub": str(admin.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seed(db):
    """Helpers that insert source records and return them"""

    class Seeder:
        async def customer(self, fullname="Ada Lovelace", email=None, created_at=None):
            customer = Customer(
                fullname=fullname,
                email=email or f"{fullname.lower().replace(' ', '.')}@example.com",
                created_at=created_at or datetime.now(timezone.utc),
            )
            db.add(customer)
            await db.commit()
            return customer

        async def product(self, name="Ankara Dress", category="clothing", stock=20, price="50.00"):
            product = Product(name=name, category=category, stock=stock, price=Decimal(price))
            db.add(product)
            await db.commit()
            return product

        async def order(self, total="100.00", status="paid", payment_method="card",
                        customer=None, created_at=None, items=()):
            order = Order(
                total=Decimal(total),
                status=status,
                payment_method=payment_method,
                customer_id=customer.id if customer is not None else None,
                created_at=created_at or datetime.now(timezone.utc),
            )
            for product, quantity, price in items:
                order.items.append(OrderItem(
                    product_id=product.id if product is not None else None,
                    quantity=quantity,
                    price=Decimal(price),
                ))
            db.add(order)
            await db.commit()
            return order

    return Seeder()
