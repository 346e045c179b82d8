"""
Test Configuration — Fixtures for a fixed clock, snapshot builders, and async DB.

Engines run against a frozen "now" so window, recency and forecast dates are
deterministic. SQL repository tests get a fresh in-memory aiosqlite database
per test.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from analytics.transactions import LineItem, SalesTransaction
from core.clock import days_to_ms, fixed_clock
from db.session import Base
from inventory.models import InventoryItem

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# 2025-06-15T12:00:00Z
NOW_MS = 1_749_988_800_000


class StubRandom:
    """Random source returning a constant, or cycling through a list of values."""

    def __init__(self, *values: float):
        self.values = list(values) or [1.0]
        self.calls: list[tuple[float, float]] = []

    def uniform(self, low: float, high: float) -> float:
        self.calls.append((low, high))
        return self.values[(len(self.calls) - 1) % len(self.values)]


@pytest.fixture
def now_ms():
    return NOW_MS


@pytest.fixture
def clock():
    return fixed_clock(NOW_MS)


@pytest.fixture
def stub_rng():
    """Factory: ``stub_rng(1.0)`` or ``stub_rng(0.8, 1.2)``."""
    return StubRandom


@pytest.fixture
def make_line():
    def _make(
        product_id: str = "p1",
        quantity: int = 1,
        unit_price: float = 10.0,
        category: str = "flower",
        cost: float = 4.0,
        product_name: str | None = None,
        total_price: float | None = None,
    ) -> LineItem:
        return LineItem(
            product_id=product_id,
            product_name=product_name or f"Product {product_id}",
            category=category,
            quantity=quantity,
            unit_price=unit_price,
            total_price=unit_price * quantity if total_price is None else total_price,
            cost_of_goods_sold=cost,
        )

    return _make


@pytest.fixture
def make_transaction(make_line):
    counter = {"n": 0}

    def _make(
        days_ago: float = 0,
        customer_id: str = "c1",
        items: list[LineItem] | None = None,
        total: float | None = None,
        txn_id: str | None = None,
    ) -> SalesTransaction:
        counter["n"] += 1
        items = items if items is not None else [make_line()]
        subtotal = sum(item.total_price for item in items)
        return SalesTransaction(
            id=txn_id or f"txn_{counter['n']}",
            timestamp=int(NOW_MS - days_to_ms(days_ago)),
            customer_id=customer_id,
            items=items,
            subtotal=subtotal,
            total=subtotal if total is None else total,
            payment_method="credit_card",
        )

    return _make


@pytest.fixture
def make_item():
    def _make(
        product_id: str = "p1",
        current_stock: int = 50,
        reorder_point: int = 10,
        max_stock: int = 100,
        lead_time_days: int = 7,
        category: str = "flower",
        supplier: str = "Acme Supply",
        cost_per_unit: float = 4.0,
        sell_price: float = 10.0,
        **derived,
    ) -> InventoryItem:
        return InventoryItem(
            product_id=product_id,
            product_name=f"Product {product_id}",
            category=category,
            current_stock=current_stock,
            reorder_point=reorder_point,
            max_stock=max_stock,
            cost_per_unit=cost_per_unit,
            sell_price=sell_price,
            supplier=supplier,
            lead_time_days=lead_time_days,
            **derived,
        )

    return _make


@pytest.fixture
async def test_engine():
    """In-memory database with all tables built; one connection shared by the pool."""
    import db.models  # noqa: F401  (registers tables)

    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
