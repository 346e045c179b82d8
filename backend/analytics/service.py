"""
Analytics Service — pulls snapshots from the repositories and runs the engines.

The engines are synchronous and stateless; this service is the only place
that awaits repository I/O. Each call materializes a fresh snapshot, so
results depend only on what the repositories hold at call time.

Usage:
    service = AnalyticsService.from_settings(get_settings(), transactions_repo, inventory_repo)
    metrics = await service.revenue_metrics()
    report = await service.generate_retention_report()
"""

from datetime import datetime, timezone
from typing import Any

import structlog

from analytics.customers import (
    CustomerIntelligence,
    CustomerIntelligenceAnalytics,
    CustomerMetrics,
    RetentionReport,
)
from analytics.export import revenue_report
from analytics.revenue import RevenueAnalytics, RevenueMetrics
from analytics.transactions import SalesTransaction
from core.clock import Clock, system_clock
from core.config import Settings
from db.repositories import InventoryRepository, TransactionRepository
from inventory.forecasting import InventoryAnalytics, InventoryForecast, InventoryForecasting, RandomSource
from inventory.models import InventoryItem

logger = structlog.get_logger()


class AnalyticsService:
    def __init__(
        self,
        transactions: TransactionRepository,
        inventory: InventoryRepository,
        revenue: RevenueAnalytics | None = None,
        customers: CustomerIntelligence | None = None,
        forecasting: InventoryForecasting | None = None,
        forecast_days: int = 30,
    ):
        self.transactions = transactions
        self.inventory = inventory
        self.revenue = revenue or RevenueAnalytics()
        self.customers = customers or CustomerIntelligence()
        self.forecasting = forecasting or InventoryForecasting()
        self.forecast_days = forecast_days

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transactions: TransactionRepository,
        inventory: InventoryRepository,
        clock: Clock = system_clock,
        rng: RandomSource | None = None,
    ) -> "AnalyticsService":
        """Build engines with the policy knobs from configuration."""
        return cls(
            transactions=transactions,
            inventory=inventory,
            revenue=RevenueAnalytics(
                clock=clock,
                operating_expense_ratio=settings.operating_expense_ratio,
                top_products_limit=settings.top_products_limit,
                seasonal_months=settings.seasonal_months,
            ),
            customers=CustomerIntelligence(clock=clock),
            forecasting=InventoryForecasting(
                clock=clock,
                rng=rng,
                demand_jitter=(settings.demand_jitter_min, settings.demand_jitter_max),
            ),
            forecast_days=settings.forecast_days,
        )

    # ── Revenue ───────────────────────────────────────────────────────

    async def revenue_metrics(self) -> RevenueMetrics:
        return self.revenue.compute_metrics(await self.transactions.list_transactions())

    async def export_revenue_report(self, generated_at: datetime | None = None) -> dict[str, Any]:
        transactions = await self.transactions.list_transactions()
        metrics = self.revenue.compute_metrics(transactions)
        return revenue_report(metrics, len(transactions), generated_at or datetime.now(timezone.utc))

    async def record_sale(self, transaction: SalesTransaction) -> None:
        await self.transactions.record(transaction)

    # ── Customers ─────────────────────────────────────────────────────

    async def analyze_customer(self, customer_id: str) -> CustomerMetrics:
        return self.customers.analyze_customer(customer_id, await self.transactions.list_transactions())

    async def customer_analytics(self) -> CustomerIntelligenceAnalytics:
        return self.customers.aggregate(await self.transactions.list_transactions())

    async def generate_retention_report(self) -> RetentionReport:
        return self.customers.retention_report(await self.transactions.list_transactions())

    # ── Inventory ─────────────────────────────────────────────────────

    async def inventory_analytics(self) -> InventoryAnalytics:
        """Recompute inventory analytics and cache the derived fields on the stored rows."""
        items = await self.inventory.list_items()
        analytics = self.forecasting.compute_analytics(items, await self.transactions.list_transactions())
        await self.inventory.cache_metrics(analytics.items)
        return analytics

    async def forecast(
        self, product_id: str, days: int | None = None, rng: RandomSource | None = None
    ) -> InventoryForecast:
        """
        Simulate demand for one product using sales velocity from the current log.

        Raises NotFoundError if the product is not in the inventory snapshot.
        """
        item = await self.inventory.get_item(product_id)
        velocity = self.forecasting.sales_velocity(await self.transactions.list_transactions())
        refreshed = self.forecasting.refresh_item(item, velocity.get(product_id))
        return self.forecasting.forecast_item(refreshed, self.forecast_days if days is None else days, rng)

    async def update_stock(self, product_id: str, new_stock: int) -> InventoryItem:
        return await self.inventory.update_stock(product_id, new_stock)

    async def clear_analytics(self) -> None:
        await self.transactions.clear()
        await self.inventory.clear()
        logger.info("analytics.cleared")
