"""
Inventory Forecasting — Stockout Risk, Reorder Recommendations, Demand Simulation.

Combines the inventory snapshot with per-product sales velocity from the
transaction log.

Algorithm:
  Velocity      avgDailySales = units sold / max(1, distinct selling days)
  Days on hand  stock / avgDailySales (999 when nothing sells)
  Turnover      units sold × 365 / stock (0 when stock is 0)
  ROP           max(stored ROP, ⌈avgDailySales × (leadTime + 7)⌉), never lowered
  Risk          daysUntilStockout ≤ leadTime + 7        → high
                daysUntilStockout ≤ 1.5 × (leadTime + 7) → medium
                otherwise (or no sales)                  → low
  Reorder qty   ⌈max(maxStock − stock, avgDailySales × 30)⌉

Forecast simulation walks stock forward one day at a time, drawing
``round(avgDailySales × U(0.8, 1.2))`` units per day. The 0.8–1.2 band is a
fixed business jitter, not a statistical demand model. The random source is
injected so simulations are reproducible.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Literal, Protocol

import numpy as np
import structlog

from analytics.frames import line_items_frame
from analytics.transactions import SalesTransaction
from core.clock import Clock, days_to_ms, iso_date, system_clock
from core.exceptions import NotFoundError
from inventory.models import InventoryItem, StockoutRisk

logger = structlog.get_logger()

Urgency = Literal["immediate", "soon", "planned"]

SAFETY_DAYS = 7  # added to supplier lead time for the reorder buffer
MEDIUM_RISK_FACTOR = 1.5
NO_SALES_DAYS_OF_INVENTORY = 999.0
REORDER_COVER_DAYS = 30
FORECAST_COVER_EXTRA_DAYS = 14
OVERSTOCK_FILL_RATIO = 0.8
OVERSTOCK_MAX_TURNOVER = 2
BASELINE_LEAD_TIME_DAYS = 7  # supplier reliability is penalised per day beyond this

RISK_WEIGHTS: dict[StockoutRisk, int] = {"high": 3, "medium": 2, "low": 1}
URGENCY_ORDER: dict[Urgency, int] = {"immediate": 3, "soon": 2, "planned": 1}


class RandomSource(Protocol):
    def uniform(self, low: float, high: float) -> float: ...


@dataclass(frozen=True)
class SalesVelocity:
    total_sold: int = 0
    selling_days: int = 0
    average_daily_sales: float = 0.0


@dataclass(frozen=True)
class ReorderRecommendation:
    product_id: str
    product_name: str
    current_stock: int
    recommended_order: int
    urgency: Urgency


@dataclass(frozen=True)
class SupplierPerformance:
    supplier: str
    average_lead_time: float
    reliability: float
    total_products: int


@dataclass(frozen=True)
class CategoryPerformance:
    category: str
    turnover_rate: float
    stock_value: float
    profit_margin: float
    revenue: float = 0.0
    cost: float = 0.0


@dataclass
class InventoryAnalytics:
    total_products: int = 0
    total_stock_value: float = 0.0
    average_turnover_rate: float = 0.0
    low_stock_alerts: list[InventoryItem] = field(default_factory=list)
    stockout_risks: list[InventoryItem] = field(default_factory=list)
    over_stock_items: list[InventoryItem] = field(default_factory=list)
    reorder_recommendations: list[ReorderRecommendation] = field(default_factory=list)
    supplier_performance: list[SupplierPerformance] = field(default_factory=list)
    category_performance: list[CategoryPerformance] = field(default_factory=list)
    items: list[InventoryItem] = field(default_factory=list)  # refreshed snapshot


@dataclass(frozen=True)
class DemandPoint:
    date: str  # "YYYY-MM-DD"
    expected_sales: int
    stock_level: int
    reorder_needed: bool


@dataclass(frozen=True)
class InventoryForecast:
    product_id: str
    product_name: str
    current_stock: int
    predicted_demand: list[DemandPoint]
    recommended_reorder_date: str
    recommended_order_quantity: int
    stockout_probability: float


# ── Rules ─────────────────────────────────────────────────────────────────


def classify_stockout_risk(current_stock: float, average_daily_sales: float, lead_time_days: float) -> StockoutRisk:
    """Inclusive boundaries: stock lasting exactly leadTime + 7 days is high risk."""
    if average_daily_sales == 0:
        return "low"

    days_until_stockout = current_stock / average_daily_sales
    lead_buffer = lead_time_days + SAFETY_DAYS

    if days_until_stockout <= lead_buffer:
        return "high"
    if days_until_stockout <= lead_buffer * MEDIUM_RISK_FACTOR:
        return "medium"
    return "low"


def risk_weight(item: InventoryItem) -> float:
    return RISK_WEIGHTS[item.stockout_risk] * item.average_daily_sales


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class InventoryForecasting:
    """Stockout risk, reorder planning, and forward demand simulation."""

    def __init__(
        self,
        clock: Clock = system_clock,
        rng: RandomSource | None = None,
        demand_jitter: tuple[float, float] = (0.8, 1.2),
    ):
        self.clock = clock
        self.rng = rng if rng is not None else np.random.default_rng()
        self.demand_jitter = demand_jitter

    # ── Velocity ──────────────────────────────────────────────────────

    def sales_velocity(self, transactions: list[SalesTransaction]) -> dict[str, SalesVelocity]:
        """Units sold and distinct selling days (UTC) per product."""
        lines = line_items_frame(transactions)
        if lines.empty:
            return {}

        grouped = lines.groupby("product_id", sort=False).agg(
            total_sold=("quantity", "sum"),
            selling_days=("sale_date", "nunique"),
        )
        velocity: dict[str, SalesVelocity] = {}
        for product_id, row in grouped.iterrows():
            total_sold = int(row["total_sold"])
            selling_days = int(row["selling_days"])
            velocity[str(product_id)] = SalesVelocity(
                total_sold=total_sold,
                selling_days=selling_days,
                average_daily_sales=total_sold / max(1, selling_days),
            )
        return velocity

    def refresh_item(self, item: InventoryItem, velocity: SalesVelocity | None = None) -> InventoryItem:
        """Copy of ``item`` with derived fields recomputed from ``velocity``."""
        velocity = velocity or SalesVelocity()
        daily = velocity.average_daily_sales

        days_of_inventory = item.current_stock / daily if daily > 0 else NO_SALES_DAYS_OF_INVENTORY
        turnover_rate = velocity.total_sold * 365 / item.current_stock if item.current_stock > 0 else 0.0
        computed_rop = math.ceil(daily * (item.lead_time_days + SAFETY_DAYS))

        return replace(
            item,
            average_daily_sales=daily,
            days_of_inventory=days_of_inventory,
            turnover_rate=turnover_rate,
            stockout_risk=classify_stockout_risk(item.current_stock, daily, item.lead_time_days),
            reorder_point=max(item.reorder_point, computed_rop),
        )

    def refresh_inventory(
        self, inventory: list[InventoryItem], transactions: list[SalesTransaction]
    ) -> list[InventoryItem]:
        velocity = self.sales_velocity(transactions)
        return [self.refresh_item(item, velocity.get(item.product_id)) for item in inventory]

    # ── Analytics ─────────────────────────────────────────────────────

    def compute_analytics(
        self, inventory: list[InventoryItem], transactions: list[SalesTransaction]
    ) -> InventoryAnalytics:
        items = self.refresh_inventory(inventory, transactions)
        total_products = len(items)

        stockout_risks = sorted(
            (item for item in items if item.stockout_risk in ("high", "medium")),
            key=risk_weight,
            reverse=True,
        )

        analytics = InventoryAnalytics(
            total_products=total_products,
            total_stock_value=sum(item.stock_value for item in items),
            average_turnover_rate=(
                sum(item.turnover_rate for item in items) / total_products if total_products else 0.0
            ),
            low_stock_alerts=[item for item in items if item.current_stock <= item.reorder_point],
            stockout_risks=stockout_risks,
            over_stock_items=[
                item
                for item in items
                if item.current_stock > item.max_stock * OVERSTOCK_FILL_RATIO
                and item.turnover_rate < OVERSTOCK_MAX_TURNOVER
            ],
            reorder_recommendations=self.reorder_recommendations(items),
            supplier_performance=self.supplier_performance(items),
            category_performance=self.category_performance(items, transactions),
            items=items,
        )

        logger.info(
            "inventory.analyzed",
            total_products=total_products,
            low_stock=len(analytics.low_stock_alerts),
            at_risk=len(stockout_risks),
            reorders=len(analytics.reorder_recommendations),
        )
        return analytics

    @staticmethod
    def reorder_recommendations(items: list[InventoryItem]) -> list[ReorderRecommendation]:
        """Expects refreshed items. Sorted immediate → soon → planned, stable within a tier."""
        recommendations = []
        for item in items:
            at_reorder_point = item.current_stock <= item.reorder_point
            if not at_reorder_point and item.stockout_risk == "low":
                continue

            quantity = max(item.max_stock - item.current_stock, item.average_daily_sales * REORDER_COVER_DAYS)

            urgency: Urgency = "planned"
            if item.stockout_risk == "high":
                urgency = "immediate"
            elif item.stockout_risk == "medium" or at_reorder_point:
                urgency = "soon"

            recommendations.append(
                ReorderRecommendation(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    current_stock=item.current_stock,
                    recommended_order=math.ceil(quantity),
                    urgency=urgency,
                )
            )
        return sorted(recommendations, key=lambda r: URGENCY_ORDER[r.urgency], reverse=True)

    @staticmethod
    def supplier_performance(items: list[InventoryItem]) -> list[SupplierPerformance]:
        lead_times: dict[str, list[int]] = {}
        for item in items:
            lead_times.setdefault(item.supplier, []).append(item.lead_time_days)

        performance = []
        for supplier, days in lead_times.items():
            mean_excess = sum(max(0, d - BASELINE_LEAD_TIME_DAYS) for d in days) / len(days)
            performance.append(
                SupplierPerformance(
                    supplier=supplier,
                    average_lead_time=sum(days) / len(days),
                    reliability=float(max(0, 100 - mean_excess * 10)),
                    total_products=len(days),
                )
            )
        return performance

    @staticmethod
    def category_performance(
        items: list[InventoryItem], transactions: list[SalesTransaction]
    ) -> list[CategoryPerformance]:
        """Categories present in the inventory, joined to line-item revenue and cost."""
        by_category: dict[str, list[InventoryItem]] = {}
        for item in items:
            by_category.setdefault(item.category, []).append(item)

        lines = line_items_frame(transactions)
        lines["cost"] = lines["cost_of_goods_sold"] * lines["quantity"]
        sales = lines.groupby("category")[["total_price", "cost"]].sum()

        performance = []
        for category, members in by_category.items():
            revenue = float(sales.at[category, "total_price"]) if category in sales.index else 0.0
            cost = float(sales.at[category, "cost"]) if category in sales.index else 0.0
            performance.append(
                CategoryPerformance(
                    category=category,
                    turnover_rate=sum(m.turnover_rate for m in members) / len(members),
                    stock_value=sum(m.stock_value for m in members),
                    profit_margin=(revenue - cost) / revenue * 100 if revenue > 0 else 0.0,
                    revenue=revenue,
                    cost=cost,
                )
            )
        return performance

    # ── Forecast simulation ───────────────────────────────────────────

    def forecast(
        self,
        product_id: str,
        inventory: list[InventoryItem],
        days: int = 30,
        rng: RandomSource | None = None,
    ) -> InventoryForecast:
        """Simulate ``days`` of demand for ``product_id``. Raises NotFoundError if it is not stocked."""
        item = next((i for i in inventory if i.product_id == product_id), None)
        if item is None:
            raise NotFoundError("product", product_id)
        return self.forecast_item(item, days, rng)

    def forecast_item(self, item: InventoryItem, days: int = 30, rng: RandomSource | None = None) -> InventoryForecast:
        """
        Walk stock forward ``days`` days.

        ``rng`` overrides the engine's random source for this call. The engine
        source is a single numpy Generator, which is not thread-safe; callers
        forecasting from several threads pass their own generator per call.
        """
        rng = rng if rng is not None else self.rng
        now = self.clock()
        low, high = self.demand_jitter
        daily = item.average_daily_sales

        stock = item.current_stock
        points: list[DemandPoint] = []
        for day in range(days):
            expected = round_half_up(daily * rng.uniform(low, high))
            stock = max(0, stock - expected)
            points.append(
                DemandPoint(
                    date=iso_date(now + days_to_ms(day)),
                    expected_sales=expected,
                    stock_level=stock,
                    reorder_needed=stock <= item.reorder_point,
                )
            )

        first_zero = next((i for i, p in enumerate(points) if p.stock_level == 0), None)
        stockout_probability = (days - first_zero) / days * 100 if first_zero is not None else 0.0

        reorder_day = next((p for p in points if p.reorder_needed), None)
        if reorder_day is not None:
            reorder_date = reorder_day.date
        else:
            reorder_date = iso_date(now + days_to_ms(item.lead_time_days))

        order_quantity = max(
            item.max_stock - item.current_stock,
            daily * (item.lead_time_days + FORECAST_COVER_EXTRA_DAYS),
        )

        forecast = InventoryForecast(
            product_id=item.product_id,
            product_name=item.product_name,
            current_stock=item.current_stock,
            predicted_demand=points,
            recommended_reorder_date=reorder_date,
            recommended_order_quantity=math.ceil(order_quantity),
            stockout_probability=stockout_probability,
        )

        logger.info(
            "inventory.forecast",
            product_id=item.product_id,
            days=days,
            stockout_probability=round(stockout_probability, 2),
            reorder_date=reorder_date,
        )
        return forecast
