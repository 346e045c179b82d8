"""
Revenue Analytics — Time-Windowed Revenue, Margin, and Trend Metrics.

Aggregates the transaction log into the numbers the revenue dashboard and
the revenue export are built on.

Algorithm:
  Windows      all-time / last 24h / last 7d / last 30d (inclusive of the boundary)
  AOV          total revenue / total orders
  Products     Σ line totalPrice per product, distinct orders, top 20
  Categories   Σ line totalPrice per category, share of line revenue
  Margins      gross = revenue − Σ(COGS × qty); net = gross − opex_ratio × revenue
  Trends       last 30d vs the 30d before it
  Seasonal     calendar-month buckets (UTC), last 12, ±5% trend vs previous bucket

Every ratio is guarded: a zero denominator yields 0, never NaN/Inf.
"""

from dataclasses import dataclass, field
from typing import Literal

import structlog

from analytics.frames import transactions_frame
from analytics.transactions import SalesTransaction
from core.clock import Clock, days_to_ms, system_clock

logger = structlog.get_logger()

TrendLabel = Literal["up", "down", "stable"]

DEFAULT_OPERATING_EXPENSE_RATIO = 0.15
TREND_THRESHOLD_PCT = 5.0


@dataclass(frozen=True)
class ProductRevenue:
    product_id: str
    product_name: str
    revenue: float
    orders: int  # distinct transactions containing the product


@dataclass(frozen=True)
class CategoryRevenue:
    category: str
    revenue: float
    percentage: float


@dataclass(frozen=True)
class ProfitMargins:
    gross_profit: float = 0.0
    gross_margin: float = 0.0
    net_profit: float = 0.0
    net_margin: float = 0.0


@dataclass(frozen=True)
class RevenueTrends:
    revenue_growth: float = 0.0
    order_growth: float = 0.0
    avg_order_value_growth: float = 0.0


@dataclass(frozen=True)
class SeasonalBucket:
    period: str  # "YYYY-MM"
    revenue: float
    orders: int
    trend: TrendLabel


@dataclass(frozen=True)
class RevenueMetrics:
    """Revenue report. An empty log yields all zeros and empty breakdowns."""

    total_revenue: float = 0.0
    daily_revenue: float = 0.0
    weekly_revenue: float = 0.0
    monthly_revenue: float = 0.0
    average_order_value: float = 0.0
    total_orders: int = 0
    revenue_by_product: list[ProductRevenue] = field(default_factory=list)
    revenue_by_category: list[CategoryRevenue] = field(default_factory=list)
    profit_margins: ProfitMargins = field(default_factory=ProfitMargins)
    trends: RevenueTrends = field(default_factory=RevenueTrends)
    seasonal_data: list[SeasonalBucket] = field(default_factory=list)


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is not positive."""
    return numerator / denominator if denominator > 0 else 0.0


def growth_pct(current: float, previous: float) -> float:
    """Percent change from ``previous`` to ``current``; 0 when there is no baseline."""
    return safe_ratio(current - previous, previous) * 100


def classify_trend(growth: float) -> TrendLabel:
    if growth > TREND_THRESHOLD_PCT:
        return "up"
    if growth < -TREND_THRESHOLD_PCT:
        return "down"
    return "stable"


class RevenueAnalytics:
    """Compute revenue metrics from a transaction snapshot."""

    def __init__(
        self,
        clock: Clock = system_clock,
        operating_expense_ratio: float = DEFAULT_OPERATING_EXPENSE_RATIO,
        top_products_limit: int = 20,
        seasonal_months: int = 12,
    ):
        self.clock = clock
        self.operating_expense_ratio = operating_expense_ratio
        self.top_products_limit = top_products_limit
        self.seasonal_months = seasonal_months

    def compute_metrics(self, transactions: list[SalesTransaction]) -> RevenueMetrics:
        now = self.clock()
        one_day_ago = now - days_to_ms(1)
        one_week_ago = now - days_to_ms(7)
        one_month_ago = now - days_to_ms(30)

        total_revenue = sum(t.total for t in transactions)
        daily_revenue = sum(t.total for t in transactions if t.timestamp >= one_day_ago)
        weekly_revenue = sum(t.total for t in transactions if t.timestamp >= one_week_ago)
        monthly_revenue = sum(t.total for t in transactions if t.timestamp >= one_month_ago)
        total_orders = len(transactions)

        metrics = RevenueMetrics(
            total_revenue=total_revenue,
            daily_revenue=daily_revenue,
            weekly_revenue=weekly_revenue,
            monthly_revenue=monthly_revenue,
            average_order_value=safe_ratio(total_revenue, total_orders),
            total_orders=total_orders,
            revenue_by_product=self.revenue_by_product(transactions),
            revenue_by_category=self.revenue_by_category(transactions),
            profit_margins=self.profit_margins(transactions),
            trends=self.trends(transactions, now),
            seasonal_data=self.seasonal_data(transactions),
        )

        logger.info(
            "revenue.computed",
            total_orders=total_orders,
            total_revenue=round(total_revenue, 2),
            products=len(metrics.revenue_by_product),
            categories=len(metrics.revenue_by_category),
        )
        return metrics

    def revenue_by_product(self, transactions: list[SalesTransaction]) -> list[ProductRevenue]:
        """Top products by line revenue. Ties keep first-seen order."""
        names: dict[str, str] = {}
        revenue: dict[str, float] = {}
        orders: dict[str, set[str]] = {}

        for txn in transactions:
            for item in txn.items:
                if item.product_id not in revenue:
                    names[item.product_id] = item.product_name
                    revenue[item.product_id] = 0.0
                    orders[item.product_id] = set()
                revenue[item.product_id] += item.total_price
                orders[item.product_id].add(txn.id)

        ranked = sorted(
            (ProductRevenue(pid, names[pid], revenue[pid], len(orders[pid])) for pid in revenue),
            key=lambda p: p.revenue,
            reverse=True,
        )
        return ranked[: self.top_products_limit]

    def revenue_by_category(self, transactions: list[SalesTransaction]) -> list[CategoryRevenue]:
        category_revenue: dict[str, float] = {}
        total_line_revenue = 0.0

        for txn in transactions:
            for item in txn.items:
                category_revenue[item.category] = category_revenue.get(item.category, 0.0) + item.total_price
                total_line_revenue += item.total_price

        return sorted(
            (
                CategoryRevenue(category, amount, safe_ratio(amount, total_line_revenue) * 100)
                for category, amount in category_revenue.items()
            ),
            key=lambda c: c.revenue,
            reverse=True,
        )

    def profit_margins(self, transactions: list[SalesTransaction]) -> ProfitMargins:
        total_revenue = sum(t.total for t in transactions)
        total_cogs = sum(item.cost_of_goods_sold * item.quantity for t in transactions for item in t.items)

        gross_profit = total_revenue - total_cogs
        net_profit = gross_profit - total_revenue * self.operating_expense_ratio

        return ProfitMargins(
            gross_profit=gross_profit,
            gross_margin=safe_ratio(gross_profit, total_revenue) * 100,
            net_profit=net_profit,
            net_margin=safe_ratio(net_profit, total_revenue) * 100,
        )

    def trends(self, transactions: list[SalesTransaction], now: int) -> RevenueTrends:
        """Last 30 days against the 30 days before that."""
        thirty_days_ago = now - days_to_ms(30)
        sixty_days_ago = now - days_to_ms(60)

        current = [t for t in transactions if t.timestamp >= thirty_days_ago]
        previous = [t for t in transactions if sixty_days_ago <= t.timestamp < thirty_days_ago]

        current_revenue = sum(t.total for t in current)
        previous_revenue = sum(t.total for t in previous)
        current_aov = safe_ratio(current_revenue, len(current))
        previous_aov = safe_ratio(previous_revenue, len(previous))

        return RevenueTrends(
            revenue_growth=growth_pct(current_revenue, previous_revenue),
            order_growth=growth_pct(len(current), len(previous)),
            avg_order_value_growth=growth_pct(current_aov, previous_aov),
        )

    def seasonal_data(self, transactions: list[SalesTransaction]) -> list[SeasonalBucket]:
        """
        Monthly revenue buckets, oldest first, limited to the most recent
        ``seasonal_months``. Each bucket's trend compares it with the bucket
        immediately before it in the kept list; the first bucket is "stable".
        """
        if not transactions:
            return []

        monthly = (
            transactions_frame(transactions)
            .groupby("month", sort=True)
            .agg(revenue=("total", "sum"), orders=("id", "count"))
            .tail(self.seasonal_months)
        )

        buckets: list[SeasonalBucket] = []
        previous_revenue: float | None = None
        for period, row in monthly.iterrows():
            revenue = float(row["revenue"])
            trend: TrendLabel = "stable"
            if previous_revenue is not None:
                trend = classify_trend(growth_pct(revenue, previous_revenue))
            buckets.append(SeasonalBucket(period=str(period), revenue=revenue, orders=int(row["orders"]), trend=trend))
            previous_revenue = revenue
        return buckets
