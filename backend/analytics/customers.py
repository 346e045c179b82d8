"""
Customer Intelligence — Lifetime Value, Churn Risk, and Segmentation.

Groups the transaction log by customer and scores each one with fixed
business rules (not a trained model; the weights below are fixed policy):

  Churn score   100 × (0.4·min(avgGap/30, 1) + 0.4·min(daysSince/90, 1)
                       + 0.2·max(0, 1 − orders/10))
  Churn risk    <30 low, <70 medium, else high
  Segment       first match wins:
                  daysSince > 180            → churned
                  daysSince > 90             → at_risk
                  orders == 1                → new
                  LTV > 500 or orders > 10   → vip
                  otherwise                  → regular
  Engagement    min(100, ordersPerMonth·30 + recency·0.5 + distinctCategories·10)

Per-customer output feeds the retention report consumed by the marketing
campaign dispatcher.
"""

import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Literal

import structlog

from analytics.transactions import SalesTransaction
from core.clock import MS_PER_DAY, Clock, days_to_ms, system_clock

logger = structlog.get_logger()

ChurnRisk = Literal["low", "medium", "high"]
CustomerSegment = Literal["new", "regular", "vip", "at_risk", "churned"]
ActionPriority = Literal["high", "medium", "low"]

# Churn score weights
FREQUENCY_WEIGHT = 0.4
RECENCY_WEIGHT = 0.4
ORDER_COUNT_WEIGHT = 0.2

DEFAULT_DAYS_BETWEEN_ORDERS = 30
PREFERRED_CATEGORY_LIMIT = 5
TOP_CUSTOMER_LIMIT = 20
REACTIVATION_LIMIT = 10


@dataclass(frozen=True)
class CategoryPreference:
    category: str
    percentage: float


@dataclass(frozen=True)
class CustomerMetrics:
    customer_id: str
    lifetime_value: float = 0.0
    total_orders: int = 0
    average_order_value: float = 0.0
    first_purchase_date: int = 0  # epoch ms
    last_purchase_date: int = 0  # epoch ms
    days_since_last_purchase: int = 0
    churn_risk: ChurnRisk = "low"
    churn_score: float = 0.0
    preferred_categories: list[CategoryPreference] = field(default_factory=list)
    segment: CustomerSegment = "new"
    predicted_next_purchase: float = 0.0  # epoch ms
    engagement_score: float = 0.0


@dataclass(frozen=True)
class SegmentShare:
    segment: CustomerSegment
    count: int
    percentage: float


@dataclass(frozen=True)
class ChurnRiskDistribution:
    low: int = 0
    medium: int = 0
    high: int = 0


@dataclass(frozen=True)
class CustomerIntelligenceAnalytics:
    total_customers: int = 0
    average_lifetime_value: float = 0.0
    churn_rate: float = 0.0
    customer_segments: list[SegmentShare] = field(default_factory=list)
    top_customers: list[CustomerMetrics] = field(default_factory=list)
    churn_risk_distribution: ChurnRiskDistribution = field(default_factory=ChurnRiskDistribution)
    retention_rate: float = 0.0
    new_customer_rate: float = 0.0
    reactivation_opportunities: list[CustomerMetrics] = field(default_factory=list)


@dataclass(frozen=True)
class ChurnPreventionAction:
    customer_id: str
    recommended_action: str
    priority: ActionPriority


@dataclass(frozen=True)
class RetentionReport:
    at_risk_customers: list[CustomerMetrics] = field(default_factory=list)
    reactivation_targets: list[CustomerMetrics] = field(default_factory=list)
    loyalty_opportunities: list[CustomerMetrics] = field(default_factory=list)
    churn_prevention: list[ChurnPreventionAction] = field(default_factory=list)


# ── Scoring rules ─────────────────────────────────────────────────────────


def churn_score(average_days_between_orders: float, days_since_last_purchase: float, total_orders: int) -> float:
    frequency = min(average_days_between_orders / 30, 1)
    recency = min(days_since_last_purchase / 90, 1)
    order_count = max(0, 1 - total_orders / 10)
    return (frequency * FREQUENCY_WEIGHT + recency * RECENCY_WEIGHT + order_count * ORDER_COUNT_WEIGHT) * 100


def churn_risk(score: float) -> ChurnRisk:
    """Bands are exclusive at the top: exactly 30 is medium, exactly 70 is high."""
    if score < 30:
        return "low"
    if score < 70:
        return "medium"
    return "high"


def customer_segment(lifetime_value: float, total_orders: int, days_since_last_purchase: int) -> CustomerSegment:
    if days_since_last_purchase > 180:
        return "churned"
    if days_since_last_purchase > 90:
        return "at_risk"
    if total_orders == 1:
        return "new"
    if lifetime_value > 500 or total_orders > 10:
        return "vip"
    return "regular"


def average_days_between_orders(timestamps: list[int]) -> float:
    """Mean gap in days across chronologically sorted timestamps (30 with fewer than two)."""
    if len(timestamps) < 2:
        return DEFAULT_DAYS_BETWEEN_ORDERS
    gaps = [(later - earlier) / MS_PER_DAY for earlier, later in zip(timestamps, timestamps[1:])]
    return sum(gaps) / len(gaps)


def action_priority(lifetime_value: float) -> ActionPriority:
    if lifetime_value > 500:
        return "high"
    if lifetime_value > 200:
        return "medium"
    return "low"


def recommended_action(metrics: CustomerMetrics) -> str:
    """Pick the retention play for a customer, in fixed priority order."""
    if metrics.days_since_last_purchase > 60:
        return "Send personalized re-engagement email with discount"
    if metrics.average_order_value < 50:
        return "Offer bundle deals to increase order value"
    if metrics.preferred_categories:
        return f"Recommend new {metrics.preferred_categories[0].category} products"
    return "Send loyalty program invitation"


def _percent(count: int, total: int) -> float:
    return count / total * 100 if total else 0.0


class CustomerIntelligence:
    """Per-customer and portfolio-level churn/segment analytics."""

    def __init__(self, clock: Clock = system_clock):
        self.clock = clock

    def analyze_customer(self, customer_id: str, transactions: list[SalesTransaction]) -> CustomerMetrics:
        """Score one customer. ``transactions`` may be the full log; it is filtered here."""
        own = [t for t in transactions if t.customer_id == customer_id]
        return self._score(customer_id, own, self.clock())

    def _score(self, customer_id: str, transactions: list[SalesTransaction], now: int) -> CustomerMetrics:
        if not transactions:
            return CustomerMetrics(customer_id=customer_id)

        ordered = sorted(transactions, key=lambda t: t.timestamp)
        timestamps = [t.timestamp for t in ordered]

        lifetime_value = sum(t.total for t in ordered)
        total_orders = len(ordered)
        first_purchase = timestamps[0]
        last_purchase = timestamps[-1]
        days_since_last = math.floor((now - last_purchase) / MS_PER_DAY)
        avg_gap = average_days_between_orders(timestamps)

        score = churn_score(avg_gap, days_since_last, total_orders)

        if total_orders < 2:
            predicted_next = now + days_to_ms(30)
        else:
            predicted_next = last_purchase + days_to_ms(avg_gap)

        return CustomerMetrics(
            customer_id=customer_id,
            lifetime_value=lifetime_value,
            total_orders=total_orders,
            average_order_value=lifetime_value / total_orders,
            first_purchase_date=first_purchase,
            last_purchase_date=last_purchase,
            days_since_last_purchase=days_since_last,
            churn_risk=churn_risk(score),
            churn_score=score,
            preferred_categories=self._preferred_categories(ordered),
            segment=customer_segment(lifetime_value, total_orders, days_since_last),
            predicted_next_purchase=predicted_next,
            engagement_score=self._engagement_score(ordered, days_since_last),
        )

    @staticmethod
    def _preferred_categories(transactions: list[SalesTransaction]) -> list[CategoryPreference]:
        quantities: dict[str, int] = {}
        for txn in transactions:
            for item in txn.items:
                quantities[item.category] = quantities.get(item.category, 0) + item.quantity

        total_items = sum(quantities.values())
        preferences = sorted(
            (CategoryPreference(category, _percent(qty, total_items)) for category, qty in quantities.items()),
            key=lambda c: c.percentage,
            reverse=True,
        )
        return preferences[:PREFERRED_CATEGORY_LIMIT]

    @staticmethod
    def _engagement_score(ordered: list[SalesTransaction], days_since_last_purchase: int) -> float:
        lifespan_days = max(1, (ordered[-1].timestamp - ordered[0].timestamp) / MS_PER_DAY)
        order_frequency = len(ordered) / max(1, lifespan_days / 30)
        recency = max(0, 100 - days_since_last_purchase * 2)
        variety = len({item.category for t in ordered for item in t.items}) * 10
        return float(min(100, order_frequency * 30 + recency * 0.5 + variety))

    def analyze_all(self, transactions: list[SalesTransaction], now: int | None = None) -> list[CustomerMetrics]:
        """Score every distinct customer in the log, in first-seen order (one pass to group)."""
        now = self.clock() if now is None else now
        by_customer: dict[str, list[SalesTransaction]] = defaultdict(list)
        for txn in transactions:
            by_customer[txn.customer_id].append(txn)
        return [self._score(customer_id, own, now) for customer_id, own in by_customer.items()]

    def aggregate(self, transactions: list[SalesTransaction]) -> CustomerIntelligenceAnalytics:
        now = self.clock()
        customers = self.analyze_all(transactions, now)
        total = len(customers)
        if total == 0:
            logger.info("customers.aggregated", total_customers=0)
            return CustomerIntelligenceAnalytics()

        thirty_days_ago = now - days_to_ms(30)

        segment_counts: dict[str, int] = {}
        risk_counts = {"low": 0, "medium": 0, "high": 0}
        for c in customers:
            segment_counts[c.segment] = segment_counts.get(c.segment, 0) + 1
            risk_counts[c.churn_risk] += 1

        churned = segment_counts.get("churned", 0)
        retained = sum(1 for c in customers if c.segment != "churned" and c.days_since_last_purchase <= 90)
        new_customers = sum(1 for c in customers if c.first_purchase_date >= thirty_days_ago)

        by_value = sorted(customers, key=lambda c: c.lifetime_value, reverse=True)
        reactivation = [c for c in by_value if c.segment == "at_risk" and c.lifetime_value > 100]

        analytics = CustomerIntelligenceAnalytics(
            total_customers=total,
            average_lifetime_value=sum(c.lifetime_value for c in customers) / total,
            churn_rate=_percent(churned, total),
            customer_segments=[
                SegmentShare(segment, count, _percent(count, total)) for segment, count in segment_counts.items()
            ],
            top_customers=by_value[:TOP_CUSTOMER_LIMIT],
            churn_risk_distribution=ChurnRiskDistribution(**risk_counts),
            retention_rate=_percent(retained, total),
            new_customer_rate=_percent(new_customers, total),
            reactivation_opportunities=reactivation[:REACTIVATION_LIMIT],
        )

        logger.info(
            "customers.aggregated",
            total_customers=total,
            churn_rate=round(analytics.churn_rate, 2),
            retention_rate=round(analytics.retention_rate, 2),
        )
        return analytics

    def retention_report(self, transactions: list[SalesTransaction]) -> RetentionReport:
        """At-risk, reactivation and loyalty lists plus a recommended action per at-risk customer."""
        customers = self.analyze_all(transactions)
        by_value = sorted(customers, key=lambda c: c.lifetime_value, reverse=True)

        at_risk = [c for c in by_value if c.churn_risk == "high" and c.segment != "churned"]
        reactivation = [c for c in by_value if c.segment == "churned" and c.lifetime_value > 200]
        loyalty = sorted(
            (c for c in customers if c.segment == "regular" and c.lifetime_value > 300),
            key=lambda c: c.engagement_score,
            reverse=True,
        )
        prevention = [
            ChurnPreventionAction(
                customer_id=c.customer_id,
                recommended_action=recommended_action(c),
                priority=action_priority(c.lifetime_value),
            )
            for c in at_risk
        ]

        logger.info(
            "customers.retention_report",
            at_risk=len(at_risk),
            reactivation_targets=len(reactivation),
            loyalty_opportunities=len(loyalty),
        )
        return RetentionReport(
            at_risk_customers=at_risk,
            reactivation_targets=reactivation,
            loyalty_opportunities=loyalty,
            churn_prevention=prevention,
        )
