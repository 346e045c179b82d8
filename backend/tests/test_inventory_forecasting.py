"""
Tests for Inventory Forecasting — stockout risk, reorder planning, demand simulation.

Covers:
  - Sales velocity from distinct (UTC) selling days
  - Per-item refresh: days of inventory, turnover, reorder point floor
  - Stockout risk boundaries (inclusive)
  - Portfolio rollups, reorder recommendations, supplier & category performance
  - Forecast simulation with stub and seeded random sources
"""

import numpy as np
import pytest

from core.exceptions import NotFoundError
from inventory.forecasting import (
    NO_SALES_DAYS_OF_INVENTORY,
    InventoryForecasting,
    SalesVelocity,
    classify_stockout_risk,
    round_half_up,
)


@pytest.fixture
def forecasting(clock, stub_rng):
    return InventoryForecasting(clock=clock, rng=stub_rng(1.0))


@pytest.fixture
def inventory(make_item):
    return [
        make_item("p1", current_stock=5, reorder_point=10),
        make_item("p2", current_stock=30, reorder_point=10),
        make_item("p3", current_stock=90, reorder_point=10),
        make_item("p4", current_stock=8, reorder_point=10),
        make_item(
            "p5",
            current_stock=20,
            reorder_point=10,
            lead_time_days=12,
            supplier="Slow Farms",
            category="edibles",
        ),
    ]


@pytest.fixture
def sales(make_transaction, make_line):
    """Ten days of one unit/day for p1, p2 and p5; nothing for p3 and p4."""
    return [
        make_transaction(
            days_ago=day,
            items=[
                make_line("p1"),
                make_line("p2"),
                make_line("p5", category="edibles", cost=7.0),
            ],
        )
        for day in range(10)
    ]


# ── Rules ──────────────────────────────────────────────────────────────


class TestStockoutRisk:
    def test_no_sales_is_low(self):
        assert classify_stockout_risk(0, 0, 7) == "low"

    def test_within_lead_buffer_is_high(self):
        assert classify_stockout_risk(5, 1, 7) == "high"

    def test_high_boundary_is_inclusive(self):
        assert classify_stockout_risk(14, 1, 7) == "high"

    def test_medium_boundary_is_inclusive(self):
        assert classify_stockout_risk(21, 1, 7) == "medium"

    def test_beyond_medium_band_is_low(self):
        assert classify_stockout_risk(22, 1, 7) == "low"


class TestRoundHalfUp:
    def test_halves_round_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1

    def test_below_half_rounds_down(self):
        assert round_half_up(2.49) == 2


# ── Velocity & Refresh ─────────────────────────────────────────────────


class TestSalesVelocity:
    def test_empty_log(self, forecasting):
        assert forecasting.sales_velocity([]) == {}

    def test_distinct_selling_days(self, forecasting, make_transaction, make_line):
        txns = [
            make_transaction(days_ago=0, items=[make_line("p1", quantity=2)]),
            make_transaction(days_ago=0.25, items=[make_line("p1", quantity=3)]),  # same UTC day
            make_transaction(days_ago=2, items=[make_line("p1", quantity=1), make_line("p2", quantity=4)]),
        ]
        velocity = forecasting.sales_velocity(txns)

        assert velocity["p1"] == SalesVelocity(total_sold=6, selling_days=2, average_daily_sales=3.0)
        assert velocity["p2"] == SalesVelocity(total_sold=4, selling_days=1, average_daily_sales=4.0)


class TestRefreshItem:
    def test_fast_mover_is_high_risk(self, forecasting, make_item):
        item = make_item(current_stock=5, reorder_point=0, lead_time_days=7)
        refreshed = forecasting.refresh_item(item, SalesVelocity(10, 10, 1.0))

        assert refreshed.stockout_risk == "high"
        assert refreshed.reorder_point >= 14
        assert refreshed.days_of_inventory == 5
        assert refreshed.turnover_rate == pytest.approx(730.0)
        assert refreshed.average_daily_sales == 1.0

    def test_returns_copy(self, forecasting, make_item):
        item = make_item(current_stock=5, reorder_point=0)
        refreshed = forecasting.refresh_item(item, SalesVelocity(10, 10, 1.0))
        assert refreshed is not item
        assert item.reorder_point == 0
        assert item.stockout_risk == "low"

    def test_stored_reorder_point_is_a_floor(self, forecasting, make_item):
        item = make_item(current_stock=5, reorder_point=50)
        assert forecasting.refresh_item(item, SalesVelocity(10, 10, 1.0)).reorder_point == 50

    def test_no_sales(self, forecasting, make_item):
        refreshed = forecasting.refresh_item(make_item(current_stock=40, reorder_point=10))

        assert refreshed.stockout_risk == "low"
        assert refreshed.days_of_inventory == NO_SALES_DAYS_OF_INVENTORY
        assert refreshed.turnover_rate == 0
        assert refreshed.reorder_point == 10

    def test_zero_stock_has_zero_turnover(self, forecasting, make_item):
        refreshed = forecasting.refresh_item(make_item(current_stock=0), SalesVelocity(10, 5, 2.0))
        assert refreshed.turnover_rate == 0
        assert refreshed.days_of_inventory == 0
        assert refreshed.stockout_risk == "high"


# ── Portfolio analytics ────────────────────────────────────────────────


class TestComputeAnalytics:
    def test_empty(self, forecasting):
        analytics = forecasting.compute_analytics([], [])
        assert analytics.total_products == 0
        assert analytics.average_turnover_rate == 0
        assert analytics.reorder_recommendations == []

    def test_rollups(self, forecasting, inventory, sales):
        analytics = forecasting.compute_analytics(inventory, sales)

        assert analytics.total_products == 5
        assert analytics.total_stock_value == pytest.approx((5 + 30 + 90 + 8 + 20) * 4.0)
        assert analytics.average_turnover_rate == pytest.approx((730 + 3650 / 30 + 182.5) / 5)
        assert [i.product_id for i in analytics.low_stock_alerts] == ["p1", "p4"]
        assert [i.product_id for i in analytics.over_stock_items] == ["p3"]

    def test_stockout_risks_sorted_by_weight(self, forecasting, inventory, sales):
        risks = forecasting.compute_analytics(inventory, sales).stockout_risks
        assert [(i.product_id, i.stockout_risk) for i in risks] == [("p1", "high"), ("p5", "medium")]

    def test_reorder_recommendations(self, forecasting, inventory, sales):
        recommendations = forecasting.compute_analytics(inventory, sales).reorder_recommendations

        assert [(r.product_id, r.urgency, r.recommended_order) for r in recommendations] == [
            ("p1", "immediate", 95),
            ("p4", "soon", 92),
            ("p5", "soon", 80),
        ]

    def test_reorder_quantity_covers_thirty_days_of_demand(self, forecasting, make_item):
        item = make_item(current_stock=5, max_stock=10, reorder_point=0)
        refreshed = forecasting.refresh_item(item, SalesVelocity(35, 10, 3.5))
        recommendation = forecasting.reorder_recommendations([refreshed])[0]
        assert recommendation.recommended_order == 105

    def test_items_are_refreshed_copies(self, forecasting, inventory, sales):
        analytics = forecasting.compute_analytics(inventory, sales)
        assert analytics.items[0].reorder_point == 14
        assert inventory[0].reorder_point == 10

    def test_supplier_performance(self, forecasting, inventory, sales):
        performance = {p.supplier: p for p in forecasting.compute_analytics(inventory, sales).supplier_performance}

        assert performance["Acme Supply"].total_products == 4
        assert performance["Acme Supply"].average_lead_time == 7
        assert performance["Acme Supply"].reliability == 100
        assert performance["Slow Farms"].reliability == 50

    def test_supplier_reliability_floors_at_zero(self, forecasting, make_item):
        items = [make_item("a", lead_time_days=7, supplier="S"), make_item("b", lead_time_days=37, supplier="S")]
        performance = forecasting.supplier_performance(items)[0]
        assert performance.average_lead_time == 22
        assert performance.reliability == 0

    def test_category_performance(self, forecasting, inventory, sales):
        performance = {c.category: c for c in forecasting.compute_analytics(inventory, sales).category_performance}

        flower = performance["flower"]
        assert flower.revenue == pytest.approx(200.0)
        assert flower.cost == pytest.approx(80.0)
        assert flower.profit_margin == pytest.approx(60.0)
        assert flower.stock_value == pytest.approx((5 + 30 + 90 + 8) * 4.0)

        edibles = performance["edibles"]
        assert edibles.profit_margin == pytest.approx(30.0)
        assert edibles.turnover_rate == pytest.approx(182.5)

    def test_category_without_sales(self, forecasting, make_item, sales):
        performance = forecasting.category_performance([make_item(category="vapes")], sales)
        assert len(performance) == 1
        assert performance[0].revenue == 0
        assert performance[0].profit_margin == 0


# ── Forecast simulation ────────────────────────────────────────────────


class TestForecast:
    def test_deterministic_walk(self, clock, stub_rng, make_item):
        rng = stub_rng(1.0)
        engine = InventoryForecasting(clock=clock, rng=rng)
        item = make_item(current_stock=10, reorder_point=4, max_stock=50, lead_time_days=5, average_daily_sales=3.0)

        forecast = engine.forecast_item(item, days=5)

        assert [p.date for p in forecast.predicted_demand] == [
            "2025-06-15",
            "2025-06-16",
            "2025-06-17",
            "2025-06-18",
            "2025-06-19",
        ]
        assert [p.expected_sales for p in forecast.predicted_demand] == [3, 3, 3, 3, 3]
        assert [p.stock_level for p in forecast.predicted_demand] == [7, 4, 1, 0, 0]
        assert [p.reorder_needed for p in forecast.predicted_demand] == [False, True, True, True, True]
        assert forecast.recommended_reorder_date == "2025-06-16"
        assert forecast.stockout_probability == pytest.approx(40.0)
        assert forecast.recommended_order_quantity == 57
        assert rng.calls == [(0.8, 1.2)] * 5

    def test_expected_sales_round_half_up(self, forecasting, make_item):
        forecast = forecasting.forecast_item(make_item(current_stock=100, average_daily_sales=2.5), days=1)
        assert forecast.predicted_demand[0].expected_sales == 3

    def test_jitter_band_is_configurable(self, clock, stub_rng, make_item):
        rng = stub_rng(1.0)
        engine = InventoryForecasting(clock=clock, rng=rng, demand_jitter=(0.9, 1.1))
        engine.forecast_item(make_item(average_daily_sales=1.0), days=2)
        assert rng.calls == [(0.9, 1.1), (0.9, 1.1)]

    def test_no_reorder_in_horizon_uses_lead_time(self, forecasting, make_item):
        item = make_item(current_stock=100, reorder_point=10, lead_time_days=7, average_daily_sales=1.0)
        forecast = forecasting.forecast_item(item, days=5)

        assert forecast.recommended_reorder_date == "2025-06-22"
        assert forecast.stockout_probability == 0

    def test_zero_days(self, forecasting, make_item):
        forecast = forecasting.forecast_item(make_item(average_daily_sales=1.0), days=0)
        assert forecast.predicted_demand == []
        assert forecast.stockout_probability == 0

    def test_forecast_by_product_id(self, forecasting, inventory):
        forecast = forecasting.forecast("p3", inventory, days=3)
        assert forecast.product_id == "p3"
        assert forecast.current_stock == 90
        assert len(forecast.predicted_demand) == 3

    def test_unknown_product_raises(self, forecasting, inventory):
        with pytest.raises(NotFoundError) as exc:
            forecasting.forecast("missing", inventory)
        assert exc.value.key == "missing"

    def test_seeded_generator_is_reproducible(self, clock, make_item):
        item = make_item(current_stock=200, average_daily_sales=6.0)
        first = InventoryForecasting(clock=clock, rng=np.random.default_rng(42)).forecast_item(item, days=30)
        second = InventoryForecasting(clock=clock, rng=np.random.default_rng(42)).forecast_item(item, days=30)

        assert first == second
        assert all(5 <= p.expected_sales <= 7 for p in first.predicted_demand)

    def test_per_call_generator_overrides_engine_source(self, forecasting, stub_rng, make_item):
        per_call = stub_rng(1.2)
        forecast = forecasting.forecast_item(make_item(current_stock=100, average_daily_sales=5.0), days=3, rng=per_call)

        assert [p.expected_sales for p in forecast.predicted_demand] == [6, 6, 6]
        assert len(per_call.calls) == 3
        assert forecasting.rng.calls == []

    def test_forecast_by_product_id_passes_generator(self, forecasting, stub_rng, inventory):
        per_call = stub_rng(1.0)
        forecasting.forecast("p3", inventory, days=2, rng=per_call)

        assert len(per_call.calls) == 2
        assert forecasting.rng.calls == []
