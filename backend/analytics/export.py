"""
Report export — plain nested records for reporting and JSON export.

Engine reports are dataclasses; pydantic's ``TypeAdapter`` serializes them
in JSON mode and keys are rewritten to camelCase, the shape the external
dashboard/export consumers read.
"""

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter
from pydantic.alias_generators import to_camel

from analytics.revenue import RevenueMetrics

TOP_PRODUCTS_IN_EXPORT = 10


@lru_cache(maxsize=None)
def _adapter(report_type: type) -> TypeAdapter:
    return TypeAdapter(report_type)


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {to_camel(str(key)): _camelize(inner) for key, inner in value.items()}
    if isinstance(value, list):
        return [_camelize(inner) for inner in value]
    return value


def to_record(report: Any) -> Any:
    """Convert an engine report (or a list of them) into JSON-safe camelCase dicts."""
    if isinstance(report, list):
        return [to_record(entry) for entry in report]
    return _camelize(_adapter(type(report)).dump_python(report, mode="json"))


def revenue_report(
    metrics: RevenueMetrics,
    transaction_count: int,
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    """Revenue export document: headline summary, trends, top 10 products, breakdowns."""
    generated_at = generated_at or datetime.now(timezone.utc)
    record = to_record(metrics)
    return {
        "generatedAt": generated_at.isoformat(),
        "summary": {
            "totalRevenue": metrics.total_revenue,
            "totalOrders": metrics.total_orders,
            "averageOrderValue": metrics.average_order_value,
            "grossMargin": metrics.profit_margins.gross_margin,
        },
        "trends": record["trends"],
        "topProducts": record["revenueByProduct"][:TOP_PRODUCTS_IN_EXPORT],
        "categoryBreakdown": record["revenueByCategory"],
        "seasonalData": record["seasonalData"],
        "transactionCount": transaction_count,
    }


def dumps(record: Any) -> str:
    """Serialize a record (from ``to_record``/``revenue_report``) as indented JSON."""
    return _adapter(type(record)).dump_json(record, indent=2).decode("utf-8")
