"""
Inventory snapshot rows.

``InventoryItem`` is owned by the catalog/procurement system. The forecasting
engine reads it and returns refreshed copies carrying the derived fields
(average daily sales, stockout risk, turnover, days of inventory); only
``update_stock`` on an inventory repository mutates stored rows.
"""

from dataclasses import dataclass
from typing import Any, Literal

StockoutRisk = Literal["low", "medium", "high"]


@dataclass
class InventoryItem:
    product_id: str
    product_name: str
    category: str
    current_stock: int
    reorder_point: int
    max_stock: int
    cost_per_unit: float
    sell_price: float
    supplier: str
    lead_time_days: int
    last_restocked: int = 0  # epoch ms

    # Derived, recomputed on every analytics pass
    average_daily_sales: float = 0.0
    stockout_risk: StockoutRisk = "low"
    turnover_rate: float = 0.0
    days_of_inventory: float = 0.0

    @property
    def stock_value(self) -> float:
        return self.current_stock * self.cost_per_unit

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "InventoryItem":
        return cls(
            product_id=str(record["productId"]),
            product_name=record.get("productName", ""),
            category=record.get("category", ""),
            current_stock=int(record["currentStock"]),
            reorder_point=int(record.get("reorderPoint", 0)),
            max_stock=int(record.get("maxStock", 0)),
            cost_per_unit=float(record.get("costPerUnit", 0)),
            sell_price=float(record.get("sellPrice", 0)),
            supplier=record.get("supplier", ""),
            lead_time_days=int(record.get("leadTimeDays", 0)),
            last_restocked=int(record.get("lastRestocked", 0)),
            average_daily_sales=float(record.get("averageDailySales", 0)),
            stockout_risk=record.get("stockoutRisk", "low"),
            turnover_rate=float(record.get("turnoverRate", 0)),
            days_of_inventory=float(record.get("daysOfInventory", 0)),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "category": self.category,
            "currentStock": self.current_stock,
            "reorderPoint": self.reorder_point,
            "maxStock": self.max_stock,
            "costPerUnit": self.cost_per_unit,
            "sellPrice": self.sell_price,
            "supplier": self.supplier,
            "leadTimeDays": self.lead_time_days,
            "lastRestocked": self.last_restocked,
            "averageDailySales": self.average_daily_sales,
            "stockoutRisk": self.stockout_risk,
            "turnoverRate": self.turnover_rate,
            "daysOfInventory": self.days_of_inventory,
        }
