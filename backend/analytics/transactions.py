"""
Sales Transaction Log — the append-only record of completed checkouts.

Transactions are created by the checkout flow and never mutated. Every
analytics engine consumes them as a plain list; the engines do not
re-validate totals (``total ≈ subtotal + tax + shipping``) or coerce
malformed numbers.

Records coming from the surrounding application use camelCase keys
(``customerId``, ``costOfGoodsSold``); ``from_record``/``to_record`` map
between that shape and the snake_case dataclasses used internally.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

CustomerType = Literal["retail", "wholesale", "premium"]


@dataclass(frozen=True)
class LineItem:
    """One product line on a transaction."""

    product_id: str
    product_name: str
    category: str
    quantity: int
    unit_price: float
    total_price: float
    cost_of_goods_sold: float  # per unit

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "LineItem":
        return cls(
            product_id=str(record["productId"]),
            product_name=record.get("productName", ""),
            category=record.get("category", ""),
            quantity=int(record["quantity"]),
            unit_price=float(record.get("unitPrice", 0)),
            total_price=float(record["totalPrice"]),
            cost_of_goods_sold=float(record.get("costOfGoodsSold", 0)),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "category": self.category,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
            "totalPrice": self.total_price,
            "costOfGoodsSold": self.cost_of_goods_sold,
        }


@dataclass(frozen=True)
class SalesTransaction:
    """A completed sale. ``timestamp`` is epoch milliseconds."""

    id: str
    timestamp: int
    customer_id: str
    items: tuple[LineItem, ...] = field(default_factory=tuple)
    subtotal: float = 0.0
    tax: float = 0.0
    shipping: float = 0.0
    total: float = 0.0
    payment_method: str = ""
    customer_segment: CustomerType | str = "retail"

    def __post_init__(self):
        # Items are always stored as a tuple
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "SalesTransaction":
        return cls(
            id=str(record["id"]),
            timestamp=int(record["timestamp"]),
            customer_id=str(record["customerId"]),
            items=tuple(LineItem.from_record(item) for item in record.get("items", [])),
            subtotal=float(record.get("subtotal", 0)),
            tax=float(record.get("tax", 0)),
            shipping=float(record.get("shipping", 0)),
            total=float(record["total"]),
            payment_method=record.get("paymentMethod", ""),
            customer_segment=record.get("customerSegment", "retail"),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "customerId": self.customer_id,
            "items": [item.to_record() for item in self.items],
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping": self.shipping,
            "total": self.total,
            "paymentMethod": self.payment_method,
            "customerSegment": self.customer_segment,
        }
