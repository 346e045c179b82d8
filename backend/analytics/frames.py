"""
Tabular views over the transaction log.

Flattens ``SalesTransaction`` lists into pandas DataFrames so calendar
grouping (monthly buckets, distinct selling days) can be done with
``groupby`` instead of hand-rolled dict bookkeeping. Calendar columns are
derived in UTC.
"""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from analytics.transactions import SalesTransaction

TRANSACTION_COLUMNS = ["id", "timestamp", "customer_id", "total"]
LINE_ITEM_COLUMNS = [
    "transaction_id",
    "timestamp",
    "product_id",
    "product_name",
    "category",
    "quantity",
    "total_price",
    "cost_of_goods_sold",
]


def transactions_frame(transactions: Iterable[SalesTransaction]) -> pd.DataFrame:
    """
    One row per transaction.

    Columns: id, timestamp (epoch ms), customer_id, total, month ("YYYY-MM").
    """
    rows = [(t.id, t.timestamp, t.customer_id, t.total) for t in transactions]
    frame = pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)
    frame["timestamp"] = frame["timestamp"].astype("int64")
    frame["total"] = frame["total"].astype("float64")
    frame["month"] = pd.to_datetime(frame["timestamp"], unit="ms", utc=True).dt.strftime("%Y-%m")
    return frame


def line_items_frame(transactions: Iterable[SalesTransaction]) -> pd.DataFrame:
    """
    One row per line item, carrying its parent transaction id and timestamp.

    Adds a ``sale_date`` ("YYYY-MM-DD") column for per-day grouping.
    """
    rows = [
        (
            t.id,
            t.timestamp,
            item.product_id,
            item.product_name,
            item.category,
            item.quantity,
            item.total_price,
            item.cost_of_goods_sold,
        )
        for t in transactions
        for item in t.items
    ]
    frame = pd.DataFrame(rows, columns=LINE_ITEM_COLUMNS)
    frame["timestamp"] = frame["timestamp"].astype("int64")
    frame["quantity"] = frame["quantity"].astype("int64")
    frame["total_price"] = frame["total_price"].astype("float64")
    frame["cost_of_goods_sold"] = frame["cost_of_goods_sold"].astype("float64")
    frame["sale_date"] = pd.to_datetime(frame["timestamp"], unit="ms", utc=True).dt.strftime("%Y-%m-%d")
    return frame
