"""
Transaction and Inventory Repositories.

The analytics engines are pure functions over materialized snapshots; these
repositories are where snapshots come from and where the two mutations the
system owns (recording a sale, setting stock) land.

Two implementations share each protocol:
  - In-memory: process-local lists, used by tests and demos
  - SQL: async SQLAlchemy over the tables in db/models.py

The transaction log is capped (default 10 000 entries); recording past the
cap drops the oldest transactions.
"""

from dataclasses import replace
from typing import Protocol

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from analytics.transactions import LineItem, SalesTransaction
from core.clock import Clock, system_clock
from core.config import Settings
from core.exceptions import NotFoundError
from db.models import InventoryItemRecord, SalesTransactionRecord, TransactionLineItemRecord
from inventory.models import InventoryItem

logger = structlog.get_logger()

DEFAULT_TRANSACTION_LOG_LIMIT = 10_000


class TransactionRepository(Protocol):
    async def list_transactions(self) -> list[SalesTransaction]: ...

    async def record(self, transaction: SalesTransaction) -> None: ...

    async def clear(self) -> None: ...


class InventoryRepository(Protocol):
    async def list_items(self) -> list[InventoryItem]: ...

    async def get_item(self, product_id: str) -> InventoryItem: ...

    async def update_stock(self, product_id: str, new_stock: int) -> InventoryItem: ...

    async def upsert(self, item: InventoryItem) -> None: ...

    async def cache_metrics(self, items: list[InventoryItem]) -> None: ...

    async def clear(self) -> None: ...


# ── In-memory ─────────────────────────────────────────────────────────────


class InMemoryTransactionRepository:
    def __init__(
        self,
        transactions: list[SalesTransaction] | None = None,
        limit: int = DEFAULT_TRANSACTION_LOG_LIMIT,
    ):
        self.limit = limit
        self._transactions: list[SalesTransaction] = list(transactions or [])

    @classmethod
    def from_settings(cls, settings: Settings) -> "InMemoryTransactionRepository":
        return cls(limit=settings.transaction_log_limit)

    async def list_transactions(self) -> list[SalesTransaction]:
        return list(self._transactions)

    async def record(self, transaction: SalesTransaction) -> None:
        self._transactions.append(transaction)
        overflow = len(self._transactions) - self.limit
        if overflow > 0:
            del self._transactions[:overflow]
            logger.info("transactions.trimmed", dropped=overflow, limit=self.limit)
        logger.info(
            "transactions.recorded",
            transaction_id=transaction.id,
            total=transaction.total,
            items=len(transaction.items),
        )

    async def clear(self) -> None:
        self._transactions.clear()


class InMemoryInventoryRepository:
    def __init__(self, items: list[InventoryItem] | None = None, clock: Clock = system_clock):
        self.clock = clock
        self._items: dict[str, InventoryItem] = {item.product_id: replace(item) for item in items or []}

    # Reads hand out copies; only update_stock, upsert and cache_metrics touch stored rows

    async def list_items(self) -> list[InventoryItem]:
        return [replace(item) for item in self._items.values()]

    def _stored(self, product_id: str) -> InventoryItem:
        try:
            return self._items[product_id]
        except KeyError:
            raise NotFoundError("product", product_id) from None

    async def get_item(self, product_id: str) -> InventoryItem:
        return replace(self._stored(product_id))

    async def update_stock(self, product_id: str, new_stock: int) -> InventoryItem:
        item = self._stored(product_id)
        item.current_stock = new_stock
        item.last_restocked = self.clock()
        logger.info("inventory.stock_updated", product_id=product_id, new_stock=new_stock)
        return replace(item)

    async def upsert(self, item: InventoryItem) -> None:
        self._items[item.product_id] = replace(item)

    async def cache_metrics(self, items: list[InventoryItem]) -> None:
        for refreshed in items:
            stored = self._items.get(refreshed.product_id)
            if stored is not None:
                _copy_cached_metrics(refreshed, stored)

    async def clear(self) -> None:
        self._items.clear()


def _copy_cached_metrics(source, target) -> None:
    # Reorder point is not cached; the stored value is the floor
    target.average_daily_sales = source.average_daily_sales
    target.stockout_risk = source.stockout_risk
    target.turnover_rate = source.turnover_rate
    target.days_of_inventory = source.days_of_inventory


# ── SQL ───────────────────────────────────────────────────────────────────


def transaction_to_row(transaction: SalesTransaction) -> SalesTransactionRecord:
    return SalesTransactionRecord(
        transaction_id=transaction.id,
        timestamp=transaction.timestamp,
        customer_id=transaction.customer_id,
        subtotal=transaction.subtotal,
        tax=transaction.tax,
        shipping=transaction.shipping,
        total=transaction.total,
        payment_method=transaction.payment_method,
        customer_segment=transaction.customer_segment,
        items=[
            TransactionLineItemRecord(
                position=position,
                product_id=item.product_id,
                product_name=item.product_name,
                category=item.category,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                cost_of_goods_sold=item.cost_of_goods_sold,
            )
            for position, item in enumerate(transaction.items)
        ],
    )


def row_to_transaction(row: SalesTransactionRecord) -> SalesTransaction:
    return SalesTransaction(
        id=row.transaction_id,
        timestamp=row.timestamp,
        customer_id=row.customer_id,
        items=tuple(
            LineItem(
                product_id=line.product_id,
                product_name=line.product_name,
                category=line.category,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
                cost_of_goods_sold=line.cost_of_goods_sold,
            )
            for line in row.items
        ),
        subtotal=row.subtotal,
        tax=row.tax,
        shipping=row.shipping,
        total=row.total,
        payment_method=row.payment_method or "",
        customer_segment=row.customer_segment or "retail",
    )


def item_to_row(item: InventoryItem) -> InventoryItemRecord:
    return InventoryItemRecord(
        product_id=item.product_id,
        product_name=item.product_name,
        category=item.category,
        current_stock=item.current_stock,
        reorder_point=item.reorder_point,
        max_stock=item.max_stock,
        cost_per_unit=item.cost_per_unit,
        sell_price=item.sell_price,
        supplier=item.supplier,
        lead_time_days=item.lead_time_days,
        last_restocked=item.last_restocked,
        average_daily_sales=item.average_daily_sales,
        stockout_risk=item.stockout_risk,
        turnover_rate=item.turnover_rate,
        days_of_inventory=item.days_of_inventory,
    )


def row_to_item(row: InventoryItemRecord) -> InventoryItem:
    return InventoryItem(
        product_id=row.product_id,
        product_name=row.product_name,
        category=row.category,
        current_stock=row.current_stock,
        reorder_point=row.reorder_point,
        max_stock=row.max_stock,
        cost_per_unit=row.cost_per_unit,
        sell_price=row.sell_price,
        supplier=row.supplier,
        lead_time_days=row.lead_time_days,
        last_restocked=row.last_restocked,
        average_daily_sales=row.average_daily_sales,
        stockout_risk=row.stockout_risk,
        turnover_rate=row.turnover_rate,
        days_of_inventory=row.days_of_inventory,
    )


class SqlTransactionRepository:
    def __init__(self, db: AsyncSession, limit: int = DEFAULT_TRANSACTION_LOG_LIMIT):
        self.db = db
        self.limit = limit

    @classmethod
    def from_settings(cls, db: AsyncSession, settings: Settings) -> "SqlTransactionRepository":
        return cls(db, limit=settings.transaction_log_limit)

    async def list_transactions(self) -> list[SalesTransaction]:
        result = await self.db.execute(select(SalesTransactionRecord).order_by(SalesTransactionRecord.seq))
        return [row_to_transaction(row) for row in result.scalars().all()]

    async def record(self, transaction: SalesTransaction) -> None:
        self.db.add(transaction_to_row(transaction))
        await self.db.flush()
        await self._trim()
        await self.db.commit()
        logger.info(
            "transactions.recorded",
            transaction_id=transaction.id,
            total=transaction.total,
            items=len(transaction.items),
        )

    async def _trim(self) -> None:
        count = await self.db.scalar(select(func.count()).select_from(SalesTransactionRecord))
        overflow = (count or 0) - self.limit
        if overflow <= 0:
            return

        result = await self.db.execute(
            select(SalesTransactionRecord.seq).order_by(SalesTransactionRecord.seq).limit(overflow)
        )
        stale = list(result.scalars().all())
        await self.db.execute(
            delete(TransactionLineItemRecord).where(TransactionLineItemRecord.transaction_seq.in_(stale))
        )
        await self.db.execute(delete(SalesTransactionRecord).where(SalesTransactionRecord.seq.in_(stale)))
        logger.info("transactions.trimmed", dropped=len(stale), limit=self.limit)

    async def clear(self) -> None:
        await self.db.execute(delete(TransactionLineItemRecord))
        await self.db.execute(delete(SalesTransactionRecord))
        await self.db.commit()


class SqlInventoryRepository:
    def __init__(self, db: AsyncSession, clock: Clock = system_clock):
        self.db = db
        self.clock = clock

    async def list_items(self) -> list[InventoryItem]:
        result = await self.db.execute(select(InventoryItemRecord).order_by(InventoryItemRecord.product_id))
        return [row_to_item(row) for row in result.scalars().all()]

    async def _get_row(self, product_id: str) -> InventoryItemRecord:
        row = await self.db.get(InventoryItemRecord, product_id)
        if row is None:
            raise NotFoundError("product", product_id)
        return row

    async def get_item(self, product_id: str) -> InventoryItem:
        return row_to_item(await self._get_row(product_id))

    async def update_stock(self, product_id: str, new_stock: int) -> InventoryItem:
        row = await self._get_row(product_id)
        row.current_stock = new_stock
        row.last_restocked = self.clock()
        item = row_to_item(row)
        await self.db.commit()
        logger.info("inventory.stock_updated", product_id=product_id, new_stock=new_stock)
        return item

    async def upsert(self, item: InventoryItem) -> None:
        await self.db.merge(item_to_row(item))
        await self.db.commit()

    async def cache_metrics(self, items: list[InventoryItem]) -> None:
        for refreshed in items:
            row = await self.db.get(InventoryItemRecord, refreshed.product_id)
            if row is not None:
                _copy_cached_metrics(refreshed, row)
        await self.db.commit()

    async def clear(self) -> None:
        await self.db.execute(delete(InventoryItemRecord))
        await self.db.commit()
