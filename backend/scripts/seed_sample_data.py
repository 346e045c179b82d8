"""
Seed Sample Data — Demo transaction log and inventory snapshot.

Generates 150 transactions spread over the last 90 days (1-3 lines each,
50 customers, 5 products) plus a matching 5-item inventory snapshot, and
writes them through the SQL repositories.

Run: python scripts/seed_sample_data.py --seed 42
"""

import argparse
import asyncio
import os
import sys

import numpy as np
import structlog

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from analytics.transactions import LineItem, SalesTransaction  # noqa: E402
from core.clock import days_to_ms, system_clock  # noqa: E402
from inventory.models import InventoryItem  # noqa: E402

logger = structlog.get_logger()

TAX_RATE = 0.08
FREE_SHIPPING_THRESHOLD = 100
FLAT_SHIPPING = 10
PAYMENT_METHODS = ["credit_card", "debit_card", "cash"]
CUSTOMER_TYPES = ["retail", "wholesale", "premium"]

# (product_id, name, category, sell price, unit cost)
SAMPLE_PRODUCTS = [
    ("1", "House Blend Coffee", "coffee", 45.0, 25.0),
    ("2", "Dark Roast Espresso", "espresso", 50.0, 28.0),
    ("3", "Single Origin Sampler", "specialty", 48.0, 26.0),
    ("4", "Cold Brew Concentrate", "coffee", 52.0, 30.0),
    ("5", "Decaf Espresso", "espresso", 46.0, 24.0),
]

# (product_id, current stock, reorder point, max stock, supplier, lead time, days since restock)
SAMPLE_STOCK = [
    ("1", 45, 20, 100, "Premium Roasters Co.", 7, 15),
    ("2", 12, 15, 80, "West Coast Growers", 10, 25),
    ("3", 67, 25, 120, "Premium Roasters Co.", 7, 8),
    ("4", 23, 18, 90, "Northern Farms", 14, 20),
    ("5", 8, 12, 70, "Valley Farms", 12, 30),
]


def generate_sample_transactions(
    rng: np.random.Generator,
    now_ms: int,
    count: int = 150,
    customers: int = 50,
    history_days: int = 90,
) -> list[SalesTransaction]:
    transactions = []
    for i in range(count):
        timestamp = int(now_ms - days_to_ms(int(rng.integers(0, history_days))))

        items = []
        for _ in range(int(rng.integers(1, 4))):
            product_id, name, category, price, cogs = SAMPLE_PRODUCTS[int(rng.integers(0, len(SAMPLE_PRODUCTS)))]
            quantity = int(rng.integers(1, 4))
            items.append(
                LineItem(
                    product_id=product_id,
                    product_name=name,
                    category=category,
                    quantity=quantity,
                    unit_price=price,
                    total_price=price * quantity,
                    cost_of_goods_sold=cogs,
                )
            )

        subtotal = sum(item.total_price for item in items)
        tax = subtotal * TAX_RATE
        shipping = 0 if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING
        transactions.append(
            SalesTransaction(
                id=f"txn_{i + 1}",
                timestamp=timestamp,
                customer_id=f"customer_{int(rng.integers(1, customers + 1))}",
                items=tuple(items),
                subtotal=subtotal,
                tax=tax,
                shipping=shipping,
                total=subtotal + tax + shipping,
                payment_method=PAYMENT_METHODS[int(rng.integers(0, len(PAYMENT_METHODS)))],
                customer_segment=CUSTOMER_TYPES[int(rng.integers(0, len(CUSTOMER_TYPES)))],
            )
        )
    return transactions


def sample_inventory(now_ms: int) -> list[InventoryItem]:
    catalog = {p[0]: p for p in SAMPLE_PRODUCTS}
    inventory = []
    for product_id, stock, reorder_point, max_stock, supplier, lead_time, restocked_days_ago in SAMPLE_STOCK:
        _, name, category, price, cost = catalog[product_id]
        inventory.append(
            InventoryItem(
                product_id=product_id,
                product_name=name,
                category=category,
                current_stock=stock,
                reorder_point=reorder_point,
                max_stock=max_stock,
                cost_per_unit=cost,
                sell_price=price,
                supplier=supplier,
                lead_time_days=lead_time,
                last_restocked=int(now_ms - days_to_ms(restocked_days_ago)),
            )
        )
    return inventory


async def seed_data(seed: int | None, count: int) -> dict[str, int]:
    from core.config import get_settings
    from db.repositories import SqlInventoryRepository, SqlTransactionRepository
    from db.session import create_all, get_engine, get_sessionmaker

    now_ms = system_clock()
    rng = np.random.default_rng(seed)
    transactions = generate_sample_transactions(rng, now_ms, count=count)
    inventory = sample_inventory(now_ms)

    engine = get_engine()
    await create_all(engine)
    try:
        async with get_sessionmaker(engine)() as db:
            transaction_repo = SqlTransactionRepository.from_settings(db, get_settings())
            inventory_repo = SqlInventoryRepository(db)
            for txn in transactions:
                await transaction_repo.record(txn)
            for item in inventory:
                await inventory_repo.upsert(item)
    finally:
        await engine.dispose()

    summary = {"transactions": len(transactions), "inventory_items": len(inventory)}
    logger.info("seed.completed", **summary)
    return summary


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the database with demo transactions and inventory.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data.")
    parser.add_argument("--count", type=int, default=150, help="Number of transactions to generate.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    asyncio.run(seed_data(args.seed, args.count))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
