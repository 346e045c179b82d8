"""
ShelfSignal Database Models

Reference storage for the transaction log and inventory snapshot. The
analytics engines never query these tables; the SQL repositories map rows
to and from the engine dataclasses.

Tables:
  1. sales_transactions      - Completed checkouts (append-only)
  2. transaction_line_items  - Product lines per transaction
  3. inventory_items         - Current per-product stock state
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from db.session import Base

# ─── 1. Sales Transactions ──────────────────────────────────────────────────


class SalesTransactionRecord(Base):
    __tablename__ = "sales_transactions"

    # Insertion sequence keeps the log in recorded order for trimming
    seq = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String(100), nullable=False, unique=True)
    timestamp = Column(BigInteger, nullable=False)  # epoch ms
    customer_id = Column(String(100), nullable=False)
    subtotal = Column(Float, nullable=False, default=0.0)
    tax = Column(Float, nullable=False, default=0.0)
    shipping = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False)
    payment_method = Column(String(50), default="")
    customer_segment = Column(String(20), default="retail")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_sales_transactions_customer", "customer_id"),
        Index("ix_sales_transactions_timestamp", "timestamp"),
    )

    items = relationship(
        "TransactionLineItemRecord",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionLineItemRecord.position",
        lazy="selectin",
    )


# ─── 2. Transaction Line Items ──────────────────────────────────────────────


class TransactionLineItemRecord(Base):
    __tablename__ = "transaction_line_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_seq = Column(Integer, ForeignKey("sales_transactions.seq", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    product_id = Column(String(100), nullable=False)
    product_name = Column(String(255), nullable=False, default="")
    category = Column(String(100), nullable=False, default="")
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False, default=0.0)
    total_price = Column(Float, nullable=False)
    cost_of_goods_sold = Column(Float, nullable=False, default=0.0)

    __table_args__ = (
        Index("ix_line_items_product", "product_id"),
        CheckConstraint("quantity > 0", name="ck_line_item_quantity_positive"),
    )

    transaction = relationship("SalesTransactionRecord", back_populates="items")


# ─── 3. Inventory Items ─────────────────────────────────────────────────────


class InventoryItemRecord(Base):
    __tablename__ = "inventory_items"

    product_id = Column(String(100), primary_key=True)
    product_name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, default="")
    current_stock = Column(Integer, nullable=False, default=0)
    reorder_point = Column(Integer, nullable=False, default=0)
    max_stock = Column(Integer, nullable=False, default=0)
    cost_per_unit = Column(Float, nullable=False, default=0.0)
    sell_price = Column(Float, nullable=False, default=0.0)
    supplier = Column(String(255), nullable=False, default="")
    lead_time_days = Column(Integer, nullable=False, default=7)
    last_restocked = Column(BigInteger, nullable=False, default=0)  # epoch ms

    # Cached from the last analytics pass
    average_daily_sales = Column(Float, nullable=False, default=0.0)
    stockout_risk = Column(String(10), nullable=False, default="low")
    turnover_rate = Column(Float, nullable=False, default=0.0)
    days_of_inventory = Column(Float, nullable=False, default=0.0)

    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_inventory_items_category", "category"),
        Index("ix_inventory_items_supplier", "supplier"),
        CheckConstraint("stockout_risk IN ('low', 'medium', 'high')", name="ck_inventory_stockout_risk"),
    )
