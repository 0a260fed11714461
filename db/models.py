from datetime import datetime

from sqlalchemy import (
    Column, String, Numeric, Integer, TIMESTAMP, BigInteger, ForeignKey, Index
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# Mirrors of the storage backend's tables. The analytics service only reads
# them; creating them is left to the storage layer (and to the test suite).

# 1) Products
class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    sku = Column(String(100))
    cost = Column(Numeric(12, 2), default=0)
    stock_quantity = Column(Integer, nullable=False, default=0)
    min_stock_level = Column(Integer, default=0)
    max_stock_level = Column(Integer)
    lead_time_days = Column(Integer)
    active = Column(Integer, nullable=False, default=1)
    created_at = Column(TIMESTAMP, default=datetime.utcnow)


# 2) Inventory transactions (negative quantity_change = depletion)
class InventoryTransaction(Base):
    __tablename__ = "inventory_transactions"
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity_change = Column(Integer, nullable=False)
    transaction_type = Column(String(50))
    notes = Column(String(500))
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)
    __table_args__ = (
        Index("ix_inventory_transactions_product_created", "product_id", "created_at"),
    )
