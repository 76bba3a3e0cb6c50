# backend/models/stock.py
import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, ForeignKey, DateTime, Enum, CheckConstraint, func
)
from sqlalchemy.orm import relationship
from database import Base


class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUST = "ADJUST"


# Stock item owned by a company. quantity and cost_price are maintained by the ledger only.
class StockItem(Base):
    __tablename__ = "stock_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    sku = Column(String, nullable=True, index=True)
    barcode = Column(String, nullable=True, index=True)
    brand = Column(String, nullable=True)
    location = Column(String, nullable=True)

    quantity = Column(Integer, CheckConstraint("quantity >= 0"), nullable=False, default=0)
    # Weighted average of all costed receipts
    cost_price = Column(Numeric(14, 4), CheckConstraint("cost_price >= 0"), nullable=False, default=0)
    selling_price = Column(Numeric(14, 4), CheckConstraint("selling_price >= 0"), nullable=False, default=0)
    vat_rate = Column(Numeric(6, 2), CheckConstraint("vat_rate >= 0"), nullable=False, default=0)

    min_stock_level = Column(Integer, nullable=True)
    max_stock_level = Column(Integer, nullable=True)
    unit = Column(String, nullable=True)

    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Bumped on every UPDATE; a writer holding a stale version fails instead of overwriting
    version = Column(Integer, nullable=False, default=1)

    category = relationship("Category")
    movements = relationship(
        "StockMovement", back_populates="stock_item", cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}


# Append-only movement log; quantity is signed (+IN, -OUT)
class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    stock_item_id = Column(Integer, ForeignKey("stock_items.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    type = Column(Enum(MovementType), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Item quantity right after this movement, as written in the same transaction
    balance_after = Column(Integer, nullable=False)

    # Receipt cost for IN, sale price for OUT
    cost_price = Column(Numeric(14, 4), nullable=True)
    selling_price = Column(Numeric(14, 4), nullable=True)
    notes = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    stock_item = relationship("StockItem", back_populates="movements")
    user = relationship("User")
