# backend/schemas/stock.py
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import List, Optional, Literal, Union

# Movement directions accepted from clients; ADJUST is internal only
StockMovementType = Literal["IN", "OUT"]


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Request bodies accept the camelCase keys used by the web client as well as snake_case
class CamelInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class StockItemCreate(CamelInput):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    brand: Optional[str] = None
    location: Optional[str] = None
    quantity: int = Field(0, ge=0)
    min_stock_level: Optional[int] = Field(None, ge=0)
    max_stock_level: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    cost_price: float = Field(0, ge=0)
    selling_price: float = Field(0, ge=0)
    vat_rate: Optional[float] = Field(None, ge=0)
    category_id: Optional[int] = None


# PATCH body; quantity and cost can only change through movements
class StockItemUpdate(CamelInput):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    brand: Optional[str] = None
    location: Optional[str] = None
    min_stock_level: Optional[int] = Field(None, ge=0)
    max_stock_level: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    selling_price: Optional[float] = Field(None, ge=0)
    vat_rate: Optional[float] = Field(None, ge=0)
    category_id: Optional[int] = None


# Movement by item id: { stockItemId, quantity, type, notes?, costPrice?, sellingPrice? }
class StockMovementCreate(CamelInput):
    stock_item_id: int
    quantity: int = Field(gt=0)
    type: StockMovementType
    notes: Optional[str] = None
    cost_price: Optional[float] = Field(None, ge=0)
    selling_price: Optional[float] = Field(None, ge=0)


# Movement by scanned code: { code, quantity, type, costPrice?, sellingPrice? }
class ScanTransactionCreate(CamelInput):
    code: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    type: StockMovementType
    cost_price: Optional[float] = Field(None, ge=0)
    selling_price: Optional[float] = Field(None, ge=0)


class ScanOutCreate(CamelInput):
    code: str = Field(min_length=1)


# Cost and profit are absent when the user may not see them
class StockItemOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    brand: Optional[str] = None
    location: Optional[str] = None
    quantity: int
    selling_price: float
    vat_rate: float
    min_stock_level: Optional[int] = None
    max_stock_level: Optional[int] = None
    unit: Optional[str] = None
    category_id: Optional[int] = None
    created_at: Optional[datetime] = None
    cost_price: Optional[float] = None
    profit: Optional[float] = None


class StockMovementOut(ORMBase):
    id: int
    stock_item_id: int
    type: str
    quantity: int
    balance_after: int
    cost_price: Optional[float] = None
    selling_price: Optional[float] = None
    notes: Optional[str] = None
    user_id: int
    created_at: datetime
    stock_item_name: Optional[str] = None
    user_name: Optional[str] = None


class MovementResult(BaseModel):
    message: str
    item: StockItemOut
    movement: StockMovementOut


class CategoryNodeOut(BaseModel):
    id: Union[int, str]
    name: str
    parent_id: Optional[int] = None
    collapsed: bool = False
    total_cost: Optional[float] = None
    total_profit: Optional[float] = None
    items: List[StockItemOut] = []
    children: List["CategoryNodeOut"] = []


class StockTreeOut(BaseModel):
    categories: List[CategoryNodeOut]
    low_stock: List[StockItemOut]


# One printable row per category, in tree order
class StockReportRow(BaseModel):
    level: int
    category_id: Union[int, str]
    name: str
    total_cost: Optional[float] = None
    total_profit: Optional[float] = None
    items: List[StockItemOut] = []


CategoryNodeOut.model_rebuild()
