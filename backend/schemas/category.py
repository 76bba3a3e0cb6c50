# backend/schemas/category.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional

from schemas.stock import CamelInput


class CategoryCreate(CamelInput):
    name: str = Field(min_length=1)
    parent_id: Optional[int] = None


class CategoryOut(BaseModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    company_id: int

    model_config = ConfigDict(from_attributes=True)
