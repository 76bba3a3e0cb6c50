from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional


# Schema for displaying company details
class CompanyOut(BaseModel):
    id: int
    name: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Schema for registering a new tenant
class CompanyCreate(BaseModel):
    name: str = Field(min_length=1)
