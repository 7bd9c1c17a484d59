from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
    id: int
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    price: float
    quantity: int
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")


class CreateProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    image: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)


class CreateProductOut(BaseModel):
    id: int
    message: str
