from typing import List

from pydantic import BaseModel, ConfigDict, Field


class CartItemIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    product_id: int = Field(..., alias="productId")
    quantity: int


class CheckoutIn(BaseModel):
    # emptiness is reported by the checkout service, not the schema
    items: List[CartItemIn]


class CheckoutOut(BaseModel):
    id: int
    total: float
    message: str
