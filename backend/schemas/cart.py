from pydantic import BaseModel, Field
from typing import List
from decimal import Decimal

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: int
    quantity: int = Field(default=1, gt=0)

# Response schema for a single cart line item, priced at the current catalog price
class CartItemOut(BaseModel):
    id: int
    product_id: int
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

# Response schema for the entire cart summary
class CartOut(BaseModel):
    id: int
    items: List[CartItemOut]
    total: Decimal
