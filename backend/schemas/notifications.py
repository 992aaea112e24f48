from pydantic import BaseModel
from typing import List
from decimal import Decimal

from schemas.order import OrderOut, OrderLine


# Recipient of a customer-facing notification
class CustomerView(BaseModel):
    id: int
    email: str
    name: str


# Variables for the new-order-customer and new-order-admin templates
class NewOrderEmail(BaseModel):
    order: OrderOut
    customer: CustomerView
    items: List[OrderLine]
    total_amount: Decimal


# Variables for the shipped, delivered and cancelled templates
class OrderStatusEmail(BaseModel):
    order: OrderOut
    customer: CustomerView
