from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


# Checkout payload. Fields are optional here so that missing values produce
# the service's own 400 message instead of a generic 422.
class OrderCreatePayload(BaseModel):
    shipping_address: Optional[str] = None
    contact_phone: Optional[str] = None
    full_name: Optional[str] = None
    payment_method: Optional[str] = None


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: Optional[str] = None


# Cart line frozen at checkout; feeds both the order items and the new-order emails
class OrderLine(BaseModel):
    product_id: int
    product_name: str
    quantity: int
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


# Order as returned from create/update (no items)
class OrderOut(BaseModel):
    id: str
    user_id: int
    status: str
    total_amount: Decimal
    shipping_address: str
    contact_phone: str
    customer_name: str
    payment_method: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def reference(self) -> str:
        # Short human-readable reference used in email subjects
        return self.id[-6:]


class CustomerOut(BaseModel):
    email: str
    name: str


class OrderSummaryOut(OrderOut):
    customer: Optional[CustomerOut] = None


class ProductImageOut(BaseModel):
    id: int
    url: str

    model_config = ConfigDict(from_attributes=True)


class OrderProductOut(BaseModel):
    id: int
    name: str
    images: List[ProductImageOut] = []

    model_config = ConfigDict(from_attributes=True)


class OrderItemOut(BaseModel):
    product_id: int
    quantity: int
    price: Decimal
    line_total: Decimal
    product: Optional[OrderProductOut] = None


class OrderDetailOut(OrderSummaryOut):
    items: List[OrderItemOut]


# Response envelopes
class OrderCreatedResponse(BaseModel):
    success: bool = True
    message: str
    order: OrderOut


class OrderListResponse(BaseModel):
    success: bool = True
    data: List[OrderSummaryOut]


class OrderDetailResponse(BaseModel):
    success: bool = True
    data: OrderDetailOut


class OrderStatusResponse(BaseModel):
    success: bool = True
    message: str
    data: OrderOut


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
