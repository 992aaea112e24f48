# backend/models/order.py
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base


# Known order statuses. The status column itself stays a free string.
class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def is_known(cls, value: str) -> bool:
        return value in cls._value2member_map_

    @classmethod
    def is_terminal(cls, value: str) -> bool:
        return value in (cls.DELIVERED.value, cls.CANCELLED.value)


def _new_order_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=_new_order_id)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)
    total_amount = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)

    # Delivery and payment details captured at checkout
    shipping_address = Column(String, nullable=False)
    contact_phone = Column(String, nullable=False)
    customer_name = Column(String, nullable=False)
    payment_method = Column(String, nullable=False)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    user = relationship("User")


# Line item with the unit price frozen at purchase time
class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(32), ForeignKey("orders.id"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, CheckConstraint("quantity > 0"), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
