# backend/services/order_service.py
import logging
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy.orm import Session, joinedload

from database import atomic
from models.cart import Cart, CartItem
from models.order import Order, OrderItem, OrderStatus
from models.product import Product
from schemas.order import (
    OrderCreatePayload, OrderOut, OrderLine, OrderSummaryOut, OrderDetailOut,
    OrderItemOut, OrderProductOut, CustomerOut,
)
from services.exceptions import ValidationError, EmptyCartError, NotFoundError
from services.notifications import NotificationDispatcher, NotificationKind
from utils.audit import write_log

logger = logging.getLogger(__name__)

REQUIRED_CHECKOUT_FIELDS = ("shipping_address", "contact_phone", "full_name", "payment_method")


def _customer_of(order: Order) -> Optional[CustomerOut]:
    if order.user is None:
        return None
    return CustomerOut(email=order.user.email, name=order.user.display_name)


class OrderService:
    """
    Order use cases: checkout (cart -> order), admin reads and status changes.

    Notifications are handed to ``schedule`` (``BackgroundTasks.add_task`` in
    the HTTP layer) and are never awaited here.
    """

    def __init__(self, db: Session, dispatcher: NotificationDispatcher, schedule: Callable[..., None]):
        self.db = db
        self.dispatcher = dispatcher
        self.schedule = schedule

    # =====================================================
    # COMMANDS
    # =====================================================
    def create_order(self, user_id: int, payload: OrderCreatePayload, ip: str = None) -> OrderOut:
        if any(not (getattr(payload, f) or "").strip() for f in REQUIRED_CHECKOUT_FIELDS):
            raise ValidationError("All delivery and payment details are required.")

        cart = (
            self.db.query(Cart)
            .options(joinedload(Cart.items).joinedload(CartItem.product))
            .filter(Cart.user_id == user_id)
            .first()
        )
        if not cart or not cart.items:
            raise EmptyCartError("Your cart is empty.")

        # Snapshot current catalog prices; the order never looks at Product.price again
        lines = [
            OrderLine(
                product_id=item.product_id,
                product_name=item.product.name,
                quantity=item.quantity,
                price=Decimal(item.product.price),
            )
            for item in cart.items
        ]
        total_amount = sum((line.line_total for line in lines), Decimal("0.00"))

        with atomic(self.db):
            order = Order(
                user_id=user_id,
                total_amount=total_amount,
                shipping_address=payload.shipping_address.strip(),
                contact_phone=payload.contact_phone.strip(),
                customer_name=payload.full_name.strip(),
                payment_method=payload.payment_method.strip(),
                status=OrderStatus.PENDING.value,
            )
            self.db.add(order)
            self.db.flush()

            self.db.add_all([
                OrderItem(order_id=order.id, product_id=line.product_id, quantity=line.quantity, price=line.price)
                for line in lines
            ])
            self.db.flush()

            self._clear_cart(cart.id)

            write_log(
                self.db, user_id=user_id, action="ORDER_CREATE", resource="orders", ip=ip,
                meta={"order_id": order.id, "items": len(lines), "total": str(total_amount)},
                commit=False,
            )

        self.db.refresh(order)
        created = OrderOut.model_validate(order)
        logger.info("Order %s created for user %s (total %s, %d items)", created.id, user_id, total_amount, len(lines))

        self.schedule(self.dispatcher.notify, NotificationKind.NEW_ORDER, created, lines, total_amount)
        return created

    def update_order_status(self, order_id: str, status: Optional[str], ip: str = None) -> OrderOut:
        status = (status or "").strip()
        if not status:
            raise ValidationError("Status is required.")

        order = self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order not found.")

        # No transition rules are enforced; any non-empty value is stored
        if not OrderStatus.is_known(status):
            logger.warning("Order %s set to unrecognised status %r", order_id, status)

        old_status = order.status
        with atomic(self.db):
            order.status = status
            write_log(
                self.db, user_id=order.user_id, action="ORDER_STATUS_CHANGE", resource="orders", ip=ip,
                meta={"order_id": order.id, "old": old_status, "new": status},
                commit=False,
            )

        self.db.refresh(order)
        updated = OrderOut.model_validate(order)
        logger.info("Order %s status %s -> %s", order_id, old_status, status)

        kind = NotificationKind.for_status(updated.status)
        if kind is not None:
            self.schedule(self.dispatcher.notify, kind, updated)
        return updated

    def _clear_cart(self, cart_id: int) -> None:
        self.db.query(CartItem).filter(CartItem.cart_id == cart_id).delete(synchronize_session=False)

    # =====================================================
    # QUERIES
    # =====================================================
    def list_orders(self) -> List[OrderSummaryOut]:
        orders = (
            self.db.query(Order)
            .options(joinedload(Order.user))
            .order_by(Order.created_at.desc())
            .all()
        )
        return [
            OrderSummaryOut(**OrderOut.model_validate(o).model_dump(), customer=_customer_of(o))
            for o in orders
        ]

    def get_order(self, order_id: str) -> OrderDetailOut:
        order = (
            self.db.query(Order)
            .options(
                joinedload(Order.items).joinedload(OrderItem.product).joinedload(Product.images),
                joinedload(Order.user),
            )
            .filter(Order.id == order_id)
            .first()
        )
        if order is None:
            raise NotFoundError("Order not found.")

        items = [
            OrderItemOut(
                product_id=it.product_id,
                quantity=it.quantity,
                price=it.price,
                line_total=it.price * it.quantity,
                product=OrderProductOut.model_validate(it.product) if it.product else None,
            )
            for it in order.items
        ]
        return OrderDetailOut(
            **OrderOut.model_validate(order).model_dump(),
            customer=_customer_of(order),
            items=items,
        )
