# backend/services/notifications.py
import enum
import logging
from decimal import Decimal
from email.utils import formataddr
from typing import Callable, List, Optional

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from models.order import OrderStatus
from models.users import User, ADMIN_ROLE
from schemas.notifications import CustomerView, NewOrderEmail, OrderStatusEmail
from schemas.order import OrderOut, OrderLine
from services.exceptions import CustomerNotFoundError
from services.mailer import MailTransport
from services.templates import TemplateRenderer, TemplateKey

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    NEW_ORDER = "NEW_ORDER"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def for_status(cls, status: str) -> Optional["NotificationKind"]:
        """Notification owed for an order that just moved to ``status``, if any."""
        return STATUS_NOTIFICATIONS.get(status)


STATUS_NOTIFICATIONS = {
    OrderStatus.SHIPPED.value: NotificationKind.SHIPPED,
    OrderStatus.DELIVERED.value: NotificationKind.DELIVERED,
    OrderStatus.CANCELLED.value: NotificationKind.CANCELLED,
}

# Customer-facing template and subject per status notification
_STATUS_MESSAGES = {
    NotificationKind.SHIPPED: (TemplateKey.SHIPPED, "Your {store} Order Has Shipped! #{ref}"),
    NotificationKind.DELIVERED: (TemplateKey.DELIVERED, "Your {store} Order #{ref} Has Been Delivered!"),
    NotificationKind.CANCELLED: (TemplateKey.CANCELLED, "Your {store} Order #{ref} Has Been Cancelled"),
}


class NotificationDispatcher:
    """Best-effort order emails.

    ``notify`` is meant to run detached from the request that triggered it.
    It makes one attempt, logs any failure and never raises: notification
    delivery is not part of the order's consistency guarantee.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        renderer: TemplateRenderer,
        transport: MailTransport,
        store_name: str,
        sender_address: str,
    ):
        self.session_factory = session_factory
        self.renderer = renderer
        self.transport = transport
        self.store_name = store_name
        self.sender = formataddr((store_name, sender_address))

    def notify(
        self,
        kind: NotificationKind,
        order: OrderOut,
        items: Optional[List[OrderLine]] = None,
        total_amount: Optional[Decimal] = None,
    ) -> None:
        try:
            kind = NotificationKind(kind)
            if kind is NotificationKind.NEW_ORDER:
                self._send_new_order(order, items or [], total_amount if total_amount is not None else order.total_amount)
            else:
                self._send_status(kind, order)
        except Exception:
            logger.exception("Failed to send %s notification for order %s", getattr(kind, "value", kind), order.id)

    def _send_new_order(self, order: OrderOut, items: List[OrderLine], total_amount: Decimal):
        with self.session_factory() as db:
            customer = self._load_customer(db, order.user_id)
            admins = db.query(User).filter(func.lower(User.role) == ADMIN_ROLE).all()
            admin_emails = [a.email for a in admins]

        view = NewOrderEmail(order=order, customer=customer, items=items, total_amount=total_amount)

        html = self.renderer.render(TemplateKey.NEW_ORDER_CUSTOMER, view)
        self.transport.send(
            self.sender,
            [customer.email],
            f"Your {self.store_name} Order is Confirmed! #{order.reference}",
            html,
        )

        if not admin_emails:
            logger.info("No admin users; skipping admin notice for order %s", order.id)
            return

        html = self.renderer.render(TemplateKey.NEW_ORDER_ADMIN, view)
        self.transport.send(
            self.sender,
            admin_emails,
            f"[ADMIN] New Order Received! #{order.reference}",
            html,
        )

    def _send_status(self, kind: NotificationKind, order: OrderOut):
        template_key, subject = _STATUS_MESSAGES[kind]
        with self.session_factory() as db:
            customer = self._load_customer(db, order.user_id)

        html = self.renderer.render(template_key, OrderStatusEmail(order=order, customer=customer))
        self.transport.send(
            self.sender,
            [customer.email],
            subject.format(store=self.store_name, ref=order.reference),
            html,
        )

    @staticmethod
    def _load_customer(db: Session, user_id: int) -> CustomerView:
        user = db.get(User, user_id)
        if user is None:
            raise CustomerNotFoundError(f"Customer {user_id} not found")
        return CustomerView(id=user.id, email=user.email, name=user.display_name)


# FastAPI dependency: the process-wide dispatcher built in the app lifespan
def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher
