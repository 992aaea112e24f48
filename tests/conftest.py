from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings
from database import Base, get_db
from main import app
from models.cart import Cart, CartItem
from models.product import Product, ProductImage
from models.users import User
from services.notifications import NotificationDispatcher, get_dispatcher
from services.templates import TemplateRenderer
from utils.tokenJWT import create_access_token


@dataclass
class SentMail:
    sender: str
    recipients: List[str]
    subject: str
    html: str


@dataclass
class RecordingTransport:
    """Stands in for the SMTP transport; records messages or fails on demand."""

    fail: bool = False
    sent: List[SentMail] = field(default_factory=list)

    def send(self, sender, recipients, subject, html):
        if self.fail:
            raise ConnectionRefusedError("SMTP server unreachable")
        self.sent.append(SentMail(sender, list(recipients), subject, html))


class ScheduledCalls(list):
    """Collects fire-and-forget calls instead of running them."""

    def __call__(self, fn, *args, **kwargs):
        self.append((fn, args, kwargs))

    def run_all(self):
        for fn, args, kwargs in self:
            fn(*args, **kwargs)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def renderer():
    return TemplateRenderer(settings.TEMPLATES_DIR)


@pytest.fixture()
def dispatcher(session_factory, renderer, transport):
    return NotificationDispatcher(
        session_factory=session_factory,
        renderer=renderer,
        transport=transport,
        store_name="Joyvinco",
        sender_address="orders@example.com",
    )


@pytest.fixture()
def scheduled():
    return ScheduledCalls()


@pytest.fixture()
def client(session_factory, dispatcher):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def customer(db):
    user = User(email="alice@example.com", role="customer", first_name="Alice", last_name="Smith")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin(db):
    user = User(email="admin@example.com", role="admin", first_name="Ada", last_name="Admin")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def products(db):
    product_a = Product(name="Product A", price=Decimal("10.00"))
    product_b = Product(name="Product B", price=Decimal("5.50"))
    product_a.images.append(ProductImage(url="https://cdn.example.com/a.jpg"))
    db.add_all([product_a, product_b])
    db.commit()
    db.refresh(product_a)
    db.refresh(product_b)
    return product_a, product_b


def fill_cart(db, user, lines):
    cart = db.query(Cart).filter(Cart.user_id == user.id).first()
    if cart is None:
        cart = Cart(user_id=user.id)
        db.add(cart)
        db.flush()
    for product, quantity in lines:
        db.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity))
    db.commit()
    db.refresh(cart)
    return cart


@pytest.fixture()
def cart(db, customer, products):
    product_a, product_b = products
    return fill_cart(db, customer, [(product_a, 2), (product_b, 1)])


def auth_headers(user):
    token = create_access_token(data={"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


CHECKOUT = {
    "shipping_address": "12 Market Street, Springfield",
    "contact_phone": "+1 555 0100",
    "full_name": "Alice Smith",
    "payment_method": "CASH_ON_DELIVERY",
}
