"""Integration tests for the /orders and /cart endpoints."""

from decimal import Decimal

import pytest

from conftest import CHECKOUT, auth_headers
from models.cart import CartItem
from models.order import Order, OrderItem
from services.order_service import OrderService


def _place_order(client, user):
    response = client.post("/orders", json=CHECKOUT, headers=auth_headers(user))
    assert response.status_code == 201
    return response.json()["order"]


class TestCreateOrderEndpoint:
    def test_creates_order_and_sends_emails(self, client, db, transport, customer, admin, cart):
        response = client.post("/orders", json=CHECKOUT, headers=auth_headers(customer))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Order placed successfully!"
        assert body["order"]["status"] == "PENDING"
        assert Decimal(body["order"]["total_amount"]) == Decimal("25.50")
        assert "items" not in body["order"]

        assert db.query(Order).count() == 1
        assert db.query(OrderItem).count() == 2
        assert db.query(CartItem).filter(CartItem.cart_id == cart.id).count() == 0

        reference = body["order"]["id"][-6:]
        assert [m.subject for m in transport.sent] == [
            f"Your Joyvinco Order is Confirmed! #{reference}",
            f"[ADMIN] New Order Received! #{reference}",
        ]

    def test_missing_fields(self, client, db, customer, cart, transport):
        payload = {**CHECKOUT, "contact_phone": ""}

        response = client.post("/orders", json=payload, headers=auth_headers(customer))

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "All delivery and payment details are required."}
        assert db.query(Order).count() == 0
        assert db.query(CartItem).count() == 2
        assert transport.sent == []

    def test_empty_cart(self, client, db, customer, transport):
        response = client.post("/orders", json=CHECKOUT, headers=auth_headers(customer))

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Your cart is empty."}
        assert db.query(Order).count() == 0
        assert transport.sent == []

    def test_mail_server_down_does_not_affect_order(self, client, db, transport, customer, admin, cart):
        transport.fail = True

        response = client.post("/orders", json=CHECKOUT, headers=auth_headers(customer))

        assert response.status_code == 201
        assert db.query(Order).count() == 1
        assert db.query(CartItem).filter(CartItem.cart_id == cart.id).count() == 0

    def test_storage_fault_is_a_generic_500(self, client, db, customer, cart, transport, monkeypatch, caplog):
        def storage_fault(self, cart_id):
            raise RuntimeError("database is locked")

        monkeypatch.setattr(OrderService, "_clear_cart", storage_fault)

        with caplog.at_level("ERROR", logger="routes.orders"):
            response = client.post("/orders", json=CHECKOUT, headers=auth_headers(customer))

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Internal server error."}
        assert "database is locked" in caplog.text
        assert db.query(Order).count() == 0
        assert db.query(OrderItem).count() == 0
        assert db.query(CartItem).filter(CartItem.cart_id == cart.id).count() == 2
        assert transport.sent == []

    def test_requires_authentication(self, client, cart):
        response = client.post("/orders", json=CHECKOUT)

        assert response.status_code in (401, 403)

    def test_rejects_invalid_token(self, client, cart):
        response = client.post("/orders", json=CHECKOUT, headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401


class TestAdminReadEndpoints:
    def test_list_orders(self, client, customer, admin, cart):
        order = _place_order(client, customer)

        response = client.get("/orders", headers=auth_headers(admin))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [o["id"] for o in body["data"]] == [order["id"]]
        assert body["data"][0]["customer"] == {"email": "alice@example.com", "name": "Alice Smith"}

    def test_get_order(self, client, customer, admin, cart):
        order = _place_order(client, customer)

        response = client.get(f"/orders/{order['id']}", headers=auth_headers(admin))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == order["id"]
        assert len(data["items"]) == 2
        images = [img["url"] for item in data["items"] for img in item["product"]["images"]]
        assert images == ["https://cdn.example.com/a.jpg"]

    def test_get_order_not_found(self, client, admin):
        response = client.get("/orders/unknown", headers=auth_headers(admin))

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Order not found."}

    @pytest.mark.parametrize("path", ["/orders", "/orders/anything"])
    def test_customers_are_forbidden(self, client, customer, path):
        response = client.get(path, headers=auth_headers(customer))

        assert response.status_code == 403


class TestUpdateStatusEndpoint:
    @pytest.fixture()
    def order(self, client, customer, admin, cart, transport):
        order = _place_order(client, customer)
        transport.sent.clear()
        return order

    @pytest.mark.parametrize(
        "status, subject",
        [
            ("SHIPPED", "Your Joyvinco Order Has Shipped! #{ref}"),
            ("DELIVERED", "Your Joyvinco Order #{ref} Has Been Delivered!"),
            ("CANCELLED", "Your Joyvinco Order #{ref} Has Been Cancelled"),
        ],
    )
    def test_status_change_sends_matching_email(self, client, admin, order, transport, status, subject):
        response = client.patch(f"/orders/{order['id']}/status", json={"status": status}, headers=auth_headers(admin))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == f"Order status updated to {status}."
        assert body["data"]["status"] == status
        assert len(transport.sent) == 1
        assert transport.sent[0].recipients == ["alice@example.com"]
        assert transport.sent[0].subject == subject.format(ref=order["id"][-6:])

    def test_other_status_sends_nothing(self, client, db, admin, order, transport):
        response = client.patch(f"/orders/{order['id']}/status", json={"status": "PROCESSING"}, headers=auth_headers(admin))

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "PROCESSING"
        assert db.get(Order, order["id"]).status == "PROCESSING"
        assert transport.sent == []

    def test_mail_failure_still_reports_success(self, client, admin, order, transport):
        transport.fail = True

        response = client.patch(f"/orders/{order['id']}/status", json={"status": "SHIPPED"}, headers=auth_headers(admin))

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "SHIPPED"

    @pytest.mark.parametrize("payload", [{}, {"status": ""}, {"status": None}])
    def test_missing_status(self, client, admin, order, payload):
        response = client.patch(f"/orders/{order['id']}/status", json=payload, headers=auth_headers(admin))

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Status is required."}

    def test_unknown_order(self, client, admin):
        response = client.patch("/orders/unknown/status", json={"status": "SHIPPED"}, headers=auth_headers(admin))

        assert response.status_code == 404

    def test_customers_are_forbidden(self, client, customer, order):
        response = client.patch(f"/orders/{order['id']}/status", json={"status": "SHIPPED"}, headers=auth_headers(customer))

        assert response.status_code == 403


class TestCartEndpoints:
    def test_cart_is_created_on_first_read(self, client, customer):
        response = client.get("/cart", headers=auth_headers(customer))

        assert response.status_code == 200
        assert response.json()["items"] == []
        assert Decimal(response.json()["total"]) == Decimal("0")

    def test_add_items_and_checkout(self, client, db, customer, products):
        product_a, product_b = products
        headers = auth_headers(customer)

        client.post("/cart/items", json={"product_id": product_a.id, "quantity": 1}, headers=headers)
        client.post("/cart/items", json={"product_id": product_a.id, "quantity": 1}, headers=headers)
        response = client.post("/cart/items", json={"product_id": product_b.id, "quantity": 1}, headers=headers)

        assert response.status_code == 200
        cart = response.json()
        assert {i["product_id"]: i["quantity"] for i in cart["items"]} == {product_a.id: 2, product_b.id: 1}
        assert Decimal(cart["total"]) == Decimal("25.50")

        order = _place_order(client, customer)
        assert Decimal(order["total_amount"]) == Decimal("25.50")
        assert client.get("/cart", headers=headers).json()["items"] == []

    def test_remove_item(self, client, customer, cart):
        headers = auth_headers(customer)
        item_id = client.get("/cart", headers=headers).json()["items"][0]["id"]

        response = client.delete(f"/cart/items/{item_id}", headers=headers)

        assert response.status_code == 200
        assert len(response.json()["items"]) == 1

    def test_remove_foreign_item(self, client, admin, cart):
        item_id = cart.items[0].id

        response = client.delete(f"/cart/items/{item_id}", headers=auth_headers(admin))

        assert response.status_code == 404

    def test_unknown_product(self, client, customer):
        response = client.post("/cart/items", json={"product_id": 404, "quantity": 1}, headers=auth_headers(customer))

        assert response.status_code == 404

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_must_be_positive(self, client, customer, products, quantity):
        response = client.post(
            "/cart/items", json={"product_id": products[0].id, "quantity": quantity}, headers=auth_headers(customer)
        )

        assert response.status_code == 422
