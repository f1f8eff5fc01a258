"""
Tests for order pricing, checkout and the order routes.
"""

import pytest

from storefront.errors import NotFoundError, UpstreamError
from storefront.security import Principal
from storefront.schemas import OrderIn
from storefront import orders as orders_service
from storefront.payments import PaymentError, PaymentGateway, PaymentIntent

from conftest import API

MISSING_ID = "64b7f0c2a1b2c3d4e5f60718"


class RecordingGateway(PaymentGateway):
    def __init__(self):
        self.calls = []

    def create_intent(self, amount, currency):
        self.calls.append((amount, currency))
        return PaymentIntent(client_secret="pi_test_secret_abc", amount=amount, currency=currency)


class FailingGateway(PaymentGateway):
    def create_intent(self, amount, currency):
        raise PaymentError("card network unavailable")


def order_body(*items, tax=1.0, shipping_fee=5.0):
    return {
        "tax": tax,
        "shipping_fee": shipping_fee,
        "order_items": [{"product_id": pid, "quantity": qty} for pid, qty in items],
    }


class TestPricing:

    def test_subtotal_and_total(self, db, alice, create_product):
        _, alice_id = alice
        product = create_product(price=10.0)
        gateway = RecordingGateway()
        principal = Principal(user_id=alice_id, name="Alice", role="user")

        order, secret = orders_service.create_order(
            db, principal, OrderIn(**order_body((product["id"], 2))), gateway)

        assert order["subtotal"] == 20.0
        assert order["total"] == 26.0
        assert order["status"] == "pending"
        assert order["payment_intent_id"] is None
        assert secret == "pi_test_secret_abc" == order["client_secret"]
        assert gateway.calls == [(2600, "usd")]

    def test_multiple_items_snapshot(self, db, alice, create_product):
        _, alice_id = alice
        chair = create_product(price=10.0)
        table = create_product(name="Dining Table", price=99.99, image="/uploads/table.jpeg", category="kitchen")
        principal = Principal(user_id=alice_id, name="Alice", role="user")

        order, _ = orders_service.create_order(
            db, principal, OrderIn(**order_body((chair["id"], 1), (table["id"], 3), tax=0, shipping_fee=0)),
            RecordingGateway())

        assert [i["name"] for i in order["order_items"]] == ["Accent Chair", "Dining Table"]
        assert order["order_items"][1] == {
            "name": "Dining Table",
            "image": "/uploads/table.jpeg",
            "price": 99.99,
            "quantity": 3,
            "product_id": table["id"],
        }
        assert order["subtotal"] == 309.97
        assert order["total"] == 309.97

    def test_missing_product_aborts_without_writes(self, db, alice, create_product):
        _, alice_id = alice
        product = create_product()
        gateway = RecordingGateway()
        principal = Principal(user_id=alice_id, name="Alice", role="user")

        with pytest.raises(NotFoundError) as exc:
            orders_service.create_order(
                db, principal, OrderIn(**order_body((product["id"], 1), (MISSING_ID, 1))), gateway)

        assert MISSING_ID in exc.value.message
        assert db["order"].count_documents({}) == 0
        assert gateway.calls == []

    def test_payment_failure_is_upstream_error(self, db, alice, create_product):
        _, alice_id = alice
        product = create_product()
        principal = Principal(user_id=alice_id, name="Alice", role="user")

        with pytest.raises(UpstreamError):
            orders_service.create_order(db, principal, OrderIn(**order_body((product["id"], 1))), FailingGateway())
        assert db["order"].count_documents({}) == 0


class TestCreateOrderRoute:

    def test_created_with_client_secret(self, alice, create_product):
        alice_client, alice_id = alice
        product = create_product(price=10.0)
        resp = alice_client.post(f"{API}/orders", json=order_body((product["id"], 2)))
        assert resp.status_code == 201
        body = resp.json()
        assert body["client_secret"]
        assert body["order"]["total"] == 26.0
        assert body["order"]["user_id"] == alice_id

    def test_requires_login(self, client, create_product):
        product = create_product()
        assert client.post(f"{API}/orders", json=order_body((product["id"], 1))).status_code == 401

    @pytest.mark.parametrize("body", [
        {"tax": 1, "shipping_fee": 5, "order_items": []},
        {"shipping_fee": 5, "order_items": [{"product_id": MISSING_ID, "quantity": 1}]},
        {"tax": 1, "order_items": [{"product_id": MISSING_ID, "quantity": 1}]},
        {"tax": 1, "shipping_fee": 5, "order_items": [{"product_id": MISSING_ID, "quantity": 0}]},
    ])
    def test_invalid_input(self, alice, db, body):
        alice_client, _ = alice
        assert alice_client.post(f"{API}/orders", json=body).status_code == 400
        assert db["order"].count_documents({}) == 0

    def test_unknown_product(self, alice, db):
        alice_client, _ = alice
        resp = alice_client.post(f"{API}/orders", json=order_body(("not-an-id", 1)))
        assert resp.status_code == 404
        assert resp.json()["detail"] == "No product with id: not-an-id"
        assert db["order"].count_documents({}) == 0

    def test_payment_failure_is_bad_gateway(self, app, alice, create_product, db):
        from storefront.payments import get_payment_gateway
        app.dependency_overrides[get_payment_gateway] = lambda: FailingGateway()
        alice_client, _ = alice
        product = create_product()
        resp = alice_client.post(f"{API}/orders", json=order_body((product["id"], 1)))
        assert resp.status_code == 502
        assert "card network" not in resp.text
        assert db["order"].count_documents({}) == 0

    def test_line_items_keep_creation_price(self, alice, admin, create_product):
        alice_client, _ = alice
        admin_client, _ = admin
        product = create_product(price=10.0)
        order = alice_client.post(f"{API}/orders", json=order_body((product["id"], 2))).json()["order"]

        resp = admin_client.patch(f"{API}/products/{product['id']}",
                                  json={"price": 50.0, "name": "Renamed Chair", "image": "/uploads/new.jpeg"})
        assert resp.status_code == 200

        stored = alice_client.get(f"{API}/orders/{order['id']}").json()["order"]
        item = stored["order_items"][0]
        assert (item["name"], item["price"], item["image"]) == ("Accent Chair", 10.0, "/uploads/chair.jpeg")
        assert stored["subtotal"] == 20.0


class TestPayOrder:

    def _order(self, client, product_id):
        return client.post(f"{API}/orders", json=order_body((product_id, 1))).json()["order"]

    def test_owner_marks_paid(self, alice, create_product):
        alice_client, _ = alice
        order = self._order(alice_client, create_product()["id"])
        resp = alice_client.patch(f"{API}/orders/{order['id']}", json={"payment_intent_id": "pi_123"})
        assert resp.status_code == 200
        assert resp.json()["order"]["status"] == "paid"
        assert resp.json()["order"]["payment_intent_id"] == "pi_123"

    def test_non_owner_denied_and_status_unchanged(self, alice, bob, admin, create_product, db):
        alice_client, _ = alice
        bob_client, _ = bob
        admin_client, _ = admin
        order = self._order(alice_client, create_product()["id"])

        assert bob_client.patch(f"{API}/orders/{order['id']}", json={"payment_intent_id": "pi_x"}).status_code == 403
        # No admin bypass for paying someone else's order
        assert admin_client.patch(f"{API}/orders/{order['id']}", json={"payment_intent_id": "pi_x"}).status_code == 403

        stored = db["order"].find_one({})
        assert stored["status"] == "pending"
        assert stored["payment_intent_id"] is None

    def test_canceled_order_cannot_be_paid(self, alice, create_product, db):
        alice_client, _ = alice
        order = self._order(alice_client, create_product()["id"])
        db["order"].update_one({}, {"$set": {"status": "canceled"}})

        resp = alice_client.patch(f"{API}/orders/{order['id']}", json={"payment_intent_id": "pi_late"})
        assert resp.status_code == 409
        assert resp.json()["category"] == "conflict"

        stored = db["order"].find_one({})
        assert stored["status"] == "canceled"
        assert stored["payment_intent_id"] is None

    def test_paid_order_keeps_first_intent(self, alice, create_product, db):
        alice_client, _ = alice
        order = self._order(alice_client, create_product()["id"])
        assert alice_client.patch(f"{API}/orders/{order['id']}", json={"payment_intent_id": "pi_first"}).status_code == 200

        resp = alice_client.patch(f"{API}/orders/{order['id']}", json={"payment_intent_id": "pi_second"})
        assert resp.status_code == 409
        stored = db["order"].find_one({})
        assert stored["status"] == "paid"
        assert stored["payment_intent_id"] == "pi_first"

    def test_missing_order_and_missing_intent(self, alice, create_product):
        alice_client, _ = alice
        assert alice_client.patch(f"{API}/orders/{MISSING_ID}", json={"payment_intent_id": "pi"}).status_code == 404
        order = self._order(alice_client, create_product()["id"])
        assert alice_client.patch(f"{API}/orders/{order['id']}", json={}).status_code == 400


class TestOrderReads:

    def test_my_orders_and_admin_listing(self, alice, bob, admin, create_product):
        alice_client, alice_id = alice
        bob_client, _ = bob
        admin_client, _ = admin
        product = create_product()
        alice_client.post(f"{API}/orders", json=order_body((product["id"], 1)))
        alice_client.post(f"{API}/orders", json=order_body((product["id"], 2)))
        bob_client.post(f"{API}/orders", json=order_body((product["id"], 1)))

        mine = alice_client.get(f"{API}/orders/showAllMyOrders").json()
        assert mine["count"] == 2
        assert all(o["user"] == {"id": alice_id, "name": "Alice"} for o in mine["orders"])

        assert alice_client.get(f"{API}/orders").status_code == 403
        everything = admin_client.get(f"{API}/orders").json()
        assert everything["count"] == 3

    def test_single_order_access(self, alice, bob, admin, create_product):
        alice_client, _ = alice
        bob_client, _ = bob
        admin_client, _ = admin
        order = alice_client.post(f"{API}/orders", json=order_body((create_product()["id"], 1))).json()["order"]

        resp = alice_client.get(f"{API}/orders/{order['id']}")
        assert resp.status_code == 200
        assert resp.json()["order"]["user"]["name"] == "Alice"
        assert bob_client.get(f"{API}/orders/{order['id']}").status_code == 403
        assert admin_client.get(f"{API}/orders/{order['id']}").status_code == 200
        assert alice_client.get(f"{API}/orders/{MISSING_ID}").status_code == 404
