"""
Pytest configuration and shared fixtures for the storefront test suite.

Every test runs against its own in-memory mongomock database with the
production indexes in place, so uniqueness behaves as it does on MongoDB.
"""

import mongomock
import pytest
from fastapi.testclient import TestClient

from storefront.database import ensure_indexes, get_db
from storefront.main import app as storefront_app
from storefront import users
from storefront.payments import FakePaymentGateway, get_payment_gateway

API = "/api/v1"
DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def db():
    mongo = mongomock.MongoClient()
    database = mongo["storefront_test"]
    ensure_indexes(database)
    yield database
    mongo.drop_database("storefront_test")


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def app(db, gateway):
    storefront_app.dependency_overrides[get_db] = lambda: db
    storefront_app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield storefront_app
    storefront_app.dependency_overrides.clear()


@pytest.fixture
def make_client(app):
    """Factory fixture: each client keeps its own cookie jar, i.e. its own session."""
    def _make() -> TestClient:
        return TestClient(app)
    return _make


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def login_as(make_client, db):
    """Register (if needed) and log in a user; returns (client, user_id)."""
    def _login(name: str, email: str, role: str = "user", password: str = DEFAULT_PASSWORD):
        c = make_client()
        if not db["user"].find_one({"email": email}):
            resp = c.post(f"{API}/auth/register", json={"name": name, "email": email, "password": password})
            assert resp.status_code == 201, resp.text
        if role != "user":
            users.set_role(db, email, role)
        resp = c.post(f"{API}/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return c, resp.json()["user"]["userId"]
    return _login


@pytest.fixture
def admin(login_as):
    return login_as("Ada Admin", "ada@comfy.io", role="admin")


@pytest.fixture
def alice(login_as):
    return login_as("Alice", "alice@comfy.io")


@pytest.fixture
def bob(login_as):
    return login_as("Bobby", "bob@comfy.io")


@pytest.fixture
def product_payload():
    def _payload(**overrides):
        data = {
            "name": "Accent Chair",
            "price": 10.0,
            "description": "Comfortable chair for any room",
            "image": "/uploads/chair.jpeg",
            "category": "office",
            "company": "ikea",
        }
        data.update(overrides)
        return data
    return _payload


@pytest.fixture
def create_product(admin, product_payload):
    admin_client, _ = admin

    def _create(**overrides) -> dict:
        resp = admin_client.post(f"{API}/products", json=product_payload(**overrides))
        assert resp.status_code == 201, resp.text
        return resp.json()["product"]
    return _create
