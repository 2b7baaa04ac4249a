import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DISABLE_MONGO", "1")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import mongomock
import pytest

from backend.services.orders.order_queries import OrderQueries
from backend.services.orders.order_store import OrderStore
from backend.services.orders.orders_service import OrderService

JWT_TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


class FakeClock:
    """Strictly increasing UTC clock, one second per call."""

    def __init__(self):
        self.now = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def db():
    return mongomock.MongoClient().get_database("agri_marketplace_test")


@pytest.fixture
def store(db):
    return OrderStore(db["seller_orders"])


@pytest.fixture
def service(store):
    return OrderService(store, clock=FakeClock())


@pytest.fixture
def queries(store, db):
    return OrderQueries(store, users_col=db["users"], page_size=50, max_page_size=100)


@pytest.fixture
def order_payload():
    def _make(**overrides):
        payload = {
            "sellerId": "seller-1",
            "farmerId": "farmer-1",
            "item": "Carrot",
            "quantity": 10,
            "price": 500,
            "district": "Kandy",
            "company": "Fresh Greens",
            "mobile": "0771234567",
            "email": "buyer@freshgreens.lk",
            "address": "12 Market Rd",
            "expireDate": "2026-04-01",
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def app(db, monkeypatch):
    from app import create_app
    from backend.routes.orders import order_routes

    monkeypatch.setattr(order_routes, "get_col", lambda name: db[name])
    flask_app = create_app({
        "TESTING": True,
        "DISABLE_MONGO": True,
        "JWT_SECRET_KEY": JWT_TEST_SECRET,
        "ORDERS_PAGE_SIZE": 2,
    })
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
