import os
from contextlib import contextmanager
from decimal import Decimal

# must be set before dreamknot modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "s3cret"

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dreamknot.api import create_app
from dreamknot.api.deps import get_catalog, get_gateway, get_lock_service, get_notifications
from dreamknot.data.database import get_db, init_db
from dreamknot.data.models import UserModel
from dreamknot.services.catalog_client import CatalogClient
from dreamknot.services.notification_service import NotificationService
from dreamknot.services.payment_gateway import RazorpayClient
from dreamknot.services.product_cache import ProductCache

CUSTOMER_ID = 1
OTHER_CUSTOMER_ID = 2
ADMIN_ID = 99

ADDRESS = {
    "name": "Asha Rao",
    "phone": "9999999999",
    "address_line_1": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "postal_code": "560001",
    "country": "IN",
}


def strapi_product(product_id, title, price, images=None, category=None):
    """Product record the way the CMS returns it."""
    return {
        "id": product_id,
        "title": title,
        "description": f"{title} description",
        "base_price": str(price),
        "createdAt": "2025-01-01T00:00:00.000Z",
        "category": category,
        "images": images if images is not None else [{"url": f"/uploads/{product_id}.jpg"}],
    }


class FakeCatalog(CatalogClient):
    """Catalog served from memory; prices can be changed between calls."""

    def __init__(self, products=()):
        super().__init__(base_url="http://cms.test", api_token="", cache=ProductCache(ttl_seconds=0))
        self.raw = {p["id"]: p for p in products}
        self.down = False
        self.calls = 0

    def set_price(self, product_id, price):
        self.raw[product_id]["base_price"] = str(price)

    def remove(self, product_id):
        self.raw.pop(product_id)

    def _fetch(self, params):
        self.calls += 1
        if self.down:
            raise requests.ConnectionError("cms unreachable")
        data = list(self.raw.values())
        return {
            "data": data,
            "meta": {"pagination": {"page": 1, "pageSize": len(data), "total": len(data), "pageCount": 1}},
        }


class FakeLockService:
    def __init__(self):
        self.acquired = []

    @contextmanager
    def cart_lock(self, user_id):
        self.acquired.append(user_id)
        yield


class FakeGateway(RazorpayClient):
    """Gateway double; signatures are checked with the real HMAC code."""

    def __init__(self):
        super().__init__(key_id="rzp_test_key", key_secret="s3cret", base_url="http://gateway.test")
        self.orders = []
        self.payment_status = "captured"

    def create_order(self, amount, currency, receipt):
        order = {"id": f"order_{len(self.orders) + 1}", "amount": amount, "currency": currency, "receipt": receipt}
        self.orders.append(order)
        return order

    def fetch_payment(self, payment_id):
        return {"id": payment_id, "status": self.payment_status}


class RecordingNotifications(NotificationService):
    def __init__(self):
        self.placed = []
        self.status_changes = []

    def send_order_placed(self, order_id):
        self.placed.append(order_id)

    def send_status_changed(self, order_id, status):
        self.status_changes.append((order_id, status))


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    session.add_all(
        [
            UserModel(id=CUSTOMER_ID, name="Asha", email="asha@example.com", role="customer"),
            UserModel(id=OTHER_CUSTOMER_ID, name="Ravi", email="ravi@example.com", role="customer"),
            UserModel(id=ADMIN_ID, name="Admin", email="admin@example.com", role="admin"),
        ]
    )
    session.commit()
    yield session
    session.close()


@pytest.fixture()
def catalog():
    return FakeCatalog(
        [
            strapi_product(1, "Engraved Mug", "50.00"),
            strapi_product(2, "Photo Frame", "25.00"),
            strapi_product(3, "Name Necklace", "120.00"),
        ]
    )


@pytest.fixture()
def lock_service():
    return FakeLockService()


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def notifications():
    return RecordingNotifications()


@pytest.fixture()
def client(db, catalog, lock_service, gateway, notifications):
    app = create_app()

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_notifications] = lambda: notifications
    return TestClient(app)


def money(value):
    return Decimal(str(value))
