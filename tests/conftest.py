import os
import copy
import uuid
import pytest
from typing import Any, Dict, Generator, List, Optional
from fastapi.testclient import TestClient

# Pas de Redis en tests: le rate limiting est désactivé dans le lifespan
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from backend.app import app as fastapi_app
from backend.orders.models import OrderStatus

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


class FakeOrderRepository:
    """Tables orders/order_items en mémoire, mêmes contrats que backend.orders.repository."""

    def __init__(self):
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.items: List[Dict[str, Any]] = []
        self.fail = set()
        self.calls: Dict[str, int] = {}

    def _call(self, name: str) -> bool:
        self.calls[name] = self.calls.get(name, 0) + 1
        return name in self.fail

    def require_store(self):
        return None

    def insert_order(self, row):
        if self._call("insert_order"):
            return None
        order = dict(row, id=str(uuid.uuid4()), stripe_session_id=None)
        self.orders[order["id"]] = order
        return dict(order)

    def insert_order_items(self, rows):
        if self._call("insert_order_items"):
            return None
        self.items.extend(dict(r) for r in rows)
        return [dict(r) for r in rows]

    def delete_order(self, order_id):
        if self._call("delete_order"):
            return False
        self.orders.pop(order_id, None)
        return True

    def link_session(self, order_id, session_id):
        if self._call("link_session"):
            return False
        order = self.orders.get(order_id)
        if not order or order.get("stripe_session_id"):
            return False
        order["stripe_session_id"] = session_id
        return True

    def transition_status(self, order_id, status):
        if self._call("transition_status"):
            return None
        order = self.orders.get(order_id)
        if not order or order["status"] != OrderStatus.PENDING.value:
            return []
        order["status"] = status.value
        return [dict(order)]

    def fetch_order_with_items(self, order_id):
        if self._call("fetch_order_with_items"):
            return None
        order = self.orders.get(order_id)
        if not order:
            return None
        return dict(order, order_items=[dict(i) for i in self.items if i["order_id"] == order_id])


class FakeGateway:
    """Prestataire de paiement en mémoire (clients par email, sessions par id)."""

    def __init__(self):
        self.customers: Dict[str, str] = {}
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.created_sessions: List[Dict[str, Any]] = []
        self.expired: List[str] = []
        self.fail_create = False

    def require_stripe(self):
        return None

    def find_or_create_customer(self, email):
        if email not in self.customers:
            self.customers[email] = f"cus_{len(self.customers) + 1}"
        return self.customers[email]

    def create_session(self, **kwargs):
        from backend.errors import ProviderError
        if self.fail_create:
            raise ProviderError("boom")
        session_id = f"cs_test_{len(self.sessions) + 1}"
        session = {
            "id": session_id,
            "url": f"https://checkout.stripe.test/pay/{session_id}",
            "payment_status": "unpaid",
            "metadata": copy.deepcopy(kwargs["metadata"]),
            "amount_total": sum(li["price_data"]["unit_amount"] * li["quantity"] for li in kwargs["line_items"]),
            "currency": kwargs["line_items"][0]["price_data"]["currency"],
            "customer_details": {"email": kwargs["metadata"].get("user_email")},
        }
        self.sessions[session_id] = session
        self.created_sessions.append(kwargs)
        return dict(session)

    def get_session(self, session_id) -> Optional[Dict[str, Any]]:
        session = self.sessions.get(session_id)
        return copy.deepcopy(session) if session else None

    def expire_session(self, session_id):
        self.expired.append(session_id)
        return True

    def settle(self, session_id, payment_status="paid"):
        self.sessions[session_id]["payment_status"] = payment_status


@pytest.fixture
def fake_orders(monkeypatch) -> FakeOrderRepository:
    repo = FakeOrderRepository()
    for name in ("require_store", "insert_order", "insert_order_items", "delete_order", "link_session",
                 "transition_status", "fetch_order_with_items"):
        monkeypatch.setattr(f"backend.orders.repository.{name}", getattr(repo, name))
    return repo

@pytest.fixture
def fake_gateway(monkeypatch) -> FakeGateway:
    gw = FakeGateway()
    for name in ("require_stripe", "find_or_create_customer", "create_session", "get_session", "expire_session"):
        monkeypatch.setattr(f"backend.payments.stripe_client.{name}", getattr(gw, name))
    return gw

@pytest.fixture
def cart_payload() -> Dict[str, Any]:
    """Panier de référence: 2 kg à 45 + 1 douzaine à 180, livraison offerte."""
    return {
        "items": [
            {
                "id": "p-tomato", "name": "Tomatoes", "price": 45, "quantity": 2, "unit": "kg",
                "image": "https://img.test/tomato.jpg",
                "farmer": {"name": "Ramesh", "location": "Nashik", "rating": 4.8},
            },
            {
                "id": "p-eggs", "name": "Eggs", "price": 180, "quantity": 1, "unit": "dozen",
                "image": "/eggs.jpg",
                "farmer": {"name": "Lakshmi", "location": "Pune", "rating": 4.6},
            },
        ],
        "totalPrice": 270,
        "deliveryCost": 0,
        "finalTotal": 270,
    }
