import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional
from unittest.mock import MagicMock

# Pas de Redis en tests: le lifespan désactive le rate limiting
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from fastapi.testclient import TestClient

from shop.asgi import app as fastapi_app
from shop.orders.errors import SignatureError
from shop.orders.models import CartSnapshot
from shop.payments.gateway import get_payment_gateway
from shop.utils.security import require_admin, require_user

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeStore:
    """Stockage en mémoire qui remplace les repositories Supabase (carts, orders, products, users)."""

    def __init__(self):
        self.carts: Dict[str, Dict[str, Any]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.products: Dict[str, Dict[str, int]] = {}
        self.points: Dict[str, int] = {}
        self.stock_calls: List[List[Dict[str, Any]]] = []
        self.points_calls: List[tuple] = []
        self.fail_stock = False
        self.fail_insert = False
        self.fail_delete = False

    # --- helpers de test ---
    def add_product(self, product_id: str, quantity: int, sold: int = 0):
        self.products[product_id] = {"quantity": quantity, "sold": sold}

    def add_cart(self, cart_id: str, items: List[Dict[str, Any]], user_id: str = "test-user", **fields):
        row = {"id": cart_id, "user_id": user_id, "items": items, "address": "1 rue du Test", "status": "active"}
        row.update(fields)
        self.carts[cart_id] = row
        return row

    def add_order(self, order_id: str, user_id: str, final_total: float, **fields):
        row = {
            "id": order_id,
            "user_id": user_id,
            "totals": {"final_total": final_total, "points_used": 0},
            "payment_method": "cash",
            "status": "pending",
            "is_paid": False,
            "paid_at": None,
            "is_delivered": False,
            "delivered_at": None,
        }
        row.update(fields)
        self.orders[order_id] = row
        return row

    # --- carts ---
    def get_cart(self, cart_id: str) -> Optional[CartSnapshot]:
        row = self.carts.get(cart_id)
        return CartSnapshot.from_row(row) if row else None

    def claim_cart(self, cart_id: str) -> bool:
        row = self.carts.get(cart_id)
        if not row or row.get("status") != "active":
            return False
        row["status"] = "consumed"
        return True

    def release_cart(self, cart_id: str) -> bool:
        row = self.carts.get(cart_id)
        if not row or row.get("status") != "consumed":
            return False
        row["status"] = "active"
        return True

    def delete_cart(self, cart_id: str) -> bool:
        if self.fail_delete:
            return False
        self.carts.pop(cart_id, None)
        return True

    # --- orders ---
    def insert_order(self, data: Dict[str, Any]) -> Optional[dict]:
        if self.fail_insert:
            return None
        order_id = f"order-{len(self.orders) + 1}"
        row = dict(data, id=order_id, created_at=datetime.now(timezone.utc).isoformat())
        self.orders[order_id] = row
        return dict(row)

    def get_order_by_id(self, order_id: str) -> Optional[dict]:
        row = self.orders.get(order_id)
        return dict(row) if row else None

    def find_order_for_payment(self, session_id: Optional[str], cart_id: Optional[str]) -> Optional[dict]:
        for column, value in (("stripe_session_id", session_id), ("cart_id", cart_id)):
            if not value:
                continue
            for row in self.orders.values():
                if row.get(column) == value:
                    return dict(row)
        return None

    def list_orders(self, limit: int = 100) -> List[dict]:
        return list(self.orders.values())[:limit]

    def list_user_orders(self, user_id: str, limit: int = 50) -> List[dict]:
        return [o for o in self.orders.values() if o.get("user_id") == user_id][:limit]

    def update_order(self, order_id: str, data: Dict[str, Any], only_if: Optional[Dict[str, Any]] = None) -> Optional[dict]:
        row = self.orders.get(order_id)
        if not row:
            return None
        for column, value in (only_if or {}).items():
            if row.get(column) != value:
                return None
        row.update(data)
        return dict(row)

    # --- products / users ---
    def bulk_adjust_stock(self, adjustments: List[Dict[str, Any]]) -> bool:
        self.stock_calls.append(adjustments)
        if self.fail_stock:
            return False
        for adj in adjustments:
            product = self.products.setdefault(adj["product_id"], {"quantity": 0, "sold": 0})
            product["quantity"] += adj["quantity_delta"]
            product["sold"] += adj["sold_delta"]
        return True

    def increment_points(self, user_id: str, delta: int) -> bool:
        self.points_calls.append((user_id, delta))
        self.points[user_id] = self.points.get(user_id, 0) + delta
        return True


class FakeGateway:
    """Passerelle de paiement déterministe: signature valide = 'valid-signature'."""

    VALID_SIGNATURE = "valid-signature"

    def __init__(self):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.created: List[Dict[str, Any]] = []

    def create_checkout_session(self, **kwargs) -> Dict[str, Any]:
        self.created.append(kwargs)
        session_id = f"cs_test_{len(self.created)}"
        session = {
            "id": session_id,
            "url": f"https://checkout.stripe.test/{session_id}",
            "amount_total": int(round(kwargs["amount"] * 100)),
            "client_reference_id": kwargs["client_reference_id"],
            "metadata": kwargs["metadata"],
            "payment_status": "unpaid",
        }
        self.sessions[session_id] = session
        return session

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if signature != self.VALID_SIGNATURE:
            raise SignatureError("Webhook invalid: bad signature")
        return json.loads(payload)

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        return self.sessions[session_id]

    def pay(self, session_id: str) -> Dict[str, Any]:
        self.sessions[session_id]["payment_status"] = "paid"
        return self.sessions[session_id]


def completed_event(session: Dict[str, Any]) -> bytes:
    return json.dumps({"type": "checkout.session.completed", "data": {"object": session}}).encode("utf-8")


@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    fake_user: Dict[str, Any] = {
        "id": "test-user",
        "email": "test@example.com",
        "role": "user",
        "metadata": {},
        "token": "fake-token",
    }
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture
def admin_client(app, client):
    app.dependency_overrides[require_admin] = lambda: {"id": "admin-user-id", "role": "admin", "email": "admin@example.com"}
    yield client
    app.dependency_overrides.pop(require_admin, None)

@pytest.fixture
def gateway(app):
    fake = FakeGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_payment_gateway, None)

# Aucun accès Supabase réel pendant les tests
@pytest.fixture(autouse=True)
def mock_supabase(monkeypatch):
    monkeypatch.setattr("shop.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("shop.infra.supabase_client.get_service_supabase", lambda: MagicMock())

@pytest.fixture
def store(monkeypatch) -> FakeStore:
    """Branche les repositories sur un FakeStore en mémoire."""
    fake = FakeStore()
    for name in ("get_cart", "claim_cart", "release_cart", "delete_cart"):
        monkeypatch.setattr(f"shop.carts.repository.{name}", getattr(fake, name))
    for name in (
        "insert_order", "get_order_by_id", "find_order_for_payment", "list_orders", "list_user_orders", "update_order",
    ):
        monkeypatch.setattr(f"shop.orders.repository.{name}", getattr(fake, name))
    monkeypatch.setattr("shop.products.repository.bulk_adjust_stock", fake.bulk_adjust_stock)
    monkeypatch.setattr("shop.users.repository.increment_points", fake.increment_points)
    return fake

@pytest.fixture
def completed_event_payload():
    """Construit le body d'un event checkout.session.completed pour une session."""
    return completed_event
