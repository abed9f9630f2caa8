from fastapi.testclient import TestClient

ITEMS = [
    {"product_id": "p1", "name": "Maillot", "price": 200, "quantity": 2},
    {"product_id": "p2", "name": "Casquette", "price": 100, "quantity": 1},
]


def test_cash_order_created(client: TestClient, store):
    store.add_product("p1", quantity=10)
    store.add_product("p2", quantity=10)
    store.add_cart("c1", ITEMS, discount=50, coupon_discount=20, points_used=30, shipping_fee=25, tips=10)

    r = client.post("/api/v1/orders/cash/c1", json={"shippingAddress": {"address": "2 av. X", "lat": 48.8, "lng": 2.3}})
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "success"
    assert body["order"]["final_total"] == 435
    assert body["order"]["payment_method"] == "cash"
    assert body["order"]["is_paid"] is False
    assert body["order"]["used_points"] == 30

    order = store.orders[body["order"]["id"]]
    assert order["user_id"] == "test-user"
    assert order["shipping_address"] == {"address": "2 av. X", "lat": 48.8, "lng": 2.3}
    assert store.products["p1"] == {"quantity": 8, "sold": 2}
    assert "c1" not in store.carts
    assert store.points_calls == []


def test_cash_order_without_body(client: TestClient, store):
    store.add_cart("c1", ITEMS)
    r = client.post("/api/v1/orders/cash/c1")
    assert r.status_code == 201
    assert store.orders[r.json()["order"]["id"]]["shipping_address"] == {"address": "1 rue du Test"}


def test_cash_order_unknown_cart_404(client: TestClient, store):
    r = client.post("/api/v1/orders/cash/nope")
    assert r.status_code == 404
    assert r.json()["kind"] == "not_found"


def test_cash_order_empty_cart_400(client: TestClient, store):
    store.add_cart("c1", [])
    r = client.post("/api/v1/orders/cash/c1")
    assert r.status_code == 400
    assert r.json()["kind"] == "invalid_state"


def test_cash_order_twice_second_is_404(client: TestClient, store):
    store.add_cart("c1", ITEMS)
    assert client.post("/api/v1/orders/cash/c1").status_code == 201
    assert client.post("/api/v1/orders/cash/c1").status_code == 404
    assert len(store.orders) == 1


def test_unconfirmed_card_rejected(client: TestClient, store):
    store.add_cart("c1", ITEMS)
    r = client.post("/api/v1/orders/cash/c1", json={"paymentMethod": "card", "completedPayment": False})
    assert r.status_code == 400
    assert r.json()["kind"] == "invalid_state"
    assert store.orders == {}
    assert store.carts["c1"]["status"] == "active"


def test_confirmed_card_paid_with_points(client: TestClient, store):
    store.add_cart("c1", ITEMS)
    r = client.post("/api/v1/orders/cash/c1", json={"paymentMethod": "card", "completedPayment": True})
    assert r.status_code == 201
    assert r.json()["order"]["is_paid"] is True
    assert store.points == {"test-user": 50}


def test_stock_failure_500_keeps_order(client: TestClient, store):
    store.add_cart("c1", ITEMS)
    store.fail_stock = True
    r = client.post("/api/v1/orders/cash/c1")
    assert r.status_code == 500
    assert r.json()["kind"] == "dependency_failure"
    assert len(store.orders) == 1
    assert store.carts["c1"]["status"] == "consumed"


def test_invalid_payment_method_422(client: TestClient, store):
    store.add_cart("c1", ITEMS)
    r = client.post("/api/v1/orders/cash/c1", json={"paymentMethod": "bitcoin"})
    assert r.status_code == 422


def test_cash_order_on_cart_of_another_user_403(client: TestClient, store):
    store.add_cart("c1", ITEMS, user_id="someone-else")
    r = client.post("/api/v1/orders/cash/c1")
    assert r.status_code == 403
    assert r.json()["kind"] == "forbidden"
    assert store.orders == {}
    assert store.carts["c1"]["status"] == "active"


def test_cash_order_address_too_long_422(client: TestClient, store):
    store.add_cart("c1", ITEMS)
    r = client.post("/api/v1/orders/cash/c1", json={"shippingAddress": {"address": "x" * 520}})
    assert r.status_code == 422
    assert store.orders == {}
