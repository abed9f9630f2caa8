from shop.orders.models import CartSnapshot
from shop.orders.pricing import compute_totals, with_final_total


def _cart(items, **fields):
    return CartSnapshot.from_row({"id": "c1", "items": items, **fields})


def test_compute_totals_with_all_adjustments():
    # 2 x 200 + 1 x 100 = 500; 500 - 50 - 20 - 30 + 25 + 10 = 435
    cart = _cart(
        [
            {"product_id": "p1", "name": "A", "price": 200, "quantity": 2},
            {"product_id": "p2", "name": "B", "price": 100, "quantity": 1},
        ],
        discount=50, coupon_discount=20, coupon_code="WELCOME", points_used=30, shipping_fee=25, tips=10,
    )
    totals = compute_totals(cart)
    assert totals.total_price == 500
    assert totals.total_items == 3
    assert totals.final_total == 435
    assert totals.coupon_code == "WELCOME"
    assert totals.points_used == 30


def test_compute_totals_clamps_negative_to_zero():
    cart = _cart([{"product_id": "p1", "price": 10, "quantity": 1}], discount=50, points_used=100)
    assert compute_totals(cart).final_total == 0


def test_compute_totals_null_adjustments_default_to_zero():
    cart = _cart([{"product_id": "p1", "price": 12.5, "quantity": 2}], discount=None, tips=None)
    totals = compute_totals(cart)
    assert totals.total_price == 25
    assert totals.final_total == 25
    assert totals.discount == 0


def test_with_final_total_overrides_and_clamps():
    totals = compute_totals(_cart([{"product_id": "p1", "price": 100, "quantity": 1}]))
    assert with_final_total(totals, 80.5).final_total == 80.5
    assert with_final_total(totals, -3).final_total == 0
    # les autres champs sont conservés
    assert with_final_total(totals, 80.5).total_price == 100
