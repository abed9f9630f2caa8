"""
Calcul des montants d'une commande (pur: pas de BD, pas de Stripe).
"""
from shop.orders.models import CartSnapshot, OrderTotals

# module shop.orders.pricing
def compute_totals(cart: CartSnapshot) -> OrderTotals:
    """
    Calcule les totaux à partir d'un snapshot de panier.
    - total_price = somme(prix unitaire x quantité)
    - total_items = somme(quantité)
    - final_total = total_price - remise - coupon - points + livraison + pourboire,
      ramené à 0 s'il est négatif (jamais de montant à rembourser).
    """
    total_price = sum(item.price * item.quantity for item in cart.items)
    total_items = sum(item.quantity for item in cart.items)
    final_total = (
        total_price
        - cart.discount
        - cart.coupon_discount
        - cart.points_used
        + cart.shipping_fee
        + cart.tips
    )
    return OrderTotals(
        total_items=total_items,
        total_price=round(total_price, 2),
        discount=cart.discount,
        coupon_code=cart.coupon_code,
        coupon_discount=cart.coupon_discount,
        shipping_fee=cart.shipping_fee,
        tips=cart.tips,
        points_used=cart.points_used,
        final_total=round(max(0.0, final_total), 2),
    )

def with_final_total(totals: OrderTotals, amount: float) -> OrderTotals:
    """Remplace le montant payable (ex: montant capturé par Stripe), toujours >= 0."""
    return totals.model_copy(update={"final_total": round(max(0.0, float(amount)), 2)})
