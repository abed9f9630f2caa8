"""Couche service des commandes.
Rôles:
- Matérialiser une commande à partir d'un panier (saga sans transaction multi-tables).
- Commande directe (cash, ou carte déjà confirmée côté client).
- Actions admin: marquer payée / livrée, lister, consulter.

Ordre de la saga (materialize_order):
  1) lecture du panier  2) réservation du panier (active -> consumed)
  3) insertion de la commande  4) ajustement du stock en un seul appel
  5) suppression du panier, toujours en dernier.
Un échec en 3 libère le panier; un échec en 4 lève StockAdjustmentFailed et laisse
la commande et le panier 'consumed' en base pour réconciliation.
Si le stockage offre des transactions multi-tables, les étapes 2 à 5 sont à regrouper
dans une seule transaction (fonction Postgres) plutôt que de s'appuyer sur cet ordre.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from shop import config
from shop.carts import repository as carts_repository
from shop.products import repository as products_repository
from shop.orders import repository
from shop.orders import loyalty
from shop.orders.errors import (
    CartAlreadyConsumed,
    CartNotFound,
    CartNotOwned,
    EmptyCart,
    OrderNotFound,
    OrderPersistFailed,
    StockAdjustmentFailed,
)
from shop.orders.models import CartSnapshot, CartStatus, CashOrderRequest, OrderStatus, PaymentMethod
from shop.orders.payment_path import select_payment_path
from shop.orders.pricing import compute_totals, with_final_total

logger = logging.getLogger(__name__)

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

def load_cart(cart_id: str, owner_id: Optional[str] = None) -> CartSnapshot:
    """
    Lit le panier et vérifie qu'il peut être commandé (CartNotFound, CartAlreadyConsumed, EmptyCart).
    - owner_id: client qui commande lui-même; CartNotOwned si le panier est à un autre client.
    """
    cart = carts_repository.get_cart(cart_id)
    if cart is None:
        raise CartNotFound(cart_id)
    if owner_id is not None and cart.user_id != str(owner_id):
        logger.warning("orders.load_cart refused cart_id=%s owner=%s caller=%s", cart_id, cart.user_id, owner_id)
        raise CartNotOwned(cart_id)
    if cart.status == CartStatus.CONSUMED:
        raise CartAlreadyConsumed(cart_id)
    if not cart.items:
        raise EmptyCart()
    return cart

def materialize_order(
    cart_id: str,
    *,
    user_id: Optional[str],
    payment_method: PaymentMethod,
    paid: bool,
    shipping_address: Optional[Dict[str, Any]] = None,
    final_total: Optional[float] = None,
    session_id: Optional[str] = None,
    owner_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Transforme le panier en commande persistée puis ajuste le stock et supprime le panier.
    - final_total: montant payable imposé (montant capturé par Stripe); sinon calculé.
    - shipping_address: à défaut, {"address": <adresse du panier>}.
    - owner_id: vérifie que le panier appartient au client (commande directe).
    Retourne la ligne 'orders' créée.
    """
    cart = load_cart(cart_id, owner_id=owner_id)

    totals = compute_totals(cart)
    if final_total is not None:
        totals = with_final_total(totals, final_total)

    if not carts_repository.claim_cart(cart_id):
        raise CartAlreadyConsumed(cart_id)

    paid_at = _now() if paid else None
    order_data = {
        "user_id": user_id or cart.user_id,
        "cart_id": cart.id,
        "items": [item.model_dump() for item in cart.items],
        "shipping_address": shipping_address or {"address": cart.address},
        "totals": totals.model_dump(),
        "payment_method": payment_method.value,
        "status": OrderStatus.PENDING.value,
        "is_paid": paid,
        "paid_at": paid_at,
        "is_delivered": False,
        "stripe_session_id": session_id,
    }
    order = repository.insert_order(order_data)
    if not order:
        carts_repository.release_cart(cart_id)
        raise OrderPersistFailed()

    order_id = str(order.get("id") or "")
    adjustments = products_repository.stock_adjustments_for(cart.items)
    if not products_repository.bulk_adjust_stock(adjustments):
        logger.error(
            "orders.materialize stock adjustment failed order_id=%s cart_id=%s adjustments=%s",
            order_id, cart_id, adjustments,
        )
        raise StockAdjustmentFailed(order_id=order_id, cart_id=cart_id)

    if not carts_repository.delete_cart(cart_id):
        # Le panier reste 'consumed': il ne peut plus produire de commande
        logger.error("orders.materialize cart deletion failed order_id=%s cart_id=%s", order_id, cart_id)

    logger.info(
        "orders.materialize order_id=%s cart_id=%s method=%s paid=%s final_total=%s",
        order_id, cart_id, payment_method.value, paid, totals.final_total,
    )
    return order

def order_summary(order: Dict[str, Any]) -> Dict[str, Any]:
    totals = order.get("totals") or {}
    return {
        "id": order.get("id"),
        "final_total": totals.get("final_total"),
        "payment_method": order.get("payment_method"),
        "is_paid": bool(order.get("is_paid")),
        "used_points": totals.get("points_used") or 0,
        "created_at": order.get("created_at"),
    }

def create_cash_order(cart_id: str, user_id: str, request: CashOrderRequest) -> Dict[str, Any]:
    """
    Commande directe depuis le panier.
    - Le mode est choisi par select_payment_path (une carte doit être confirmée).
    - Points fidélité crédités immédiatement si la commande est payée à la création.
    """
    path = select_payment_path(
        request.payment_method,
        request.completed_payment,
        allow_cash_fallback=config.ALLOW_UNCONFIRMED_CARD_AS_CASH,
    )
    shipping = request.shipping_address.model_dump() if request.shipping_address else None
    order = materialize_order(
        cart_id,
        user_id=user_id,
        payment_method=path.method,
        paid=path.paid,
        shipping_address=shipping,
        owner_id=user_id,
    )
    if path.paid:
        loyalty.award_points(order.get("user_id") or user_id, (order.get("totals") or {}).get("final_total") or 0)
    return order_summary(order)

def get_order(order_id: str) -> Dict[str, Any]:
    order = repository.get_order_by_id(order_id)
    if not order:
        raise OrderNotFound(order_id)
    return order

def list_orders(limit: int = 100) -> List[dict]:
    return repository.list_orders(limit=limit)

def list_user_orders(user_id: str) -> List[dict]:
    return repository.list_user_orders(user_id)

def mark_order_paid(order_id: str) -> Dict[str, Any]:
    """
    Marque la commande payée et crédite les points une seule fois.
    - La mise à jour est conditionnée à is_paid = false: deux appels concurrents ne
      créditent qu'une fois; une commande déjà payée est renvoyée telle quelle.
    """
    order = get_order(order_id)
    if order.get("is_paid"):
        return order
    updated = repository.update_order(order_id, {"is_paid": True, "paid_at": _now()}, only_if={"is_paid": False})
    if not updated:
        return get_order(order_id)
    loyalty.award_points(updated.get("user_id"), (updated.get("totals") or {}).get("final_total") or 0)
    return updated

def mark_order_delivered(order_id: str) -> Dict[str, Any]:
    get_order(order_id)
    updated = repository.update_order(
        order_id,
        {"is_delivered": True, "delivered_at": _now(), "status": OrderStatus.DELIVERED.value},
    )
    if not updated:
        raise OrderPersistFailed("Impossible de mettre à jour la commande")
    return updated
