"""
Cas d'usage 'payments': session Stripe Checkout et réconciliation du paiement carte.

Deux entrées convergent vers materialize_card_order:
- push: webhook checkout.session.completed (signature vérifiée avant toute lecture)
- pull: /orders/card/success?session_id=... (lecture de la session chez Stripe)
Le panier est consommé à la première matérialisation: l'appel suivant, quel que soit
le chemin, trouve un panier absent ou déjà réservé et répond "already_processed" si la
commande existe bien en base (sinon CardOrderMissing, 500: Stripe relivre l'événement).
"""
from typing import Any, Dict, Optional
import logging

from shop import config
from shop.orders import loyalty
from shop.orders import repository as orders_repository
from shop.orders import service as orders_service
from shop.orders.errors import (
    CardOrderMissing,
    CartAlreadyConsumed,
    CartNotFound,
    MissingSessionId,
    PaymentNotCompleted,
)
from shop.orders.models import PaymentMethod
from shop.orders.pricing import compute_totals
from shop.payments import metadata as meta
from shop.payments.gateway import PaymentGateway

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
CHECKOUT_ASYNC_SUCCEEDED = "checkout.session.async_payment_succeeded"
PAID_EVENTS = {CHECKOUT_COMPLETED, CHECKOUT_ASYNC_SUCCEEDED}

def create_checkout_session(
    cart_id: str,
    *,
    user: Dict[str, Any],
    shipping_address: Optional[Dict[str, Any]],
    gateway: PaymentGateway,
) -> Dict[str, Any]:
    """
    Prépare la session Stripe pour le total final du panier.
    - Le montant et l'adresse sont figés dans la session; la commande utilisera
      le montant capturé par Stripe, pas un recalcul du panier.
    """
    user_id = str(user.get("id") or "")
    cart = orders_service.load_cart(cart_id, owner_id=user_id)
    totals = compute_totals(cart)
    session = gateway.create_checkout_session(
        amount=totals.final_total,
        currency=config.CHECKOUT_CURRENCY,
        product_name=f"Commande ({totals.total_items} articles)",
        success_url=config.CHECKOUT_SUCCESS_URL,
        cancel_url=config.CHECKOUT_CANCEL_URL,
        customer_email=user.get("email"),
        client_reference_id=cart.id,
        metadata=meta.make_metadata(cart.id, user_id, shipping_address),
    )
    logger.info("payments.checkout_session cart_id=%s session_id=%s amount=%s", cart.id, session.get("id"), totals.final_total)
    return session

def materialize_card_order(session: Dict[str, Any]) -> Dict[str, Any]:
    """
    Procédure partagée (webhook et confirmation): crée la commande carte payée.
    - Session sans cart_id: {"status": "ignored"}.
    - Panier absent ou déjà réservé et commande retrouvée (session ou panier):
      succès idempotent {"status": "already_processed"}.
    - Panier absent ou déjà réservé sans commande: CardOrderMissing (journalisé en ERROR).
    - Sinon: commande card payée, total = montant capturé, points fidélité crédités.
    """
    session_id = session.get("id")
    cart_id, user_id, shipping_address = meta.extract_session_metadata(session)
    if not cart_id:
        # Session étrangère au checkout (ex: lien de paiement créé hors de ce service)
        logger.warning("payments.materialize_card_order session sans cart_id session_id=%s", session_id)
        return {"status": "ignored", "order": None}

    try:
        order = orders_service.materialize_order(
            cart_id,
            user_id=user_id,
            payment_method=PaymentMethod.CARD,
            paid=True,
            shipping_address=shipping_address,
            final_total=meta.amount_paid(session),
            session_id=session_id,
        )
    except (CartNotFound, CartAlreadyConsumed):
        existing = orders_repository.find_order_for_payment(session_id, cart_id)
        if not existing:
            logger.error(
                "payments.materialize_card_order paid session without order session_id=%s cart_id=%s",
                session_id, cart_id,
            )
            raise CardOrderMissing(session_id=session_id, cart_id=cart_id)
        logger.info(
            "payments.materialize_card_order already processed cart_id=%s session_id=%s order_id=%s",
            cart_id, session_id, existing.get("id"),
        )
        return {"status": "already_processed", "order": orders_service.order_summary(existing)}

    loyalty.award_points(order.get("user_id"), (order.get("totals") or {}).get("final_total") or 0)
    return {"status": "created", "order": orders_service.order_summary(order)}

def handle_webhook(payload: bytes, signature: Optional[str], gateway: PaymentGateway) -> Dict[str, Any]:
    """
    Chemin push: la signature est vérifiée avant tout (SignatureError -> 400, aucun effet).
    Seuls checkout.session.completed (payment_status=paid) et
    checkout.session.async_payment_succeeded déclenchent la commande.
    """
    event = gateway.verify_webhook(payload, signature)
    event_type = (event or {}).get("type")
    if event_type not in PAID_EVENTS:
        return {"received": True, "status": "ignored"}
    session = meta.session_from_event(event)
    # Paiements différés (ex: virement): la commande attendra checkout.session.async_payment_succeeded
    if session.get("payment_status") != "paid":
        logger.info("payments.webhook session non payée session_id=%s", session.get("id"))
        return {"received": True, "status": "ignored"}
    result = materialize_card_order(session)
    logger.info("payments.webhook session_id=%s status=%s", session.get("id"), result["status"])
    return {"received": True, "status": result["status"]}

def confirm_session(session_id: Optional[str], gateway: PaymentGateway) -> Dict[str, Any]:
    """
    Chemin pull (sans webhook): lit la session Stripe et crée la commande si payée.
    - MissingSessionId si session_id vide, PaymentNotCompleted si payment_status != paid.
    """
    if not session_id:
        raise MissingSessionId()
    session = gateway.retrieve_session(session_id)
    payment_status = session.get("payment_status") or ""
    if payment_status != "paid":
        raise PaymentNotCompleted(f"Paiement non confirmé (payment_status={payment_status})")
    return materialize_card_order(session)
