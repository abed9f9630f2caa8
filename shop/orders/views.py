# module shop.orders.views

"""Endpoints des commandes (checkout cash/carte et administration).
- POST /cash/{cart_id}: commande directe depuis le panier (authentifié, rate-limité).
- GET /checkout_session/{cart_id}: crée la session Stripe Checkout du panier.
- GET /card/success: alternative sans webhook, confirme la session Stripe et crée la commande.
- PUT /{order_id}/pay, /{order_id}/deliver: actions admin.
Les erreurs métier (ShopError) sont rendues par le handler global en {"detail", "kind"}.
"""
from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse

from shop.orders import service as orders_service
from shop.orders.errors import ShopError
from shop.orders.models import CashOrderRequest, CheckoutSessionRequest
from shop.payments import service as payments_service
from shop.payments.gateway import PaymentGateway, get_payment_gateway
from shop.utils.rate_limit import optional_rate_limit
from shop.utils.security import require_admin, require_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


@router.post("/cash/{cart_id}", status_code=201, dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_cash_order(
    cart_id: str,
    body: Optional[CashOrderRequest] = Body(default=None),
    user: Dict[str, Any] = Depends(require_user),
):
    """Crée la commande depuis le panier.
    - Corps optionnel: {shippingAddress?, completedPayment?, paymentMethod?}
    - 201 résumé de commande; 404 panier, 400 panier vide / carte non confirmée, 500 stock
    """
    order = orders_service.create_cash_order(cart_id, user.get("id"), body or CashOrderRequest())
    return {"status": "success", "order": order}


@router.get("/checkout_session/{cart_id}", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def get_checkout_session(
    cart_id: str,
    body: Optional[CheckoutSessionRequest] = Body(default=None),
    user: Dict[str, Any] = Depends(require_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Crée une session Stripe Checkout pour le total du panier et la renvoie au front (id, url)."""
    shipping = body.shipping_address.model_dump() if body and body.shipping_address else None
    session = payments_service.create_checkout_session(
        cart_id, user=user, shipping_address=shipping, gateway=gateway
    )
    return {"status": "success", "session": session}


@router.get("/card/success")
def card_success(session_id: Optional[str] = None, gateway: PaymentGateway = Depends(get_payment_gateway)):
    """Retour Stripe (success_url): vérifie payment_status='paid' puis crée la commande.
    - Si le webhook a déjà créé la commande, répond succès avec result='already_processed'.
    - Erreurs: 400 session_id manquant / paiement non confirmé, 500 échec de création.
    """
    try:
        result = payments_service.confirm_session(session_id, gateway)
    except ShopError:
        raise
    except Exception:
        logger.exception("Erreur card_success session_id=%s", session_id)
        raise HTTPException(status_code=500, detail="Création de la commande impossible")
    return {"status": "success", "result": result["status"], "order": result["order"]}


@router.get("")
def list_orders(admin: Dict[str, Any] = Depends(require_admin)):
    orders = orders_service.list_orders()
    return {"status": "success", "results": len(orders), "data": orders}


@router.get("/my/orders")
def list_my_orders(user: Dict[str, Any] = Depends(require_user)):
    orders = orders_service.list_user_orders(user.get("id"))
    return {"status": "success", "results": len(orders), "data": orders}


@router.get("/{order_id}")
def get_order(order_id: str, admin: Dict[str, Any] = Depends(require_admin)):
    return {"status": "success", "data": orders_service.get_order(order_id)}


@router.put("/{order_id}/pay")
def mark_paid(order_id: str, admin: Dict[str, Any] = Depends(require_admin)):
    order = orders_service.mark_order_paid(order_id)
    return JSONResponse({"status": "success", "message": "Commande marquée payée", "data": order})


@router.put("/{order_id}/deliver")
def mark_delivered(order_id: str, admin: Dict[str, Any] = Depends(require_admin)):
    order = orders_service.mark_order_delivered(order_id)
    return JSONResponse({"status": "success", "message": "Commande marquée livrée", "data": order})
