import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from shop.orders.errors import ShopError
from shop.payments import service as payments_service
from shop.payments.gateway import PaymentGateway, get_payment_gateway

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module shop.payments.views
@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request, gateway: PaymentGateway = Depends(get_payment_gateway)):
    """
    Webhook Stripe (Checkout): consomme checkout.session.completed pour créer la commande.
    - Signature: valide via gateway.verify_webhook (Stripe-Signature + STRIPE_WEBHOOK_SECRET)
    - Réponses: {"received": true, "status": "created" | "already_processed" | "ignored"}
    - Erreurs: 400 si signature invalide (aucun effet), 500 sinon (Stripe relivre l'événement)
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        result = payments_service.handle_webhook(payload, signature, gateway)
    except ShopError as e:
        if e.status_code == 400:
            logger.warning("payments.webhook rejected: %s", e.detail)
        raise
    except Exception:
        logger.exception("Erreur webhook_stripe")
        raise HTTPException(status_code=500, detail="Traitement du webhook impossible")
    return JSONResponse(result)
