"""
Adaptateur Stripe: passerelle de paiement injectée (pas de client global).
- PaymentGateway: interface utilisée par le service payments (remplaçable en tests).
- StripeGateway: implémentation via stripe.StripeClient.
- get_payment_gateway: dépendance FastAPI (surchargée via app.dependency_overrides).
"""
import json
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol

import stripe

from shop.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from shop.orders.errors import GatewayError, SignatureError


class PaymentGateway(Protocol):
    def create_checkout_session(
        self,
        *,
        amount: float,
        currency: str,
        product_name: str,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str],
        client_reference_id: str,
        metadata: Dict[str, str],
    ) -> Dict[str, Any]:
        ...

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Retourne l'événement si la signature est valide, sinon lève SignatureError."""
        ...

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        ...


def _as_dict(obj: Any) -> Dict[str, Any]:
    # stripe retourne un StripeObject; on le traite comme dict
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj or {})


class StripeGateway:
    def __init__(self, secret_key: str, webhook_secret: str):
        self._client = stripe.StripeClient(secret_key) if secret_key else None
        self._webhook_secret = webhook_secret

    def _require_client(self) -> stripe.StripeClient:
        if self._client is None:
            raise GatewayError("STRIPE_SECRET_KEY manquant")
        return self._client

    def create_checkout_session(
        self,
        *,
        amount: float,
        currency: str,
        product_name: str,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str],
        client_reference_id: str,
        metadata: Dict[str, str],
    ) -> Dict[str, Any]:
        """
        Crée une session Checkout pour un montant unique (le total final du panier).
        - unit_amount en centimes
        - client_reference_id: identifiant du panier
        """
        params: Dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "quantity": 1,
                    "price_data": {
                        "currency": currency,
                        "unit_amount": int(round(float(amount) * 100)),
                        "product_data": {"name": product_name},
                    },
                }
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "client_reference_id": client_reference_id,
            "metadata": metadata,
        }
        if customer_email:
            params["customer_email"] = customer_email
        try:
            session = self._require_client().checkout.sessions.create(params=params)
        except stripe.StripeError as e:
            raise GatewayError(f"Création de session Stripe impossible: {e}")
        return _as_dict(session)

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Valide l'en-tête Stripe-Signature avec STRIPE_WEBHOOK_SECRET.
        Sans secret configuré, tout webhook est refusé.
        """
        if not self._webhook_secret:
            raise SignatureError("STRIPE_WEBHOOK_SECRET manquant: webhook refusé")
        if not signature:
            raise SignatureError("En-tête Stripe-Signature manquant")
        try:
            stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise SignatureError(f"Webhook invalid: {e}")
        except ValueError as e:
            raise SignatureError(f"Webhook invalid payload: {e}")
        # Le payload est authentifié: on le relit en dict JSON pur
        return json.loads(payload.decode("utf-8") if isinstance(payload, bytes) else payload)

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        try:
            session = self._require_client().checkout.sessions.retrieve(session_id)
        except stripe.StripeError as e:
            raise GatewayError(f"Session introuvable: {e}")
        return _as_dict(session)


@lru_cache(maxsize=1)
def get_payment_gateway() -> PaymentGateway:
    return StripeGateway(STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET)
