"""
Module 'payments' (feature-first): point d'entrée public.
Réunit la passerelle Stripe injectée, les métadonnées de session et la réconciliation
webhook / confirmation.
"""

from .gateway import PaymentGateway, StripeGateway, get_payment_gateway
from .metadata import make_metadata, extract_session_metadata, amount_paid
from .service import create_checkout_session, materialize_card_order, handle_webhook, confirm_session

__all__ = [
    # gateway
    "PaymentGateway",
    "StripeGateway",
    "get_payment_gateway",
    # metadata
    "make_metadata",
    "extract_session_metadata",
    "amount_paid",
    # services
    "create_checkout_session",
    "materialize_card_order",
    "handle_webhook",
    "confirm_session",
]
