"""
Sérialisation/désérialisation des métadonnées Stripe (cart_id, user_id, shipping_address).
Les valeurs de metadata Stripe sont des chaînes: l'adresse est stockée en JSON.
"""
import json
import logging
from typing import Any, Dict, Optional, Tuple

from shop.orders.errors import ShippingAddressTooLong

# Limite Stripe par valeur de metadata
METADATA_VALUE_MAX_LENGTH = 500

logger = logging.getLogger(__name__)

# module shop.payments.metadata
def make_metadata(cart_id: str, user_id: str, shipping_address: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """
    Métadonnées figées à la création de la session:
    - cart_id / user_id: pour retrouver le panier et le client au retour
    - shipping_address: JSON complet; ShippingAddressTooLong s'il dépasse la limite
      Stripe (jamais tronqué: l'adresse relue doit être celle choisie)
    """
    address_json = json.dumps(shipping_address, ensure_ascii=False) if shipping_address else ""
    if len(address_json) > METADATA_VALUE_MAX_LENGTH:
        raise ShippingAddressTooLong()
    return {
        "cart_id": str(cart_id),
        "user_id": str(user_id or ""),
        "shipping_address": address_json,
    }

def session_from_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """Objet session d'un event Stripe (event.data.object)."""
    return ((event or {}).get("data") or {}).get("object") or {}

def extract_session_metadata(session: Dict[str, Any]) -> Tuple[Optional[str], Optional[str], Optional[Dict[str, Any]]]:
    """
    Extrait (cart_id, user_id, shipping_address) d'une session Checkout.
    - cart_id: metadata.cart_id, à défaut client_reference_id
    - Tolérant aux erreurs: shipping_address None si le JSON est invalide.
    """
    meta = (session or {}).get("metadata") or {}
    cart_id = meta.get("cart_id") or (session or {}).get("client_reference_id")
    user_id = meta.get("user_id") or None
    raw_address = meta.get("shipping_address")
    try:
        shipping_address = json.loads(raw_address) if raw_address else None
    except ValueError:
        logger.warning("payments.metadata shipping_address illisible cart_id=%s", cart_id)
        shipping_address = None
    if shipping_address is not None and not isinstance(shipping_address, dict):
        shipping_address = None
    return cart_id, user_id, shipping_address

def amount_paid(session: Dict[str, Any]) -> Optional[float]:
    """Montant capturé par Stripe (amount_total en centimes) converti en unités."""
    amount_total = (session or {}).get("amount_total")
    if amount_total is None:
        return None
    return int(amount_total) / 100
