"""
Accès aux données 'carts' pour le checkout.
Le panier est une clé à usage unique: il est réservé (status active -> consumed)
par une mise à jour conditionnelle avant la création de la commande, puis supprimé
en toute dernière étape.

Contrairement aux autres repositories, les erreurs Supabase sont journalisées puis
propagées: un panier "introuvable" à cause d'une panne serait pris pour un panier
déjà traité par le webhook.
"""
from typing import Optional
import logging

import shop.infra.supabase_client as supabase_client
from shop.orders.models import CartSnapshot, CartStatus

logger = logging.getLogger(__name__)

CART_COLUMNS = (
    "id, user_id, items, address, discount, coupon_code, coupon_discount, "
    "points_used, shipping_fee, tips, status"
)

# module shop.carts.repository
def get_cart(cart_id: str) -> Optional[CartSnapshot]:
    """Snapshot du panier ou None s'il n'existe pas (ou plus)."""
    if not cart_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .select(CART_COLUMNS)
            .eq("id", cart_id)
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("carts.repository.get_cart failed cart_id=%s", cart_id)
        raise
    rows = res.data or []
    return CartSnapshot.from_row(rows[0]) if rows else None

def claim_cart(cart_id: str) -> bool:
    """
    Réserve le panier pour une seule matérialisation.
    UPDATE ... WHERE id = :id AND status = 'active' est atomique côté Postgres:
    une seule requête concurrente récupère la ligne, les autres obtiennent [].
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .update({"status": CartStatus.CONSUMED.value})
            .eq("id", cart_id)
            .eq("status", CartStatus.ACTIVE.value)
            .execute()
        )
    except Exception:
        logger.exception("carts.repository.claim_cart failed cart_id=%s", cart_id)
        raise
    return bool(res.data)

def release_cart(cart_id: str) -> bool:
    """Compensation: remet le panier à 'active' si la commande n'a pas pu être créée."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .update({"status": CartStatus.ACTIVE.value})
            .eq("id", cart_id)
            .eq("status", CartStatus.CONSUMED.value)
            .execute()
        )
        return bool(res.data)
    except Exception:
        logger.exception("carts.repository.release_cart failed cart_id=%s", cart_id)
        return False

def delete_cart(cart_id: str) -> bool:
    try:
        supabase_client.get_service_supabase().table("carts").delete().eq("id", cart_id).execute()
        return True
    except Exception:
        logger.exception("carts.repository.delete_cart failed cart_id=%s", cart_id)
        return False
