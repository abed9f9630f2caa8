"""
Accès aux données 'products' limité à ce que le checkout modifie: stock et ventes.
"""
from typing import Any, Dict, Iterable, List
import logging

import shop.infra.supabase_client as supabase_client
from shop.orders.models import CartItem

logger = logging.getLogger(__name__)

# module shop.products.repository
def stock_adjustments_for(items: Iterable[CartItem]) -> List[Dict[str, Any]]:
    """
    Construit [{product_id, quantity_delta, sold_delta}] pour chaque produit du panier.
    - Les lignes d'un même produit sont regroupées (une seule mise à jour par produit).
    """
    by_product: Dict[str, int] = {}
    for item in items:
        by_product[item.product_id] = by_product.get(item.product_id, 0) + int(item.quantity)
    return [
        {"product_id": product_id, "quantity_delta": -qty, "sold_delta": qty}
        for product_id, qty in by_product.items()
    ]

def bulk_adjust_stock(adjustments: List[Dict[str, Any]]) -> bool:
    """
    Applique tous les ajustements en un seul appel (fonction Postgres adjust_product_stock).
    - Incréments relatifs (quantity = quantity + delta): sûr face aux commandes concurrentes.
    - Retourne False si l'appel échoue (rien n'est appliqué: la fonction est transactionnelle).
    """
    if not adjustments:
        return True
    try:
        (
            supabase_client.get_service_supabase()
            .rpc("adjust_product_stock", {"adjustments": adjustments})
            .execute()
        )
        return True
    except Exception:
        logger.exception(
            "products.repository.bulk_adjust_stock failed products=%s",
            [a.get("product_id") for a in adjustments],
        )
        return False
