"""
Accès aux données 'orders'.
Les lectures renvoient des valeurs neutres ([] / None) en cas d'erreur; les écritures
renvoient la ligne écrite ou None, le service décide de l'erreur métier.
"""
from typing import Any, Dict, List, Optional
import logging

import shop.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def _first(res) -> Optional[dict]:
    rows = getattr(res, "data", None) or []
    if isinstance(rows, list):
        return rows[0] if rows else None
    return rows or None

# module shop.orders.repository
def insert_order(data: Dict[str, Any]) -> Optional[dict]:
    try:
        res = supabase_client.get_service_supabase().table("orders").insert(data).execute()
        return _first(res)
    except Exception:
        logger.exception("orders.repository.insert_order failed user_id=%s cart_id=%s", data.get("user_id"), data.get("cart_id"))
        return None

def get_order_by_id(order_id: str) -> Optional[dict]:
    if not order_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("*")
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception("orders.repository.get_order_by_id failed order_id=%s", order_id)
        return None

def find_order_for_payment(session_id: Optional[str], cart_id: Optional[str]) -> Optional[dict]:
    """
    Commande issue d'un paiement carte: par stripe_session_id, à défaut par cart_id.
    - None si aucune commande (ou si la lecture échoue: l'appelant ne conclut pas au doublon).
    """
    for column, value in (("stripe_session_id", session_id), ("cart_id", cart_id)):
        if not value:
            continue
        try:
            res = (
                supabase_client.get_service_supabase()
                .table("orders")
                .select("*")
                .eq(column, value)
                .limit(1)
                .execute()
            )
        except Exception:
            logger.exception("orders.repository.find_order_for_payment failed %s=%s", column, value)
            return None
        row = _first(res)
        if row:
            return row
    return None

def list_orders(limit: int = 100) -> List[dict]:
    """Commandes pour l'admin, plus récentes d'abord."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("*")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("orders.repository.list_orders failed")
        return []

def list_user_orders(user_id: str, limit: int = 50) -> List[dict]:
    if not user_id:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("orders.repository.list_user_orders failed user_id=%s", user_id)
        return []

def update_order(order_id: str, data: Dict[str, Any], only_if: Optional[Dict[str, Any]] = None) -> Optional[dict]:
    """
    Met à jour une commande et retourne la ligne modifiée.
    - only_if: conditions supplémentaires (ex: {"is_paid": False}); None si aucune ligne ne correspond.
    """
    try:
        query = supabase_client.get_service_supabase().table("orders").update(data).eq("id", order_id)
        for column, value in (only_if or {}).items():
            query = query.eq(column, value)
        return _first(query.execute())
    except Exception:
        logger.exception("orders.repository.update_order failed order_id=%s data=%s", order_id, data)
        return None
