"""Couche d’accès aux données (Supabase) pour les utilisateurs, limitée au solde de points fidélité."""
import logging

import shop.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def increment_points(user_id: str, delta: int) -> bool:
    """Incrément relatif du solde de points (fonction Postgres increment_user_points).
    - Retour: True si succès, False sinon
    """
    if not user_id:
        return False
    try:
        (
            supabase_client.get_service_supabase()
            .rpc("increment_user_points", {"p_user_id": user_id, "p_delta": int(delta)})
            .execute()
        )
        return True
    except Exception:
        logger.exception("users.repository.increment_points failed user_id=%s delta=%s", user_id, delta)
        return False
