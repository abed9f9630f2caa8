"""
Points fidélité attribués sur une commande payée.
"""
import logging
import math

from shop import config
from shop.users import repository as users_repository

logger = logging.getLogger(__name__)

def points_for_amount(amount: float) -> int:
    """floor(montant / 100) x 10 avec les valeurs par défaut; 0 pour un montant négatif ou nul."""
    if not amount or amount <= 0:
        return 0
    return int(math.floor(float(amount) / config.LOYALTY_POINTS_STEP)) * config.LOYALTY_POINTS_PER_STEP

def award_points(user_id: str, amount: float) -> int:
    """
    Crédite les points correspondant au montant payé (incrément relatif).
    Non idempotent: l'appelant garantit un seul appel par paiement.
    Retourne le nombre de points crédités (0 si rien à créditer ou si l'écriture échoue).
    """
    points = points_for_amount(amount)
    if points <= 0:
        return 0
    if not users_repository.increment_points(user_id, points):
        # La commande reste payée: le crédit manquant est à réconcilier
        logger.error("loyalty.award_points failed user_id=%s points=%s amount=%s", user_id, points, amount)
        return 0
    logger.info("loyalty.award_points user_id=%s points=%s", user_id, points)
    return points
