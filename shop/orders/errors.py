"""
Erreurs métier du checkout.

Chaque erreur porte un code HTTP et une catégorie (kind) afin que le handler
global (shop.app_setup.exceptions) produise {"detail", "kind"} sans logique
spécifique dans les vues:
- not_found: panier / commande absents
- invalid_state: panier vide, paiement non confirmé, adresse trop longue
- forbidden: panier d'un autre client
- dependency_failure: écriture BD, ajustement du stock, Stripe, signature
- conflict: panier déjà consommé (converti en succès idempotent côté carte)
"""
from typing import Optional


class ShopError(Exception):
    status_code = 500
    kind = "error"
    default_detail = "Erreur interne"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# --- not_found ---
class NotFound(ShopError):
    status_code = 404
    kind = "not_found"
    default_detail = "Ressource introuvable"


class CartNotFound(NotFound):
    default_detail = "Panier introuvable"

    def __init__(self, cart_id: str):
        self.cart_id = cart_id
        super().__init__(f"Panier introuvable: {cart_id}")


class OrderNotFound(NotFound):
    default_detail = "Commande introuvable"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Commande introuvable: {order_id}")


# --- invalid_state ---
class InvalidState(ShopError):
    status_code = 400
    kind = "invalid_state"
    default_detail = "Etat invalide"


class EmptyCart(InvalidState):
    default_detail = "Le panier est vide"


class PaymentNotCompleted(InvalidState):
    default_detail = "Paiement non confirmé"


class CardPaymentNotConfirmed(InvalidState):
    default_detail = "Paiement carte non confirmé: utilisez le checkout Stripe"


class MissingSessionId(InvalidState):
    default_detail = "session_id manquant"


class ShippingAddressTooLong(InvalidState):
    default_detail = "Adresse de livraison trop longue"


# --- forbidden ---
class Forbidden(ShopError):
    status_code = 403
    kind = "forbidden"
    default_detail = "Accès interdit"


class CartNotOwned(Forbidden):
    def __init__(self, cart_id: str):
        self.cart_id = cart_id
        super().__init__(f"Ce panier n'appartient pas à l'utilisateur: {cart_id}")


# --- dependency_failure ---
class DependencyFailure(ShopError):
    status_code = 500
    kind = "dependency_failure"
    default_detail = "Echec d'une dépendance"


class OrderPersistFailed(DependencyFailure):
    default_detail = "Impossible d'enregistrer la commande"


class StockAdjustmentFailed(DependencyFailure):
    """
    La commande est enregistrée mais le stock n'a pas été ajusté.
    Pas de rollback automatique: la commande et le panier (status=consumed) restent
    en base pour une réconciliation manuelle.
    """
    default_detail = "Echec de la mise à jour du stock"

    def __init__(self, order_id: str, cart_id: str):
        self.order_id = order_id
        self.cart_id = cart_id
        super().__init__(
            f"Echec de la mise à jour du stock (commande {order_id} enregistrée, panier {cart_id} à réconcilier)"
        )


class GatewayError(DependencyFailure):
    default_detail = "Erreur de la passerelle de paiement"


class CardOrderMissing(DependencyFailure):
    """
    Paiement Stripe confirmé, panier déjà réservé, mais aucune commande en base
    (arrêt entre réservation et insertion, ou compensation échouée). A réconcilier.
    """
    default_detail = "Paiement reçu sans commande associée"

    def __init__(self, session_id: Optional[str], cart_id: str):
        self.session_id = session_id
        self.cart_id = cart_id
        super().__init__(
            f"Paiement reçu sans commande associée (session {session_id}, panier {cart_id} à réconcilier)"
        )


class SignatureError(DependencyFailure):
    # Erreur client: payload non signé ou signature invalide
    status_code = 400
    default_detail = "Signature webhook invalide"


# --- conflict ---
class Conflict(ShopError):
    status_code = 409
    kind = "conflict"
    default_detail = "Conflit"


class CartAlreadyConsumed(Conflict):
    def __init__(self, cart_id: str):
        self.cart_id = cart_id
        super().__init__(f"Panier déjà transformé en commande: {cart_id}")
