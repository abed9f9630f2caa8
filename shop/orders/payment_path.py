"""
Choix du mode de paiement pour une commande créée directement (hors redirection Stripe).
"""
from typing import NamedTuple

from shop.orders.errors import CardPaymentNotConfirmed
from shop.orders.models import PaymentMethod


class PaymentPath(NamedTuple):
    method: PaymentMethod
    paid: bool


# module shop.orders.payment_path
def select_payment_path(
    payment_method: PaymentMethod | str | None,
    completed_payment: bool = False,
    allow_cash_fallback: bool = False,
) -> PaymentPath:
    """
    - cash -> commande cash, non payée
    - card + paiement complété -> commande card, payée à la création
    - card sans confirmation -> CardPaymentNotConfirmed, sauf si allow_cash_fallback
      (ancien comportement: commande cash non payée)
    """
    method = str(getattr(payment_method, "value", payment_method) or PaymentMethod.CASH.value).lower()
    if method != PaymentMethod.CARD.value:
        return PaymentPath(PaymentMethod.CASH, False)
    if completed_payment:
        return PaymentPath(PaymentMethod.CARD, True)
    if allow_cash_fallback:
        return PaymentPath(PaymentMethod.CASH, False)
    raise CardPaymentNotConfirmed()
