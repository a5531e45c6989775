"""
Calcul du montant à encaisser (logique pure, pas d'appel réseau ni DB).
La conversion de devise reste côté AstimPay: on transmet le taux, jamais un montant converti.
"""
from decimal import Decimal
from typing import Optional, Tuple

from backend.config import GatewayConfig, SETTLEMENT_CURRENCY
from backend.orders.models import Order
from backend.payments.errors import NoShippableAmount, ProviderError
from backend.payments.models import PaymentMode

# module backend.payments.amounts
def resolve_amount(order: Order, mode: PaymentMode) -> Tuple[Decimal, str]:
    """
    Retourne (montant, devise) pour la commande selon le mode.
    - FULL_ORDER: total de la commande
    - SHIPPING_ONLY: frais de livraison; NoShippableAmount si <= 0
    """
    if mode is PaymentMode.SHIPPING_ONLY:
        amount = Decimal(order.shipping_total)
        if amount <= 0:
            raise NoShippableAmount("Aucun frais de livraison à encaisser.")
        return amount, order.currency
    return Decimal(order.total), order.currency

def resolve_exchange_rate(currency: str, config: GatewayConfig) -> Optional[Decimal]:
    """Taux à transmettre: None en BDT, sinon le taux configuré (doit être > 0)."""
    if (currency or "").upper() == SETTLEMENT_CURRENCY:
        return None
    if config.exchange_rate <= 0:
        raise ProviderError(f"Taux de change {currency} -> {SETTLEMENT_CURRENCY} non configuré")
    return config.exchange_rate
