"""
Cas d'usage 'payments' (initiation): orchestre repository commandes, montants, client AstimPay.
Aucun effet de bord (statut, panier) avant que le fournisseur ait renvoyé une URL de paiement.
"""
from typing import Any, Optional
import logging

from backend.config import BASE_URL, GatewayConfig, ORDER_CANCEL_PATH, ORDER_RECEIVED_PATH
from backend.orders import repository
from backend.orders.models import Order, OrderStatus
from backend.payments.amounts import resolve_amount, resolve_exchange_rate
from backend.payments.errors import InvalidOrder, ProviderError
from backend.payments.metadata import build_session_metadata
from backend.payments.models import PaymentMode, PaymentSessionRequest, RedirectInstruction
from backend.payments.provider_client import AstimPayClient

logger = logging.getLogger(__name__)

def order_received_url(order: Order) -> str:
    return BASE_URL + ORDER_RECEIVED_PATH.format(order_id=order.id)

def order_cancel_url(order: Order) -> str:
    return BASE_URL + ORDER_CANCEL_PATH.format(order_id=order.id)


class PaymentInitiator:
    """Crée la session AstimPay d'une commande et renvoie l'instruction de redirection checkout."""

    def __init__(self, config: GatewayConfig, client: Optional[AstimPayClient] = None) -> None:
        self.config = config
        self.mode = PaymentMode.for_gateway(config.gateway_id)
        self.client = client or AstimPayClient(config)

    def initiate(
        self,
        order_id: Any,
        *,
        customer_id: Optional[str] = None,
        redirect_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> RedirectInstruction:
        """
        Étapes:
          1) Charger la commande (InvalidOrder si absente, d'un autre client, ou déjà terminée)
          2) Résoudre montant/devise selon le mode (NoShippableAmount en livraison seule)
          3) Créer la session AstimPay (ProviderError si pas d'URL de paiement)
          4) Seulement ensuite: statut PENDING + notes, sauvegarde, panier vidé
        """
        order = repository.get_order(order_id)
        if order is None:
            raise InvalidOrder("Commande invalide")
        # Client connecté: seule sa propre commande est payable (pas les commandes invité)
        if customer_id and order.customer_id != customer_id:
            raise InvalidOrder("Commande appartenant à un autre utilisateur")
        if order.is_settled:
            raise InvalidOrder("Commande déjà payée")

        amount, currency = resolve_amount(order, self.mode)
        exchange_rate = resolve_exchange_rate(currency, self.config)

        session_request = PaymentSessionRequest(
            amount=amount,
            currency=currency,
            payer_name=order.billing_first_name,
            payer_email=order.billing_email,
            metadata=build_session_metadata(order.id, redirect_url or order_received_url(order), self.mode),
            success_url=self.config.callback_url,
            cancel_url=cancel_url or order_cancel_url(order),
            notify_url=self.config.callback_url,
            exchange_rate=exchange_rate,
        )
        result = self.client.create_payment(session_request)
        if not result.payment_url:
            raise ProviderError(result.message or "URL de paiement non reçue")

        order.payment_method = self.config.gateway_id
        if self.mode is PaymentMode.SHIPPING_ONLY:
            order.update_status(OrderStatus.PENDING, "En attente du paiement AstimPay (livraison uniquement)")
            order.add_note(f"Paiement AstimPay (livraison uniquement) initié pour le montant: {amount}")
        else:
            order.update_status(OrderStatus.PENDING, "En attente du paiement AstimPay")

        if not repository.save_order(order):
            # Terminée entre la lecture et l'écriture (confirmation concurrente)
            raise InvalidOrder("Commande déjà payée")
        repository.clear_cart(order.customer_id)

        logger.info(
            "payments.initiate gateway=%s order_id=%s amount=%s currency=%s invoice_id=%s",
            self.config.gateway_id, order.id, amount, currency, result.invoice_id,
        )
        return RedirectInstruction(redirect=result.payment_url)
