"""
Rapprochement commande <-> confirmation AstimPay (machine à états).

Deux canaux, une seule transition:
- Redirection navigateur (invoice_id présent): la facture est re-vérifiée auprès d'AstimPay,
  ce qui tient lieu d'authentification; le client est ensuite redirigé vers metadata.redirect_url.
- Notification serveur (pas d'invoice_id): clé API-KEY vérifiée avant toute lecture du corps.

Les deux canaux peuvent arriver dans n'importe quel ordre, en double, ou en parallèle:
- une commande réglée ('completed', ou confirmation COMPLETED déjà enregistrée)
  n'est plus jamais modifiée (garde d'idempotence);
- save_order() ne met à jour que si la commande n'est pas réglée en base (compare-and-set).
"""
from typing import Dict, Optional, Type
import logging

from backend.config import GatewayConfig
from backend.orders import repository
from backend.orders.models import Order, OrderStatus
from backend.payments.errors import (
    MalformedPayload,
    PaymentError,
    ProviderError,
    Unauthenticated,
    VerificationFailed,
)
from backend.payments.fulfillment import is_virtual
from backend.payments.metadata import decode_notification_body, parse_confirmation
from backend.payments.models import ConfirmationPayload, PaymentMode
from backend.payments.provider_client import AstimPayClient
from backend.payments.webhook_auth import authenticate

logger = logging.getLogger(__name__)


class ConfirmationReconciler:
    def __init__(self, config: GatewayConfig, client: Optional[AstimPayClient] = None) -> None:
        self.config = config
        self.mode = PaymentMode.for_gateway(config.gateway_id)
        self.client = client or AstimPayClient(config)

    # --- Canaux d'entrée ---
    def verify_redirect(self, invoice_id: str) -> str:
        """
        Canal redirection: vérifie la facture, applique la transition,
        retourne l'URL de redirection (302) vers la boutique.
        """
        try:
            payload = self.client.verify_payment(invoice_id)
        except ProviderError as e:
            raise VerificationFailed(str(e)) from e
        if not payload.metadata.redirect_url:
            raise VerificationFailed("Données de commande invalides (redirect_url manquant)")

        order = self._load_order(payload, VerificationFailed)
        self.apply_transition(order, payload, VerificationFailed)
        return payload.metadata.redirect_url

    def handle_notification(self, presented_key: Optional[str], raw_body: bytes) -> Dict[str, str]:
        """
        Canal notification serveur: authentifie, décode, applique la transition.
        Retour: accusé {"status": "ok"} (pas de navigateur, pas de redirection).
        """
        if not authenticate(presented_key, self.config.api_key):
            raise Unauthenticated("Signature webhook invalide")

        data = decode_notification_body(raw_body)
        payload = parse_confirmation(data, MalformedPayload)
        order = self._load_order(payload, MalformedPayload)
        self.apply_transition(order, payload)
        return {"status": "ok"}

    def _load_order(self, payload: ConfirmationPayload, error_cls: Type[PaymentError]) -> Order:
        order = repository.get_order(payload.metadata.order_id)
        if order is None:
            raise error_cls("Commande introuvable")
        return order

    # --- Transition ---
    def _check_gateway(self, order: Order, payload: ConfirmationPayload, error_cls: Type[PaymentError]) -> None:
        """
        La confirmation doit appartenir à cette passerelle:
        - metadata.payment_type (posé à l'initiation) égal au mode de la passerelle
        - order.payment_method, s'il est renseigné, égal à l'id de la passerelle
        """
        payment_type = payload.metadata.payment_type
        if payment_type and payment_type != self.mode.value:
            raise error_cls(f"Type de paiement {payment_type} inattendu pour {self.config.gateway_id}")
        if order.payment_method and order.payment_method != self.config.gateway_id:
            raise error_cls(f"Commande initiée avec une autre passerelle ({order.payment_method})")

    def apply_transition(
        self,
        order: Order,
        payload: ConfirmationPayload,
        error_cls: Type[PaymentError] = MalformedPayload,
    ) -> bool:
        """
        Applique la confirmation à la commande.
        Retour: True si l'écriture a porté, False si no-op (commande déjà réglée).
        Lève error_cls si la confirmation relève d'une autre passerelle (avant toute écriture).
        """
        self._check_gateway(order, payload, error_cls)
        if order.is_settled:
            logger.info(
                "payments.reconcile noop gateway=%s order_id=%s reason=settled",
                self.config.gateway_id, order.id,
            )
            return False

        order.payment_data = payload.model_dump(mode="json")

        if payload.is_completed:
            self._complete(order, payload)
        else:
            order.update_status(
                OrderStatus.ON_HOLD,
                "Paiement AstimPay en attente. Merci de vérifier manuellement.",
            )

        saved = repository.save_order(order)
        if saved:
            logger.info(
                "payments.reconcile gateway=%s order_id=%s provider_status=%s status=%s transaction_id=%s",
                self.config.gateway_id, order.id, payload.status, order.status, payload.transaction_id,
            )
        else:
            logger.info(
                "payments.reconcile noop gateway=%s order_id=%s reason=concurrent_completion",
                self.config.gateway_id, order.id,
            )
        return saved

    def _complete(self, order: Order, payload: ConfirmationPayload) -> None:
        if is_virtual(order):
            status = self.config.digital_product_status
        else:
            status = self.config.physical_product_status

        label = "Paiement livraison" if self.mode is PaymentMode.SHIPPING_ONLY else "Paiement"
        note = (
            f"{label} via {payload.payment_method or 'AstimPay'}. "
            f"Montant: {payload.amount}, Transaction: {payload.transaction_id}"
        )
        # Livraison seule: la commande n'est pas marquée payée (le solde n'a pas été encaissé)
        if self.mode is PaymentMode.FULL_ORDER:
            order.mark_paid(payload.transaction_id)
        order.update_status(status, note)
        order.add_note(f"{self.config.title}: paiement terminé.")
