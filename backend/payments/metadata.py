"""
Métadonnées AstimPay: construction (session), décodage/validation (confirmations),
et rendu lecture seule des données stockées sur la commande (affichage opérateur).
"""
import json
from typing import Any, Dict, List, Optional, Type

from pydantic import ValidationError

from backend.config import GatewayConfig
from backend.orders.models import Order
from backend.payments.errors import MalformedPayload, PaymentError
from backend.payments.models import ConfirmationPayload, PaymentMode

# module backend.payments.metadata
def build_session_metadata(order_id: str, redirect_url: str, mode: PaymentMode) -> Dict[str, str]:
    """
    Métadonnées renvoyées telles quelles par AstimPay dans les confirmations.
    - order_id: relie la confirmation à la commande
    - redirect_url: page boutique vers laquelle renvoyer le client
    - payment_type: étiquette du mode (full_order | shipping_only)
    """
    return {
        "order_id": str(order_id),
        "redirect_url": redirect_url,
        "payment_type": mode.value,
    }

def decode_notification_body(raw_body: bytes) -> Dict[str, Any]:
    """
    Décode le corps JSON d'une notification serveur.
    Lève MalformedPayload si le corps est vide, non JSON, ou pas un objet.
    """
    if not raw_body or not raw_body.strip():
        raise MalformedPayload("Corps de webhook vide")
    try:
        data = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedPayload("Corps de webhook illisible") from e
    if not isinstance(data, dict):
        raise MalformedPayload("Corps de webhook illisible")
    return data

def parse_confirmation(data: Any, error_cls: Type[PaymentError]) -> ConfirmationPayload:
    """
    Valide une confirmation brute en ConfirmationPayload.
    - error_cls: erreur levée si un champ requis manque (status, metadata.order_id)
    """
    if not isinstance(data, dict):
        raise error_cls("Données de commande invalides")
    metadata = data.get("metadata")
    if not isinstance(metadata, dict) or not metadata.get("order_id"):
        raise error_cls("Identifiant de commande absent des données reçues")
    try:
        return ConfirmationPayload.model_validate(data)
    except ValidationError as e:
        raise error_cls(f"Données de commande invalides: {e.error_count()} erreur(s)") from e

def payment_info_rows(order: Order, config: GatewayConfig) -> Optional[List[Dict[str, str]]]:
    """
    Lignes d'affichage (lecture seule) des données AstimPay d'une commande.
    - None si la commande a été payée par une autre passerelle ou n'a pas de données.
    - Transaction: transaction_id, à défaut invoice_id.
    """
    if order.payment_method != config.gateway_id or not order.payment_data:
        return None
    data = order.payment_data
    mode = PaymentMode.for_gateway(config.gateway_id)
    amount_label = "Montant livraison (PAYÉ)" if mode is PaymentMode.SHIPPING_ONLY else "Montant (PAYÉ)"
    method_label = f"Moyen de paiement ({config.title})"
    return [
        {"label": method_label, "value": str(data.get("payment_method") or "").capitalize()},
        {"label": "Expéditeur", "value": str(data.get("sender_number") or "")},
        {"label": "Transaction", "value": str(data.get("transaction_id") or data.get("invoice_id") or "")},
        {"label": amount_label, "value": str(data.get("amount") or "")},
    ]
