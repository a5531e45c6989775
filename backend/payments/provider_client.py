"""
Adaptateur AstimPay: centralise les appels HTTP au fournisseur (httpx, synchrone).
- Aucune logique de retry ni de cache: les erreurs transport/API remontent en ProviderError.
- La configuration (clé, URL, timeout, debug) est propre à chaque instance.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from backend.config import GatewayConfig
from backend.payments.errors import ProviderError, VerificationFailed
from backend.payments.metadata import parse_confirmation
from backend.payments.models import ConfirmationPayload, PaymentSessionRequest, PaymentSessionResult
from backend.payments.webhook_auth import API_KEY_HEADER

logger = logging.getLogger(__name__)

CHECKOUT_PATH = "/api/checkout-v2"
VERIFY_PATH = "/api/verify-payment"

# module backend.payments.provider_client
class AstimPayClient:
    def __init__(self, config: GatewayConfig, *, http_client: Optional[httpx.Client] = None) -> None:
        self.config = config
        self._owns_http = http_client is None
        self.http = http_client or httpx.Client(timeout=config.timeout_seconds)

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.config.api_url}{path}"
        headers = {
            API_KEY_HEADER: self.config.api_key,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.config.debug:
            logger.info("astimpay.request gateway=%s url=%s body=%s", self.config.gateway_id, url, body)
        try:
            response = self.http.post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise ProviderError(f"AstimPay injoignable: {e}") from e
        if self.config.debug:
            logger.info(
                "astimpay.response gateway=%s status=%s body=%s",
                self.config.gateway_id, response.status_code, response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"Réponse AstimPay illisible (HTTP {response.status_code})") from e

        if response.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise ProviderError(message or f"AstimPay a répondu HTTP {response.status_code}")
        if not isinstance(data, dict):
            raise ProviderError("Réponse AstimPay inattendue")
        return data

    def create_payment(self, request: PaymentSessionRequest) -> PaymentSessionResult:
        """
        Crée une session de paiement.
        Retour: PaymentSessionResult (payment_url si succès, sinon message du fournisseur).
        """
        data = self._post(CHECKOUT_PATH, request.to_provider_body())
        return PaymentSessionResult.from_response(data)

    def verify_payment(self, invoice_id: str) -> ConfirmationPayload:
        """
        Interroge AstimPay pour une facture: seule source faisant foi pour le canal redirection.
        Lève VerificationFailed si la réponse ne référence aucune commande.
        """
        data = self._post(VERIFY_PATH, {"invoice_id": invoice_id})
        return parse_confirmation(data, VerificationFailed)
