# module backend.payments.models
"""
Types du domaine paiement AstimPay.
- PaymentMode: commande complète ou frais de livraison uniquement (une passerelle par mode).
- PaymentSessionRequest / PaymentSessionResult: création de session (éphémères).
- ConfirmationPayload: confirmation normalisée, identique pour les deux canaux
  (réponse de vérification ou corps de notification).
"""
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from backend.config import GATEWAY_FULL_ORDER, GATEWAY_SHIPPING_ONLY
from backend.orders.models import SETTLED_PAYMENT_STATUS

COMPLETED = SETTLED_PAYMENT_STATUS


class PaymentMode(str, Enum):
    FULL_ORDER = "full_order"
    SHIPPING_ONLY = "shipping_only"

    @classmethod
    def for_gateway(cls, gateway_id: str) -> "PaymentMode":
        return _GATEWAY_MODES[gateway_id]


_GATEWAY_MODES = {
    GATEWAY_FULL_ORDER: PaymentMode.FULL_ORDER,
    GATEWAY_SHIPPING_ONLY: PaymentMode.SHIPPING_ONLY,
}


class PaymentSessionRequest(BaseModel):
    amount: Decimal
    currency: str
    payer_name: str
    payer_email: str
    metadata: Dict[str, Any]
    success_url: str
    cancel_url: str
    notify_url: str
    exchange_rate: Optional[Decimal] = None

    def to_provider_body(self) -> Dict[str, Any]:
        """Corps JSON attendu par l'endpoint checkout AstimPay."""
        body: Dict[str, Any] = {
            "full_name": self.payer_name,
            "email": self.payer_email,
            "amount": str(self.amount),
            "currency": self.currency,
            "metadata": self.metadata,
            "redirect_url": self.success_url,
            "return_type": "GET",
            "cancel_url": self.cancel_url,
            "webhook_url": self.notify_url,
        }
        if self.exchange_rate is not None:
            body["exchange_rate"] = str(self.exchange_rate)
        return body


class PaymentSessionResult(BaseModel):
    payment_url: Optional[str] = None
    message: Optional[str] = None
    invoice_id: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "PaymentSessionResult":
        invoice_id = data.get("invoice_id")
        return cls(
            payment_url=data.get("payment_url") or None,
            message=data.get("message") or None,
            invoice_id=str(invoice_id) if invoice_id else None,
        )


class ConfirmationMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    order_id: str
    redirect_url: Optional[str] = None
    payment_type: Optional[str] = None

    @field_validator("order_id", mode="before")
    @classmethod
    def _order_id_required(cls, v: Any) -> str:
        value = "" if v is None else str(v).strip()
        if not value:
            raise ValueError("order_id manquant")
        return value


class ConfirmationPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: str
    metadata: ConfirmationMetadata
    payment_method: Optional[str] = None
    sender_number: Optional[str] = None
    amount: Optional[Decimal] = None
    transaction_id: Optional[str] = None
    invoice_id: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v: Any) -> str:
        return str(v if v is not None else "").strip().upper()

    @field_validator("payment_method", "sender_number", "transaction_id", "invoice_id", mode="before")
    @classmethod
    def _as_str(cls, v: Any) -> Optional[str]:
        return None if v in (None, "") else str(v)

    @field_validator("amount", mode="before")
    @classmethod
    def _empty_amount(cls, v: Any) -> Any:
        return None if v == "" else v

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED


class RedirectInstruction(BaseModel):
    result: str = "success"
    redirect: str
