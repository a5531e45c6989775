"""
Module 'payments' (feature-first): point d'entrée public.
Réunit client AstimPay, calcul des montants, classification virtuel/physique,
authentification webhook, initiation et rapprochement des confirmations.
"""

from .models import (
    PaymentMode,
    PaymentSessionRequest,
    PaymentSessionResult,
    ConfirmationPayload,
    RedirectInstruction,
)
from .errors import (
    PaymentError,
    InvalidOrder,
    NoShippableAmount,
    ProviderError,
    VerificationFailed,
    Unauthenticated,
    MalformedPayload,
)
from .amounts import resolve_amount, resolve_exchange_rate
from .fulfillment import is_virtual
from .webhook_auth import authenticate
from .metadata import build_session_metadata, parse_confirmation, payment_info_rows
from .provider_client import AstimPayClient
from .service import PaymentInitiator
from .reconciliation import ConfirmationReconciler

__all__ = [
    # models
    "PaymentMode",
    "PaymentSessionRequest",
    "PaymentSessionResult",
    "ConfirmationPayload",
    "RedirectInstruction",
    # errors
    "PaymentError",
    "InvalidOrder",
    "NoShippableAmount",
    "ProviderError",
    "VerificationFailed",
    "Unauthenticated",
    "MalformedPayload",
    # logique pure
    "resolve_amount",
    "resolve_exchange_rate",
    "is_virtual",
    "authenticate",
    # metadata
    "build_session_metadata",
    "parse_confirmation",
    "payment_info_rows",
    # client / services
    "AstimPayClient",
    "PaymentInitiator",
    "ConfirmationReconciler",
]
