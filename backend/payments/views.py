import logging
import urllib.parse
from typing import Any, Dict, Iterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, field_validator
from starlette.concurrency import run_in_threadpool
from starlette.status import HTTP_302_FOUND

from backend.config import GatewayConfig, load_gateway_config
from backend.orders import repository as orders_repository
from backend.payments.errors import CALLBACK_ERRORS, CHECKOUT_ERRORS
from backend.payments.metadata import payment_info_rows
from backend.payments.provider_client import AstimPayClient
from backend.payments.reconciliation import ConfirmationReconciler
from backend.payments.service import PaymentInitiator
from backend.payments.webhook_auth import API_KEY_HEADER
from backend.utils.rate_limit import optional_rate_limit
from backend.utils.security import require_admin, require_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# Message générique pour les erreurs internes (le détail reste dans les journaux)
CALLBACK_ERROR_DETAIL = "Erreur webhook AstimPay"


class ProcessPaymentRequest(BaseModel):
    order_id: str

    @field_validator("order_id", mode="before")
    @classmethod
    def _order_id_as_str(cls, v: Any) -> str:
        return str(v) if v is not None else ""


# module backend.payments.views
def get_gateway_config(gateway_id: str) -> GatewayConfig:
    """Dépendance: configuration de la passerelle du chemin (404 si inconnue ou désactivée)."""
    try:
        config = load_gateway_config(gateway_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Passerelle inconnue")
    if not config.is_valid_for_use():
        raise HTTPException(status_code=404, detail="Passerelle désactivée ou non configurée")
    return config

def get_provider_client(config: GatewayConfig = Depends(get_gateway_config)) -> Iterator[AstimPayClient]:
    """Dépendance: client AstimPay de la requête, fermé en fin de requête."""
    client = AstimPayClient(config)
    try:
        yield client
    finally:
        client.close()

async def _read_invoice_id(request: Request) -> Optional[str]:
    """invoice_id en query string, ou en champ de formulaire (POST x-www-form-urlencoded)."""
    invoice_id = request.query_params.get("invoice_id")
    if not invoice_id and request.method == "POST":
        ctype = request.headers.get("content-type", "")
        if ctype.startswith("application/x-www-form-urlencoded"):
            body = await request.body()
            values = urllib.parse.parse_qs(body.decode("utf-8", errors="replace")).get("invoice_id", [])
            invoice_id = values[0] if values else None
    invoice_id = (invoice_id or "").strip()
    return invoice_id or None


@router.post("/{gateway_id}/process", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def process_payment(
    body: ProcessPaymentRequest,
    config: GatewayConfig = Depends(get_gateway_config),
    client: AstimPayClient = Depends(get_provider_client),
    user: Dict[str, Any] = Depends(require_user),
):
    """
    Initie le paiement AstimPay d'une commande (checkout boutique).
    - Entrée JSON: { "order_id": "<id>" }
    - Sécurité: require_user + rate limit (10 req / 60s); la commande doit appartenir au client
    - Réponse: { "result": "success", "redirect": "<payment_url>" }
    - Erreurs: 400 (commande invalide, pas de frais de livraison, erreur AstimPay)
    """
    initiator = PaymentInitiator(config, client)
    try:
        instruction = initiator.initiate(body.order_id, customer_id=user.get("id"))
        return instruction.model_dump()
    except CHECKOUT_ERRORS as e:
        logger.warning("payments.process failed gateway=%s order_id=%s error=%s", config.gateway_id, body.order_id, e)
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Erreur process_payment")
        raise HTTPException(status_code=500, detail="Erreur lors de l'initialisation du paiement")


@router.api_route("/{gateway_id}/callback", methods=["GET", "POST"], include_in_schema=False)
async def payment_callback(
    request: Request,
    config: GatewayConfig = Depends(get_gateway_config),
    client: AstimPayClient = Depends(get_provider_client),
):
    """
    Callback AstimPay unique (URL de succès et URL de notification).
    - invoice_id présent: vérification auprès d'AstimPay puis redirection 302 vers la boutique
    - sinon: notification serveur authentifiée par l'en-tête API-KEY -> {"status": "ok"}
    - Erreurs: 500 avec le message (visible dans les journaux de livraison du fournisseur)
    """
    reconciler = ConfirmationReconciler(config, client)
    try:
        invoice_id = await _read_invoice_id(request)
        if invoice_id:
            redirect_url = await run_in_threadpool(reconciler.verify_redirect, invoice_id)
            return RedirectResponse(url=redirect_url, status_code=HTTP_302_FOUND)

        raw_body = await request.body()
        presented_key = request.headers.get(API_KEY_HEADER)
        result = await run_in_threadpool(reconciler.handle_notification, presented_key, raw_body)
        return JSONResponse(result)
    except CALLBACK_ERRORS as e:
        logger.warning("payments.callback rejected gateway=%s error=%s: %s", config.gateway_id, type(e).__name__, e)
        raise HTTPException(status_code=500, detail=str(e))
    except Exception:
        logger.exception("Erreur payment_callback gateway=%s", config.gateway_id)
        raise HTTPException(status_code=500, detail=CALLBACK_ERROR_DETAIL)


@router.get("/orders/{order_id}/transaction")
def order_transaction(order_id: str, admin: Dict[str, Any] = Depends(require_admin)):
    """
    Affichage opérateur (lecture seule) des données AstimPay stockées sur la commande.
    - 404 si commande absente, payée par une autre passerelle, ou sans données.
    """
    order = orders_repository.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Commande introuvable")
    try:
        config = load_gateway_config(order.payment_method or "")
    except KeyError:
        raise HTTPException(status_code=404, detail="Aucun paiement AstimPay pour cette commande")
    rows = payment_info_rows(order, config)
    if rows is None:
        raise HTTPException(status_code=404, detail="Aucun paiement AstimPay pour cette commande")
    return {"order_id": order.id, "gateway": config.gateway_id, "status": order.status, "rows": rows}
