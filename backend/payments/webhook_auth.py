import secrets
from typing import Optional

API_KEY_HEADER = "API-KEY"

# module backend.payments.webhook_auth
def authenticate(presented_key: Optional[str], configured_key: Optional[str]) -> bool:
    """
    Vérifie la clé transmise par AstimPay (en-tête API-KEY) contre la clé configurée.
    Comparaison à temps constant; une clé absente d'un côté ou de l'autre est refusée.
    """
    if not presented_key or not configured_key:
        return False
    return secrets.compare_digest(presented_key.encode("utf-8"), configured_key.encode("utf-8"))
