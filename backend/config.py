# backend.config
from pathlib import Path
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du backend.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase), sécurité cookies, CORS/hosts
- Construit la configuration de chaque passerelle AstimPay (GatewayConfig),
  une valeur explicite par instance de passerelle (pas d'état partagé)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

# Supabase: URLs et clés (public/anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

# URL publique du site (sert à construire les URLs de callback AstimPay)
BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000").rstrip("/")

# Pages boutique: remerciement (après paiement) et annulation de commande
ORDER_RECEIVED_PATH = os.getenv("ORDER_RECEIVED_PATH", "/checkout/order-received/{order_id}")
ORDER_CANCEL_PATH = os.getenv("ORDER_CANCEL_PATH", "/cart?cancel_order={order_id}")

# AstimPay règle en BDT: toute autre devise boutique nécessite un taux de change
SETTLEMENT_CURRENCY = "BDT"

GATEWAY_FULL_ORDER = "astimpay"
GATEWAY_SHIPPING_ONLY = "astimpay_shipping_only"

# Statuts autorisés pour les commandes payées (réglages physique/numérique)
ALLOWED_PRODUCT_STATUSES = ("on-hold", "processing", "completed")

_GATEWAY_ENV_PREFIX = {
    GATEWAY_FULL_ORDER: "ASTIMPAY_",
    GATEWAY_SHIPPING_ONLY: "ASTIMPAY_SHIPPING_ONLY_",
}

_GATEWAY_TITLES = {
    GATEWAY_FULL_ORDER: "AstimPay",
    GATEWAY_SHIPPING_ONLY: "AstimPay (Livraison uniquement)",
}


@dataclass(frozen=True)
class GatewayConfig:
    """
    Réglages d'une passerelle AstimPay.
    - gateway_id: identifiant côté boutique (astimpay | astimpay_shipping_only)
    - api_key/api_url: identifiants du panneau AstimPay (Brand Settings)
    - exchange_rate: taux devise boutique -> BDT, transmis tel quel au fournisseur
    - physical_product_status/digital_product_status: statut après paiement réussi
    """

    gateway_id: str
    title: str
    api_key: str
    api_url: str
    exchange_rate: Decimal = Decimal("120")
    physical_product_status: str = "processing"
    digital_product_status: str = "completed"
    debug: bool = False
    enabled: bool = True
    timeout_seconds: float = 30.0

    @property
    def callback_url(self) -> str:
        return f"{BASE_URL}/api/v1/payments/{self.gateway_id}/callback"

    def is_valid_for_use(self) -> bool:
        return bool(self.enabled and self.api_key and self.api_url)


def _env_flag(name: str, default: str = "no") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes", "on")


def _env_decimal(name: str, default: str) -> Decimal:
    raw = _clean_env(os.getenv(name) or default)
    try:
        return Decimal(raw)
    except InvalidOperation:
        return Decimal(default)


def _env_status(name: str, default: str) -> str:
    value = _clean_env(os.getenv(name) or default).lower()
    if value.startswith("wc-"):
        value = value[3:]
    return value if value in ALLOWED_PRODUCT_STATUSES else default


def load_gateway_config(gateway_id: str) -> GatewayConfig:
    """
    Lit la configuration d'une passerelle depuis l'environnement.
    Préfixes: ASTIMPAY_ (commande complète) et ASTIMPAY_SHIPPING_ONLY_ (livraison).
    Lève KeyError si gateway_id est inconnu.
    """
    prefix = _GATEWAY_ENV_PREFIX[gateway_id]
    timeout = _clean_env(os.getenv(prefix + "TIMEOUT_SECONDS") or "30")
    return GatewayConfig(
        gateway_id=gateway_id,
        title=_clean_env(os.getenv(prefix + "TITLE") or _GATEWAY_TITLES[gateway_id]),
        api_key=_clean_env(os.getenv(prefix + "API_KEY") or ""),
        api_url=_clean_env(os.getenv(prefix + "API_URL") or "").rstrip("/"),
        exchange_rate=_env_decimal(prefix + "EXCHANGE_RATE", "120"),
        physical_product_status=_env_status(prefix + "PHYSICAL_PRODUCT_STATUS", "processing"),
        digital_product_status=_env_status(prefix + "DIGITAL_PRODUCT_STATUS", "completed"),
        debug=_env_flag(prefix + "DEBUG"),
        enabled=_env_flag(prefix + "ENABLED", "yes"),
        timeout_seconds=float(timeout) if timeout.replace(".", "", 1).isdigit() else 30.0,
    )
