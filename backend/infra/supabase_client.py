"""
Clients Supabase partagés.
- get_supabase(): client 'anon', utilisé pour résoudre les sessions utilisateurs (auth).
- get_service_supabase(): client service-role, utilisé pour les commandes (écritures webhook).
"""
from typing import Optional
from supabase import create_client, Client
from backend.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def get_supabase() -> Client:
    global _supabase
    if _supabase is None:
        _supabase = create_client(SUPABASE_URL, SUPABASE_ANON)
    return _supabase

def get_service_supabase() -> Client:
    """
    Client service-role (bypass RLS): les callbacks AstimPay n'ont pas de session utilisateur.
    Lève RuntimeError si SUPABASE_SERVICE_KEY est absent.
    """
    global _service_supabase
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _service_supabase
