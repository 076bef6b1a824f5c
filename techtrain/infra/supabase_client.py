"""
Accès aux clients Supabase.
- get_supabase: client 'anon' partagé (lectures publiques: catalogue, health).
- get_service_supabase: client service-role (bypass RLS), réservé au webhook Stripe.
- get_user_supabase: client 'anon' authentifié par le token utilisateur (RLS actif).
"""
from typing import Optional
from fastapi import HTTPException
from supabase import create_client, Client
from techtrain.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

# Code Postgres renvoyé par PostgREST pour une violation de contrainte unique
UNIQUE_VIOLATION = "23505"

def get_supabase() -> Client:
    global _supabase
    if _supabase is None:
        if not SUPABASE_URL or not SUPABASE_ANON:
            raise HTTPException(status_code=500, detail="SUPABASE_URL/SUPABASE_ANON_KEY manquants")
        _supabase = create_client(SUPABASE_URL, SUPABASE_ANON)
    return _supabase

def get_service_supabase() -> Client:
    global _service_supabase
    if _service_supabase is None:
        if not SUPABASE_URL or not SUPABASE_SERVICE_KEY:
            raise HTTPException(status_code=500, detail="SUPABASE_SERVICE_KEY manquant pour les opérations service")
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _service_supabase

def get_user_supabase(user_token: str) -> Client:
    """
    Client Supabase 'anon' avec auth utilisateur (RLS actif).
    À utiliser pour opérer au nom d'un utilisateur sans polluer l'instance globale.
    """
    if not user_token:
        raise ValueError("user_token is required")
    if not SUPABASE_URL or not SUPABASE_ANON:
        raise HTTPException(status_code=500, detail="SUPABASE_URL/SUPABASE_ANON_KEY manquants")
    client = create_client(SUPABASE_URL, SUPABASE_ANON)
    client.postgrest.auth(user_token)
    return client

def is_unique_violation(exc: Exception) -> bool:
    """Vrai si l'erreur PostgREST correspond à une contrainte UNIQUE violée."""
    code = str(getattr(exc, "code", "") or "")
    return code == UNIQUE_VIOLATION or UNIQUE_VIOLATION in str(exc)
