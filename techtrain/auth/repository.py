from typing import Optional, Dict, Any
import logging
import httpx
import techtrain.infra.supabase_client as supabase_client
from techtrain.config import SUPABASE_URL, SUPABASE_ANON

logger = logging.getLogger(__name__)

# --- Auth (supabase.auth.*) ---

def auth_sign_in_password(email: str, password: str):
    """Wrapper Supabase Auth: connexion par email/mot de passe (GoTrue)."""
    client = supabase_client.get_supabase()
    return client.auth.sign_in_with_password({"email": email, "password": password})

def auth_sign_up_account(
    email: str,
    password: str,
    options_data: Optional[Dict[str, Any]] = None,
    email_redirect_to: Optional[str] = None
):
    """Wrapper Supabase Auth: inscription d'un compte.
    - options.data: metadata (ex. full_name)
    - options.email_redirect_to: URL de confirmation (SIGNUP_REDIRECT_URL)
    """
    client = supabase_client.get_supabase()
    credentials: Dict[str, Any] = {"email": email, "password": password}
    options: Dict[str, Any] = {}
    if options_data:
        options["data"] = options_data
    if email_redirect_to:
        options["email_redirect_to"] = email_redirect_to
    if options:
        credentials["options"] = options
    return client.auth.sign_up(credentials)

def auth_send_reset_password(email: str, redirect_to: str):
    """Wrapper Supabase Auth: envoi d'un email de reset avec redirection."""
    client = supabase_client.get_supabase()
    return client.auth.reset_password_for_email(email, options={"redirect_to": redirect_to})

def auth_update_user_password(user_token: str, new_password: str) -> httpx.Response:
    """Appel direct GoTrue pour mettre à jour le mot de passe:
    - httpx PUT /auth/v1/user avec Authorization: Bearer <user_token>
    - Apikey (SUPABASE_ANON) requis; timeout de 10s
    """
    url = f"{SUPABASE_URL.rstrip('/')}/auth/v1/user"
    headers = {
        "Authorization": f"Bearer {user_token}",
        "apikey": SUPABASE_ANON,
        "Content-Type": "application/json",
    }
    return httpx.put(url, json={"password": new_password}, headers=headers, timeout=10)

def get_user_from_access_token(access_token: str) -> Dict[str, Any]:
    """Récupère et normalise l'utilisateur depuis supabase.auth.get_user(access_token)."""
    res = supabase_client.get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {
            "id": getattr(user, "id", None),
            "email": getattr(user, "email", None),
            "user_metadata": getattr(user, "user_metadata", None),
        }
    return user or {}

# --- Table profiles ---

def get_profile(user_token: str, user_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_user_supabase(user_token)
            .table("profiles")
            .select("*")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("auth.repository.get_profile failed user_id=%s", user_id)
        return None

def update_profile(user_token: str, user_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Met à jour les colonnes autorisées du profil; lève en cas d'erreur PostgREST."""
    res = (
        supabase_client.get_user_supabase(user_token)
        .table("profiles")
        .update(fields)
        .eq("id", user_id)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None
