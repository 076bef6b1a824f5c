import logging
from typing import Optional, Dict, Any

from techtrain.config import SIGNUP_REDIRECT_URL
from techtrain.emails.dispatcher import send_welcome_email
from techtrain.utils.audit import log_failed_login, log_security_event
from techtrain.utils.results import ActionResult, ErrorKind
from techtrain.utils.translate_error import translate_auth_error
from . import repository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

def _auth_error_message(e: Exception) -> str:
    # Les erreurs GoTrue exposent le message brut (ex: "Invalid login credentials")
    return translate_auth_error(str(getattr(e, "message", None) or e))

def _build_user_dict(user) -> Dict[str, Any]:
    if isinstance(user, dict):
        return {"id": user.get("id"), "email": user.get("email"), "metadata": user.get("user_metadata") or {}}
    return {
        "id": getattr(user, "id", None),
        "email": getattr(user, "email", None),
        "metadata": getattr(user, "user_metadata", None) or {},
    }

# --- Cas d'usage Auth exposés ---

def sign_up(email: str, password: str, full_name: Optional[str] = None, *, mailer=None) -> ActionResult:
    """Inscription:
    - E-mail et mot de passe obligatoires, mot de passe de 8 caractères minimum
    - full_name stocké dans user_metadata (repris par le trigger de création du profil)
    - E-mail de bienvenue best-effort
    """
    email = (email or "").strip()
    if not email or not password:
        return ActionResult.fail("E-mailadres en wachtwoord zijn verplicht")
    if len(password) < MIN_PASSWORD_LENGTH:
        return ActionResult.fail("Wachtwoord moet minimaal 8 tekens bevatten")

    full_name = (full_name or "").strip()
    try:
        repository.auth_sign_up_account(
            email=email,
            password=password,
            options_data={"full_name": full_name} if full_name else None,
            email_redirect_to=SIGNUP_REDIRECT_URL,
        )
    except Exception as e:
        logger.warning("auth.sign_up failed email=%s error=%s", email, e)
        return ActionResult.fail(_auth_error_message(e))

    if mailer is not None:
        send_welcome_email(mailer, email, full_name or "Student")

    return ActionResult.ok(message="Controleer uw e-mail om uw account te bevestigen")

def sign_in(email: str, password: str, ip: str = "unknown") -> ActionResult:
    """Connexion: renvoie {access_token, refresh_token, user} en cas de succès."""
    email = (email or "").strip()
    if not email or not password:
        return ActionResult.fail("E-mailadres en wachtwoord zijn verplicht")
    try:
        res = repository.auth_sign_in_password(email, password)
    except Exception as e:
        log_failed_login(email, ip, reason=str(getattr(e, "message", None) or e))
        return ActionResult.fail("Ongeldige inloggegevens", kind=ErrorKind.UNAUTHORIZED)

    session = getattr(res, "session", None)
    access_token = getattr(session, "access_token", None)
    if not access_token:
        log_failed_login(email, ip, reason="no session")
        return ActionResult.fail("Ongeldige inloggegevens", kind=ErrorKind.UNAUTHORIZED)

    return ActionResult.ok(
        data={
            "access_token": access_token,
            "refresh_token": getattr(session, "refresh_token", None),
            "user": _build_user_dict(getattr(res, "user", None)),
        }
    )

def request_password_reset(email: str, redirect_to: str) -> ActionResult:
    email = (email or "").strip()
    if not email:
        return ActionResult.fail("E-mailadres is verplicht")
    try:
        repository.auth_send_reset_password(email, redirect_to)
    except Exception as e:
        logger.warning("auth.request_password_reset failed email=%s error=%s", email, e)
        return ActionResult.fail(_auth_error_message(e))
    return ActionResult.ok(message="Controleer uw e-mail voor instructies om uw wachtwoord te resetten")

def update_password(user_token: Optional[str], password: str, confirm_password: str) -> ActionResult:
    """Mise à jour du mot de passe (utilisateur connecté ou token issu du lien de reset)."""
    if not user_token:
        return ActionResult.fail("Niet ingelogd", kind=ErrorKind.UNAUTHORIZED)
    if not password or not confirm_password:
        return ActionResult.fail("Beide wachtwoordvelden zijn verplicht")
    if password != confirm_password:
        return ActionResult.fail("Wachtwoorden komen niet overeen")
    if len(password) < MIN_PASSWORD_LENGTH:
        return ActionResult.fail("Wachtwoord moet minimaal 8 tekens bevatten")

    try:
        resp = repository.auth_update_user_password(user_token, password)
    except Exception as e:
        logger.exception("auth.update_password request failed")
        return ActionResult.fail(_auth_error_message(e))

    if 200 <= resp.status_code < 300:
        log_security_event("Password changed")
        return ActionResult.ok(message="Wachtwoord succesvol bijgewerkt")

    msg = None
    try:
        body = resp.json()
        msg = body.get("msg") or body.get("message") or body.get("error_description") or body.get("error")
    except ValueError:
        msg = resp.text
    logger.warning("auth.update_password rejected status=%s msg=%s", resp.status_code, msg)
    return ActionResult.fail(translate_auth_error(msg or ""))

# --- Intégration sécurité / profil ---

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur issu de supabase.auth.get_user(access_token):
    retourne {id, email, metadata, token}.
    """
    raw = repository.get_user_from_access_token(access_token)
    return {
        "id": raw.get("id"),
        "email": raw.get("email"),
        "metadata": raw.get("user_metadata") or {},
        "token": access_token,
    }

def get_profile(user: Optional[Dict[str, Any]]) -> ActionResult:
    if not user:
        return ActionResult.fail("Niet ingelogd", kind=ErrorKind.UNAUTHORIZED)
    profile = repository.get_profile(user["token"], user["id"])
    if profile is None:
        return ActionResult.fail("Profiel niet gevonden", kind=ErrorKind.NOT_FOUND)
    return ActionResult.ok(data=profile)

def update_profile(user: Optional[Dict[str, Any]], full_name: Optional[str], avatar_url: Optional[str]) -> ActionResult:
    if not user:
        return ActionResult.fail("Niet ingelogd", kind=ErrorKind.UNAUTHORIZED)
    fields = {"full_name": full_name, "avatar_url": avatar_url}
    try:
        row = repository.update_profile(user["token"], user["id"], fields)
    except Exception as e:
        logger.exception("auth.update_profile failed user_id=%s", user["id"])
        return ActionResult.fail(str(getattr(e, "message", None) or e))
    return ActionResult.ok(data=row, message="Profiel succesvol bijgewerkt")
