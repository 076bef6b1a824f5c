"""
Données personnelles du compte (droits d'accès, de portabilité et d'effacement).
- export_user_data: export JSON complet, limité au compte connecté
- request_data_portability: même export, tracé comme demande de portabilité
- request_account_deletion / delete_user_data: demande puis confirmation de suppression
- update_privacy_preferences: consentements marketing / traitement
La suppression effective n'est jamais exécutée ici: demandes et confirmations sont journalisées
(audit) et traitées par l'administration.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import json
import logging

import techtrain.infra.supabase_client as supabase_client
from techtrain.auth import repository as auth_repo
from techtrain.enrollments.models import EnrollmentStatus
from techtrain.payments import repository as payments_repo
from techtrain.utils.audit import log_audit_event, log_security_event
from techtrain.utils.results import ActionResult, ErrorKind

logger = logging.getLogger(__name__)

EXPORT_UNAUTHORIZED = "Niet geautoriseerd. Log in om uw gegevens te exporteren."
EXPORT_FORBIDDEN = "U kunt alleen uw eigen gegevens exporteren."
EXPORT_FAILED = "Er is een fout opgetreden bij het exporteren van uw gegevens."
DELETION_UNAUTHORIZED = "Niet geautoriseerd. Log in om uw account te verwijderen."
DELETION_BLOCKED = "U heeft nog actieve cursusinschrijvingen. Annuleer deze eerst voordat u uw account verwijdert."
DELETION_REQUESTED = "Accountverwijdering aangevraagd. U ontvangt een bevestigingsmail."
DELETION_FAILED = "Er is een fout opgetreden bij het aanvragen van accountverwijdering."
NOT_AUTHORIZED = "Niet geautoriseerd."
DELETE_FORBIDDEN = "U kunt alleen uw eigen gegevens verwijderen."
DELETE_NOT_CONFIRMED = "Accountverwijdering moet bevestigd worden. Dit kan niet ongedaan worden gemaakt."
DELETE_CONFIRMED = "Accountverwijdering bevestigd. Uw gegevens worden binnenkort verwijderd."
PORTABILITY_DONE = "Uw gegevens zijn geëxporteerd in een machine-leesbaar formaat (JSON)."
PRIVACY_UPDATED = "Privacy-instellingen bijgewerkt."

def _user_enrollments(user: Dict[str, Any], status: Optional[str] = None):
    query = (
        supabase_client.get_user_supabase(user["token"])
        .table("enrollments")
        .select("*, course:courses(title, slug), schedule:course_schedules(start_date, location)")
        .eq("user_id", user["id"])
    )
    if status:
        query = query.eq("status", status)
    return query.execute().data or []

def _is_other_user(user: Dict[str, Any], target_user_id: Optional[str]) -> bool:
    return bool(target_user_id) and str(target_user_id) != str(user["id"])

def export_user_data(user: Optional[Dict[str, Any]], target_user_id: Optional[str] = None) -> ActionResult:
    if not user:
        return ActionResult.fail(EXPORT_UNAUTHORIZED, kind=ErrorKind.UNAUTHORIZED)
    if _is_other_user(user, target_user_id):
        log_security_event("Unauthorized data export attempt", {"requesting_user_id": user["id"], "target_user_id": target_user_id})
        return ActionResult.fail(EXPORT_FORBIDDEN, kind=ErrorKind.FORBIDDEN)
    try:
        profile = auth_repo.get_profile(user["token"], user["id"])
        enrollments = _user_enrollments(user)
        payments = payments_repo.list_user_payments(user["token"], user["id"])
    except Exception as e:
        logger.exception("account.export failed user_id=%s", user["id"])
        log_security_event("Data export failed", {"user_id": user["id"], "error": str(e)})
        return ActionResult.fail(EXPORT_FAILED, kind=ErrorKind.UNEXPECTED)

    data = {
        "export_info": {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "exported_by": user.get("email"),
            "user_id": user["id"],
            "export_format": "JSON",
        },
        "profile": profile,
        "enrollments": enrollments,
        "payments": payments,
        "statistics": {
            "total_enrollments": len(enrollments),
            "total_payments": len(payments),
        },
    }
    log_audit_event("data_export", user["id"], "user_data", user["id"], {"export_size": len(json.dumps(data, default=str))})
    return ActionResult.ok(data=data)

def request_account_deletion(user: Optional[Dict[str, Any]]) -> ActionResult:
    """Refusée tant qu'une inscription active existe; sinon la demande est journalisée."""
    if not user:
        return ActionResult.fail(DELETION_UNAUTHORIZED, kind=ErrorKind.UNAUTHORIZED)
    try:
        active = _user_enrollments(user, status=EnrollmentStatus.ACTIVE.value)
    except Exception as e:
        logger.exception("account.deletion_request failed user_id=%s", user["id"])
        log_security_event("Account deletion request failed", {"user_id": user["id"], "error": str(e)})
        return ActionResult.fail(DELETION_FAILED, kind=ErrorKind.UNEXPECTED)
    if active:
        titles = [((e.get("course") or {}).get("title")) for e in active]
        result = ActionResult.fail(DELETION_BLOCKED)
        result.data = {"active_enrollments": titles}
        return result

    log_audit_event("account_deletion_requested", user["id"], "user_account", user["id"], {"email": user.get("email")})
    return ActionResult.ok(message=DELETION_REQUESTED)

def request_data_portability(user: Optional[Dict[str, Any]]) -> ActionResult:
    """Export identique à export_user_data, tracé comme demande de portabilité."""
    if not user:
        return ActionResult.fail(NOT_AUTHORIZED, kind=ErrorKind.UNAUTHORIZED)
    exported = export_user_data(user)
    if not exported.success:
        return exported
    log_audit_event("data_portability_request", user["id"], "user_data", user["id"], {"email": user.get("email")})
    return ActionResult.ok(data=exported.data, message=PORTABILITY_DONE)

def delete_user_data(
    user: Optional[Dict[str, Any]],
    target_user_id: Optional[str] = None,
    confirmed: bool = False,
) -> ActionResult:
    """
    Confirmation de la suppression du compte connecté.
    - compte d'un autre utilisateur: refus + événement de sécurité
    - sans confirmation explicite: refus
    - inscriptions actives: même blocage que la demande
    Un dernier export est renvoyé; la suppression elle-même reste une demande journalisée.
    """
    if not user:
        return ActionResult.fail(NOT_AUTHORIZED, kind=ErrorKind.UNAUTHORIZED)
    if _is_other_user(user, target_user_id):
        log_security_event("Unauthorized data deletion attempt", {"requesting_user_id": user["id"], "target_user_id": target_user_id})
        return ActionResult.fail(DELETE_FORBIDDEN, kind=ErrorKind.FORBIDDEN)
    if not confirmed:
        return ActionResult.fail(DELETE_NOT_CONFIRMED)

    requested = request_account_deletion(user)
    if not requested.success:
        return requested
    exported = export_user_data(user)

    log_audit_event(
        "account_deletion_confirmed",
        user["id"],
        "user_account",
        user["id"],
        {"email": user.get("email"), "exported_before_deletion": exported.success},
    )
    log_security_event("User account deletion confirmed", {"user_id": user["id"], "email": user.get("email")})
    return ActionResult.ok(data=exported.data if exported.success else None, message=DELETE_CONFIRMED)

def update_privacy_preferences(user: Optional[Dict[str, Any]], marketing_emails: bool, data_processing: bool) -> ActionResult:
    if not user:
        return ActionResult.fail(NOT_AUTHORIZED, kind=ErrorKind.UNAUTHORIZED)
    log_audit_event(
        "privacy_preferences_updated",
        user["id"],
        "privacy_settings",
        user["id"],
        {"marketing_emails": marketing_emails, "data_processing": data_processing},
    )
    return ActionResult.ok(
        data={"marketing_emails": marketing_emails, "data_processing": data_processing},
        message=PRIVACY_UPDATED,
    )
