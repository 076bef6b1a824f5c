"""
Cas d'usage 'enrollments': inscription, progression, annulation, consultation.
Chaque fonction reçoit l'utilisateur courant (ou None) et renvoie un ActionResult.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from techtrain.auth import repository as auth_repo
from techtrain.emails.dispatcher import send_enrollment_confirmation
from techtrain.infra.supabase_client import is_unique_violation
from techtrain.utils.audit import log_enrollment_event
from techtrain.utils.results import ActionResult, ErrorKind
from techtrain.utils.translate_error import translate_enrollment_error
from . import repository
from .models import EnrollmentStatus

logger = logging.getLogger(__name__)

NOT_LOGGED_IN = "Niet ingelogd"
NOT_FOUND = "Inschrijving niet gevonden"

def _already_enrolled() -> ActionResult:
    return ActionResult.fail(translate_enrollment_error("already_enrolled"), kind=ErrorKind.ALREADY_ENROLLED)

def _send_confirmation(mailer, user: Dict[str, Any], enrollment: Dict[str, Any]) -> None:
    """Best-effort: n'envoie que si profil, cours et session sont connus; n'échoue jamais."""
    try:
        profile = auth_repo.get_profile(user["token"], user["id"])
        course = enrollment.get("course")
        schedule = enrollment.get("schedule")
        if not (profile and course and schedule):
            return
        send_enrollment_confirmation(
            mailer,
            to=profile.get("email") or user.get("email") or "",
            full_name=profile.get("full_name") or "Student",
            course_title=course.get("title") or "",
            start_date=schedule.get("start_date"),
            location=schedule.get("location") or "",
            price=course.get("price") or 0,
        )
    except Exception:
        logger.exception("enrollments.confirmation email failed enrollment_id=%s", enrollment.get("id"))

def create_enrollment(
    user: Optional[Dict[str, Any]],
    course_id: str,
    schedule_id: Optional[str] = None,
    *,
    mailer=None,
) -> ActionResult:
    """
    Inscrit l'utilisateur à un cours.
    - Une inscription existante (quel que soit son statut) bloque la réinscription.
    - La contrainte UNIQUE (user_id, course_id) couvre la course entre vérification et insertion.
    - Les places de la session ne sont pas décrémentées.
    """
    if not user:
        return ActionResult.fail(translate_enrollment_error("unauthorized"), kind=ErrorKind.UNAUTHORIZED)

    try:
        existing = repository.find_user_enrollment(user["token"], user["id"], course_id)
    except Exception:
        logger.exception("enrollments.create lookup failed user_id=%s course_id=%s", user["id"], course_id)
        return ActionResult.fail(translate_enrollment_error("network_error"), kind=ErrorKind.UNEXPECTED)
    if existing:
        return _already_enrolled()

    try:
        enrollment = repository.insert_enrollment(user["token"], user["id"], course_id, schedule_id)
    except Exception as e:
        if is_unique_violation(e):
            return _already_enrolled()
        logger.exception("enrollments.create insert failed user_id=%s course_id=%s", user["id"], course_id)
        return ActionResult.fail(translate_enrollment_error(str(getattr(e, "message", "") or "")), kind=ErrorKind.UNEXPECTED)

    log_enrollment_event("created", course_id, user["id"], {"schedule_id": schedule_id})

    if mailer is not None and enrollment:
        _send_confirmation(mailer, user, enrollment)

    return ActionResult.ok(data=enrollment, message="Succesvol ingeschreven voor de cursus!")

def get_user_enrollments(user: Optional[Dict[str, Any]]) -> ActionResult:
    if not user:
        return ActionResult.fail(NOT_LOGGED_IN, kind=ErrorKind.UNAUTHORIZED)
    try:
        rows = repository.list_user_enrollments(user["token"], user["id"])
    except Exception as e:
        logger.exception("enrollments.list failed user_id=%s", user["id"])
        return ActionResult.fail(str(getattr(e, "message", None) or e), kind=ErrorKind.UNEXPECTED)
    return ActionResult.ok(data=rows)

def _update(user: Dict[str, Any], enrollment_id: str, fields: Dict[str, Any], message: str, event: str) -> ActionResult:
    try:
        rows = repository.update_user_enrollment(user["token"], user["id"], enrollment_id, fields)
    except Exception as e:
        logger.exception("enrollments.%s failed enrollment_id=%s", event, enrollment_id)
        return ActionResult.fail(str(getattr(e, "message", None) or e), kind=ErrorKind.UNEXPECTED)
    if not rows:
        return ActionResult.fail(NOT_FOUND, kind=ErrorKind.NOT_FOUND)
    log_enrollment_event(event, str(rows[0].get("course_id") or ""), user["id"], {"enrollment_id": enrollment_id, **fields})
    return ActionResult.ok(message=message)

def update_enrollment_progress(user: Optional[Dict[str, Any]], enrollment_id: str, progress: int) -> ActionResult:
    """
    Met à jour la progression (0..100) d'une inscription du user.
    - progress >= 100: statut 'completed' + completed_at
    - sinon: progression seule (une baisse est acceptée)
    """
    if not user:
        return ActionResult.fail(NOT_LOGGED_IN, kind=ErrorKind.UNAUTHORIZED)
    if isinstance(progress, bool) or not isinstance(progress, int) or not 0 <= progress <= 100:
        return ActionResult.fail("Voortgang moet een geheel getal tussen 0 en 100 zijn")

    fields: Dict[str, Any] = {"progress": progress}
    if progress >= 100:
        fields["status"] = EnrollmentStatus.COMPLETED.value
        fields["completed_at"] = datetime.now(timezone.utc).isoformat()
    return _update(user, enrollment_id, fields, "Voortgang bijgewerkt", "updated")

def cancel_enrollment(user: Optional[Dict[str, Any]], enrollment_id: str) -> ActionResult:
    """Annule (soft) l'inscription; les places de la session ne sont pas libérées."""
    if not user:
        return ActionResult.fail(NOT_LOGGED_IN, kind=ErrorKind.UNAUTHORIZED)
    return _update(
        user,
        enrollment_id,
        {"status": EnrollmentStatus.CANCELLED.value},
        "Inschrijving geannuleerd",
        "cancelled",
    )

def check_enrollment(user: Optional[Dict[str, Any]], course_id: str) -> Dict[str, Any]:
    if not user:
        return {"is_enrolled": False, "status": None}
    try:
        row = repository.find_user_enrollment(user["token"], user["id"], course_id)
    except Exception:
        logger.exception("enrollments.check failed user_id=%s course_id=%s", user["id"], course_id)
        row = None
    return {"is_enrolled": bool(row), "status": (row or {}).get("status")}
