"""
Cas d'usage 'payments': création de PaymentIntent, consultation de statut, remboursement.
Les erreurs du fournisseur sont journalisées en détail et remontées sous un message générique.
Aucune écriture locale ici: l'état des paiements est réconcilié par le webhook.
"""
from typing import Any, Dict, Optional
import logging

import stripe

from techtrain.infra.stripe_gateway import PaymentProviderDisabled
from techtrain.utils.audit import log_payment_event
from techtrain.utils.results import ActionResult, ErrorKind
from techtrain.utils.translate_error import payment_status_message
from . import repository

logger = logging.getLogger(__name__)

CREATE_FAILED = "Het aanmaken van de betaling is mislukt"
CONFIRM_FAILED = "Het bevestigen van de betaling is mislukt"
REFUND_FAILED = "Het terugbetalen is mislukt"
PAYMENT_NOT_FOUND = "Betaling niet gevonden"

UNKNOWN_COURSE = "Onbekende Cursus"
UNKNOWN_EMAIL = "Onbekend E-mailadres"

PROVIDER_ERRORS = (stripe.StripeError, PaymentProviderDisabled)

def to_cents(amount: float) -> int:
    return int(round(float(amount) * 100))

def create_payment_intent(
    course_id: str,
    schedule_id: Optional[str],
    amount: float,
    user_id: str,
    *,
    gateway,
) -> ActionResult:
    """
    Crée un PaymentIntent Stripe pour un cours.
    - Titre du cours et e-mail du profil servent uniquement aux métadonnées/reçu
      (valeurs de repli si introuvables).
    - Retour data: {client_secret, payment_intent_id}
    """
    course = repository.get_course_summary(course_id) or {}
    profile = repository.get_profile_contact(user_id) or {}
    course_title = course.get("title") or UNKNOWN_COURSE
    email = profile.get("email")

    metadata = {
        "course_id": course_id,
        "schedule_id": schedule_id or "",
        "user_id": user_id,
        "course_name": course_title,
        "user_email": email or UNKNOWN_EMAIL,
    }
    try:
        intent = gateway.create_payment_intent(
            amount_cents=to_cents(amount),
            metadata=metadata,
            description=f"Cursus: {course_title}",
            receipt_email=email or None,
        )
    except PROVIDER_ERRORS as e:
        logger.exception("payments.create_payment_intent failed course_id=%s user_id=%s", course_id, user_id)
        log_payment_event("failed", amount, "eur", user_id, {"course_id": course_id, "stage": "create", "error": str(e)})
        return ActionResult.fail(CREATE_FAILED, kind=ErrorKind.PROVIDER_ERROR)

    log_payment_event("initiated", amount, "eur", user_id, {"course_id": course_id, "payment_intent_id": intent["id"]})
    return ActionResult.ok(data={"client_secret": intent["client_secret"], "payment_intent_id": intent["id"]})

def _owned_intent(intent: Dict[str, Any], user_id: Optional[str]) -> bool:
    if user_id is None:
        return True
    return str((intent.get("metadata") or {}).get("user_id") or "") == str(user_id)

def confirm_payment(payment_intent_id: str, *, gateway, user_id: Optional[str] = None) -> ActionResult:
    """
    Lecture seule du statut: data {status, metadata} + message néerlandais du statut.
    Si user_id est fourni, l'intent doit lui appartenir.
    """
    try:
        intent = gateway.retrieve_payment_intent(payment_intent_id)
    except PROVIDER_ERRORS:
        logger.exception("payments.confirm_payment failed intent_id=%s", payment_intent_id)
        return ActionResult.fail(CONFIRM_FAILED, kind=ErrorKind.PROVIDER_ERROR)
    if not _owned_intent(intent, user_id):
        return ActionResult.fail(PAYMENT_NOT_FOUND, kind=ErrorKind.NOT_FOUND)
    status = intent.get("status")
    return ActionResult.ok(
        data={"status": status, "metadata": intent.get("metadata") or {}},
        message=payment_status_message(status or ""),
    )

def refund_payment(payment_intent_id: str, *, gateway, user_id: Optional[str] = None) -> ActionResult:
    """
    Remboursement total du PaymentIntent.
    Les tables locales ne sont pas modifiées: l'événement charge.refunded s'en charge.
    """
    try:
        if user_id is not None:
            intent = gateway.retrieve_payment_intent(payment_intent_id)
            if not _owned_intent(intent, user_id):
                return ActionResult.fail(PAYMENT_NOT_FOUND, kind=ErrorKind.NOT_FOUND)
        refund = gateway.refund_payment_intent(payment_intent_id)
    except PROVIDER_ERRORS:
        logger.exception("payments.refund_payment failed intent_id=%s", payment_intent_id)
        return ActionResult.fail(REFUND_FAILED, kind=ErrorKind.PROVIDER_ERROR)
    return ActionResult.ok(data={"refund": refund})
