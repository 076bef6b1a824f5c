"""
Réconciliation des paiements à partir des webhooks Stripe.

Flux:
1) Vérification de la signature (corps brut + Stripe-Signature) AVANT toute lecture.
2) Réservation de l'identifiant d'événement (webhook_events): une relivraison est acquittée
   sans effet de bord.
3) Traitement par type d'événement; chaque écriture est isolée (erreur journalisée,
   acquittement inchangé).
4) Exception inattendue: réservation libérée et 500, pour que Stripe relivre.

Réponses: 200 {"received": true} | 400 {"error": "Invalid signature"} | 500 {"error": "Webhook handler failed"}
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple
import logging

from techtrain.emails.dispatcher import send_payment_receipt
from techtrain.infra.stripe_gateway import InvalidWebhookSignature
from techtrain.utils.audit import log_payment_event, log_security_event
from techtrain.utils.translate_error import format_payment_error
from . import repository
from .models import PaymentStatus, payment_method_display

logger = logging.getLogger(__name__)

RECEIVED = {"received": True}
INVALID_SIGNATURE = {"error": "Invalid signature"}
HANDLER_FAILED = {"error": "Webhook handler failed"}

def _meta(obj: Dict[str, Any], key: str) -> Optional[str]:
    # Clés snake_case; camelCase accepté pour les intents créés par l'ancien front
    metadata = obj.get("metadata") or {}
    camel = key.split("_")[0] + "".join(p.title() for p in key.split("_")[1:])
    value = metadata.get(key) or metadata.get(camel)
    return value or None

def _first_method(intent: Dict[str, Any]) -> Optional[str]:
    methods = intent.get("payment_method_types") or []
    return methods[0] if methods else None

def _payment_row(intent: Dict[str, Any], status: PaymentStatus) -> Dict[str, Any]:
    user_id = _meta(intent, "user_id")
    course_id = _meta(intent, "course_id")
    row = {
        "user_id": user_id,
        "course_id": course_id,
        "schedule_id": _meta(intent, "schedule_id"),
        "amount": (intent.get("amount") or 0) / 100,
        "currency": intent.get("currency") or "eur",
        "status": status.value,
        "stripe_payment_intent_id": intent["id"],
        "payment_method": _first_method(intent),
    }
    if status == PaymentStatus.COMPLETED:
        row["paid_at"] = datetime.now(timezone.utc).isoformat()
        row["enrollment_id"] = repository.find_enrollment_id(user_id, course_id)
    return row

def _send_receipt(mailer, intent: Dict[str, Any], payment: Dict[str, Any]) -> None:
    """Reçu best-effort: profil ou cours introuvable => pas d'e-mail."""
    try:
        profile = repository.get_profile_contact(_meta(intent, "user_id") or "")
        course = repository.get_course_summary(_meta(intent, "course_id") or "")
        if not profile or not course or not profile.get("email"):
            return
        send_payment_receipt(
            mailer,
            to=profile["email"],
            full_name=profile.get("full_name") or "Student",
            course_title=course.get("title") or "",
            amount=(intent.get("amount") or 0) / 100,
            payment_date=datetime.now(timezone.utc),
            payment_method=payment_method_display(_first_method(intent)),
            invoice_number=f"INV-{payment['id']}",
        )
    except Exception:
        logger.exception("payments.webhook receipt failed intent_id=%s", intent.get("id"))

def on_payment_succeeded(intent: Dict[str, Any], mailer) -> None:
    row = _payment_row(intent, PaymentStatus.COMPLETED)
    try:
        payment = repository.insert_payment(row)
    except Exception:
        logger.exception("payments.webhook insert completed payment failed intent_id=%s", intent["id"])
        payment = None
    if payment and mailer is not None:
        _send_receipt(mailer, intent, payment)
    log_payment_event("completed", row["amount"], row["currency"], row["user_id"], {"payment_intent_id": intent["id"]})

def on_payment_failed(intent: Dict[str, Any], mailer) -> None:
    row = _payment_row(intent, PaymentStatus.FAILED)
    try:
        repository.insert_payment(row)
    except Exception:
        logger.exception("payments.webhook insert failed payment failed intent_id=%s", intent["id"])
    reason = format_payment_error(intent.get("last_payment_error"))
    logger.info("payments.webhook payment failed intent_id=%s reason=%s", intent["id"], reason)
    log_payment_event("failed", row["amount"], row["currency"], row["user_id"], {"payment_intent_id": intent["id"], "reason": reason})

def on_charge_refunded(charge: Dict[str, Any], mailer) -> None:
    """Paiement -> refunded, puis l'inscription (cours, user) de ce paiement -> cancelled."""
    intent_id = charge.get("payment_intent")
    if not intent_id:
        logger.warning("payments.webhook charge.refunded without payment_intent charge_id=%s", charge.get("id"))
        return
    try:
        repository.mark_payment_refunded(intent_id)
    except Exception:
        logger.exception("payments.webhook mark refunded failed intent_id=%s", intent_id)

    try:
        payment = repository.get_payment_by_intent(intent_id)
    except Exception:
        logger.exception("payments.webhook payment lookup failed intent_id=%s", intent_id)
        payment = None
    if payment:
        try:
            repository.cancel_enrollment_for(payment["user_id"], payment["course_id"])
        except Exception:
            logger.exception("payments.webhook cancel enrollment failed intent_id=%s", intent_id)
    amount = (charge.get("amount_refunded") or charge.get("amount") or 0) / 100
    log_payment_event("refunded", amount, charge.get("currency") or "eur", (payment or {}).get("user_id"), {"payment_intent_id": intent_id})

EVENT_HANDLERS: Dict[str, Callable[[Dict[str, Any], Any], None]] = {
    "payment_intent.succeeded": on_payment_succeeded,
    "payment_intent.payment_failed": on_payment_failed,
    "charge.refunded": on_charge_refunded,
}

def dispatch_event(event: Dict[str, Any], mailer) -> None:
    event_type = event.get("type")
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info("payments.webhook unhandled event type=%s", event_type)
        return
    handler(event["data"]["object"], mailer)

def handle_stripe_webhook(payload: bytes, sig_header: Optional[str], *, gateway, mailer) -> Tuple[int, Dict[str, Any]]:
    """Point d'entrée unique: retourne (code HTTP, corps JSON)."""
    try:
        event = gateway.parse_event(payload, sig_header)
    except InvalidWebhookSignature as e:
        logger.warning("Webhook signature verification failed: %s", e)
        log_security_event("Invalid Stripe webhook signature")
        return 400, INVALID_SIGNATURE

    event_id = event.get("id")
    event_type = event.get("type")
    try:
        claimed = repository.claim_event(event_id, event_type) if event_id else True
    except Exception:
        logger.exception("payments.webhook claim failed event_id=%s", event_id)
        return 500, HANDLER_FAILED
    if not claimed:
        logger.info("payments.webhook duplicate event ignored event_id=%s type=%s", event_id, event_type)
        return 200, RECEIVED

    try:
        dispatch_event(event, mailer)
    except Exception:
        logger.exception("payments.webhook handler error event_id=%s type=%s", event_id, event_type)
        if event_id:
            repository.release_event(event_id)
        return 500, HANDLER_FAILED

    logger.info("payments.webhook processed event_id=%s type=%s", event_id, event_type)
    return 200, RECEIVED
