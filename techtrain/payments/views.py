import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from techtrain import config
from techtrain.app_setup.services import get_stripe, get_mailer
from techtrain.utils.rate_limit import rate_limit
from techtrain.utils.results import ActionResult, ErrorKind, to_response
from techtrain.utils.security import get_optional_user
from techtrain.utils.translate_error import IDEAL_BANK_NAMES, ideal_bank_name
from . import service as payments_service
from . import webhook as payments_webhook
from .models import CreatePaymentIntentRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])
webhook_router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])

def _not_logged_in() -> ActionResult:
    return ActionResult.fail("Niet ingelogd", kind=ErrorKind.UNAUTHORIZED)

# module techtrain.payments.views
@router.get("/config")
def payment_config(gateway=Depends(get_stripe)):
    """
    Paramètres publics pour Stripe.js: clé publiable, devise, banques iDEAL (libellés affichables).
    Aucune donnée secrète ici.
    """
    return {
        "enabled": bool(getattr(gateway, "enabled", False)),
        "publishable_key": config.STRIPE_PUBLIC_KEY or None,
        "currency": config.STRIPE_CURRENCY,
        "ideal_banks": [{"code": code, "name": ideal_bank_name(code)} for code in sorted(IDEAL_BANK_NAMES)],
    }

@router.post("/intent", dependencies=[Depends(rate_limit("payment"))])
def create_payment_intent(
    body: CreatePaymentIntentRequest,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    gateway=Depends(get_stripe),
):
    """
    Crée un PaymentIntent pour l'utilisateur connecté.
    - Entrée JSON: {course_id, schedule_id?, amount} (montant en euros)
    - Sécurité: session requise + rate limit 'payment' (3 req / 5 min)
    - Retour: {data: {client_secret, payment_intent_id}, success}
    - Erreurs: 401 non connecté, 502 erreur fournisseur
    """
    if not user:
        return to_response(_not_logged_in())
    result = payments_service.create_payment_intent(
        body.course_id, body.schedule_id, body.amount, user["id"], gateway=gateway
    )
    return to_response(result)

@router.get("/{payment_intent_id}/status")
def payment_status(
    payment_intent_id: str,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    gateway=Depends(get_stripe),
):
    """Statut d'un PaymentIntent du user (lecture seule, rien n'est écrit)."""
    if not user:
        return to_response(_not_logged_in())
    return to_response(payments_service.confirm_payment(payment_intent_id, gateway=gateway, user_id=user["id"]))

@router.post("/{payment_intent_id}/refund", dependencies=[Depends(rate_limit("payment"))])
def refund_payment(
    payment_intent_id: str,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    gateway=Depends(get_stripe),
):
    """
    Remboursement total d'un paiement du user.
    L'annulation de l'inscription suit via le webhook charge.refunded.
    """
    if not user:
        return to_response(_not_logged_in())
    return to_response(payments_service.refund_payment(payment_intent_id, gateway=gateway, user_id=user["id"]))

@webhook_router.post("/stripe", include_in_schema=False)
async def stripe_webhook(request: Request, gateway=Depends(get_stripe), mailer=Depends(get_mailer)):
    """
    Webhook Stripe: corps brut + en-tête Stripe-Signature.
    Voir techtrain.payments.webhook pour le détail des événements traités.
    """
    payload = await request.body()
    # Supabase et Resend sont synchrones: traitement hors de la boucle asyncio
    status_code, body = await run_in_threadpool(
        payments_webhook.handle_stripe_webhook,
        payload,
        request.headers.get("stripe-signature"),
        gateway=gateway,
        mailer=mailer,
    )
    return JSONResponse(status_code=status_code, content=body)
