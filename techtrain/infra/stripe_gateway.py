"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
- StripeGateway: client réel (clé secrète + secret webhook), instancié une fois au démarrage.
- DisabledStripeGateway: variante choisie quand STRIPE_SECRET_KEY est absent; chaque appel échoue
  avec PaymentProviderDisabled et aucune signature de webhook n'est acceptée.
"""
import logging
from typing import Any, Dict, Optional

import stripe

logger = logging.getLogger(__name__)

class PaymentProviderDisabled(RuntimeError):
    """Levée quand Stripe n'est pas configuré."""

class InvalidWebhookSignature(ValueError):
    """Signature Stripe absente, invalide ou payload illisible."""

class StripeGateway:
    enabled = True

    def __init__(self, secret_key: str, webhook_secret: str = "", currency: str = "eur"):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.currency = currency

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        metadata: Dict[str, str],
        description: str,
        receipt_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Crée un PaymentIntent (montant en centimes, paiement automatique activé).
        Retour: {"id", "client_secret", "status"}
        """
        params: Dict[str, Any] = {
            "amount": amount_cents,
            "currency": self.currency,
            "automatic_payment_methods": {"enabled": True},
            "metadata": metadata,
            "description": description,
        }
        if receipt_email:
            params["receipt_email"] = receipt_email
        intent = stripe.PaymentIntent.create(api_key=self.secret_key, **params)
        return {"id": intent.id, "client_secret": intent.client_secret, "status": intent.status}

    def retrieve_payment_intent(self, intent_id: str) -> Dict[str, Any]:
        intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.secret_key)
        metadata = intent.metadata.to_dict() if intent.metadata else {}
        return {"id": intent.id, "status": intent.status, "metadata": metadata}

    def refund_payment_intent(self, intent_id: str) -> Dict[str, Any]:
        refund = stripe.Refund.create(payment_intent=intent_id, api_key=self.secret_key)
        return {"id": refund.id, "status": refund.status, "amount": refund.amount}

    def parse_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        """
        Vérifie la signature (Stripe-Signature + secret webhook) AVANT de parser le body.
        Retour: l'événement sous forme de dict.
        """
        if not self.webhook_secret:
            raise InvalidWebhookSignature("STRIPE_WEBHOOK_SECRET manquant")
        if not sig_header:
            raise InvalidWebhookSignature("En-tête Stripe-Signature manquant")
        try:
            event = stripe.Webhook.construct_event(payload, sig_header, self.webhook_secret, api_key=self.secret_key)
        except stripe.SignatureVerificationError as e:
            raise InvalidWebhookSignature(str(e)) from e
        except (ValueError, AttributeError) as e:
            # JSON illisible ou racine qui n'est pas un objet
            raise InvalidWebhookSignature("Payload JSON invalide") from e
        return event.to_dict()

class DisabledStripeGateway:
    enabled = False

    def _disabled(self, *args, **kwargs):
        raise PaymentProviderDisabled("Stripe non configuré (STRIPE_SECRET_KEY manquant)")

    create_payment_intent = _disabled
    retrieve_payment_intent = _disabled
    refund_payment_intent = _disabled

    def parse_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        raise InvalidWebhookSignature("Stripe non configuré")

def build_stripe_gateway(secret_key: str, webhook_secret: str, currency: str = "eur"):
    if not secret_key:
        logger.warning("STRIPE_SECRET_KEY absent: paiements désactivés")
        return DisabledStripeGateway()
    return StripeGateway(secret_key, webhook_secret, currency=currency)
