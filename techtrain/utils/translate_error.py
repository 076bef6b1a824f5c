"""
Traduction des codes d'erreur (inscription, auth Supabase, Stripe) en messages néerlandais
présentables à l'utilisateur. Chaque table a un message par défaut.
"""
from typing import Any, Dict

ENROLLMENT_ERRORS: Dict[str, str] = {
    "already_enrolled": "Je bent al ingeschreven voor deze cursus.",
    "course_full": "Deze cursus is helaas vol. Probeer een andere datum.",
    "schedule_not_found": "Het geselecteerde schema kon niet worden gevonden.",
    "unauthorized": "Je moet ingelogd zijn om in te schrijven.",
    "network_error": "Netwerkfout. Probeer het opnieuw.",
    "U bent al ingeschreven voor deze cursus": "Je bent al ingeschreven voor deze cursus.",
    "U moet ingelogd zijn om in te schrijven voor een cursus": "Je moet ingelogd zijn om in te schrijven.",
}
DEFAULT_ENROLLMENT_ERROR = "Er is een fout opgetreden bij het inschrijven. Probeer het opnieuw."

AUTH_ERRORS: Dict[str, str] = {
    "Invalid login credentials": "Ongeldige inloggegevens. Controleer je e-mailadres en wachtwoord.",
    "Email not confirmed": "Je e-mailadres is nog niet bevestigd. Controleer je inbox.",
    "User already registered": "Dit e-mailadres is al geregistreerd.",
    "Password should be at least 6 characters": "Wachtwoord moet minimaal 6 tekens bevatten.",
    "Email rate limit exceeded": "Te veel pogingen. Probeer het later opnieuw.",
    "Invalid email": "Ongeldig e-mailadres.",
    "Weak password": "Wachtwoord is te zwak. Gebruik minimaal 8 tekens met letters en cijfers.",
}
DEFAULT_AUTH_ERROR = "Er is een fout opgetreden. Probeer het opnieuw of neem contact op met support."

PAYMENT_ERRORS: Dict[str, str] = {
    # Carte
    "card_declined": "Je kaart is geweigerd. Probeer een andere betaalmethode.",
    "insufficient_funds": "Onvoldoende saldo op je rekening.",
    "expired_card": "Je kaart is verlopen.",
    "incorrect_cvc": "De CVC-code is incorrect.",
    "incorrect_number": "Het kaartnummer is incorrect.",
    "invalid_expiry_month": "De vervalmaand is ongeldig.",
    "invalid_expiry_year": "Het vervaljaar is ongeldig.",
    "invalid_number": "Het kaartnummer is ongeldig.",
    "invalid_cvc": "De CVC-code is ongeldig.",
    # Authentification 3DS / banque
    "payment_intent_authentication_failure": "Betaling niet geverifieerd. Controleer je gegevens.",
    "authentication_required": "Verificatie vereist. Volg de instructies van je bank.",
    # Traitement
    "processing_error": "Er is een fout opgetreden bij het verwerken van de betaling.",
    "charge_already_captured": "Deze betaling is al verwerkt.",
    "charge_already_refunded": "Deze betaling is al terugbetaald.",
    "charge_disputed": "Deze betaling is betwist.",
    "charge_expired_for_capture": "De betaling is verlopen.",
    "network_error": "Netwerkfout. Controleer je internetverbinding.",
    "ideal_bank_account_verification_failed": "Verificatie van je bankrekening is mislukt.",
    "rate_limit": "Te veel pogingen. Probeer het later opnieuw.",
    "payment_method_not_available": "Deze betaalmethode is niet beschikbaar.",
    "payment_intent_invalid_parameter": "Ongeldige betalingsgegevens.",
    "payment_intent_payment_attempt_failed": "Betaling mislukt. Probeer het opnieuw.",
    "payment_intent_unexpected_state": "Onverwachte betalingsstatus. Neem contact op met support.",
    "amount_too_large": "Het bedrag is te hoog.",
    "amount_too_small": "Het bedrag is te laag.",
    "invalid_currency": "Ongeldige valuta.",
    "customer_max_payment_methods": "Je hebt het maximale aantal betaalmethoden bereikt.",
    "setup_intent_authentication_failure": "Verificatie van betaalmethode mislukt.",
    "setup_intent_unexpected_state": "Onverwachte status bij instellen van betaalmethode.",
    "mandate_invalid": "Ongeldige machtiging.",
    "incorrect_zip": "Onjuiste postcode.",
    "postal_code_invalid": "Ongeldige postcode.",
    "api_key_expired": "Systeemfout. Neem contact op met support.",
    "platform_api_key_expired": "Systeemfout. Neem contact op met support.",
}
DEFAULT_PAYMENT_ERROR = "Er is een fout opgetreden. Probeer het opnieuw."
UNKNOWN_PAYMENT_ERROR = "Er is een onbekende fout opgetreden bij de betaling."

PAYMENT_STATUS_MESSAGES: Dict[str, str] = {
    "processing": "Betaling wordt verwerkt...",
    "requires_payment_method": "Selecteer een betaalmethode om door te gaan.",
    "requires_confirmation": "Bevestig je betaling om door te gaan.",
    "requires_action": "Aanvullende actie vereist. Volg de instructies.",
    "succeeded": "Betaling geslaagd!",
    "canceled": "Betaling geannuleerd.",
    "failed": "Betaling mislukt. Probeer het opnieuw.",
}

IDEAL_BANK_NAMES: Dict[str, str] = {
    "abn_amro": "ABN AMRO",
    "asn_bank": "ASN Bank",
    "bunq": "bunq",
    "handelsbanken": "Handelsbanken",
    "ing": "ING",
    "knab": "Knab",
    "rabobank": "Rabobank",
    "regiobank": "RegioBank",
    "revolut": "Revolut",
    "sns_bank": "SNS Bank",
    "triodos_bank": "Triodos Bank",
    "van_lanschot": "Van Lanschot",
}

def translate_enrollment_error(code: str) -> str:
    return ENROLLMENT_ERRORS.get(code, DEFAULT_ENROLLMENT_ERROR)

def translate_auth_error(message: str) -> str:
    return AUTH_ERRORS.get(message, DEFAULT_AUTH_ERROR)

def translate_error(code: str, kind: str = "enrollment") -> str:
    if kind == "auth":
        return translate_auth_error(code)
    return translate_enrollment_error(code)

def translate_payment_error(code: str) -> str:
    return PAYMENT_ERRORS.get(code, DEFAULT_PAYMENT_ERROR)

def format_payment_error(error: Any) -> str:
    """
    Message présentable pour une erreur de paiement:
    - str: renvoyée telle quelle
    - objet/dict avec `code`: traduit via PAYMENT_ERRORS
    - objet/dict avec `message`: message brut
    - sinon: message générique
    """
    if isinstance(error, str):
        return error
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message")
    else:
        code = getattr(error, "code", None)
        message = getattr(error, "message", None) or getattr(error, "user_message", None)
    if code:
        return translate_payment_error(str(code))
    if message:
        return str(message)
    return UNKNOWN_PAYMENT_ERROR

def payment_status_message(status: str) -> str:
    return PAYMENT_STATUS_MESSAGES.get(status, DEFAULT_PAYMENT_ERROR)

def ideal_bank_name(code: str) -> str:
    return IDEAL_BANK_NAMES.get(code, code)
