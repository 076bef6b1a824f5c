"""
Emails transactionnels: rendu Jinja2 (HTML autoescapé) + envoi via le mailer injecté.
Toutes les fonctions sont best-effort: elles renvoient {"data": {...}} ou {"error": "..."}
et ne lèvent jamais vers l'appelant.
"""
import logging
from typing import Any, Dict, Union
from datetime import date, datetime

from jinja2 import Environment, FileSystemLoader, select_autoescape

from techtrain.config import EMAIL_TEMPLATES_DIR, APP_URL, EMAIL_REPLY_TO
from techtrain.utils.formatting import format_price, format_date

logger = logging.getLogger(__name__)

_env = Environment(
    loader=FileSystemLoader(str(EMAIL_TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)

def render_email(template_name: str, **context: Any) -> str:
    context.setdefault("app_url", APP_URL)
    context.setdefault("reply_to", EMAIL_REPLY_TO)
    return _env.get_template(template_name).render(**context)

def _send(mailer, kind: str, to: str, subject: str, html: str) -> Dict[str, Any]:
    try:
        res = mailer.send(to, subject, html)
    except Exception as e:
        logger.exception("emails.%s exception to=%s", kind, to)
        return {"error": str(e)}
    if not res.get("success"):
        logger.error("emails.%s error to=%s error=%s", kind, to, res.get("error"))
        return {"error": res.get("error") or "Email not sent"}
    logger.info("emails.%s sent id=%s", kind, res.get("id"))
    return {"data": {"id": res.get("id")}}

def send_welcome_email(mailer, to: str, full_name: str) -> Dict[str, Any]:
    try:
        html = render_email("welcome.html", full_name=full_name)
    except Exception as e:
        logger.exception("emails.welcome render failed")
        return {"error": str(e)}
    return _send(mailer, "welcome", to, "Welkom bij TechTrain!", html)

def send_enrollment_confirmation(
    mailer,
    *,
    to: str,
    full_name: str,
    course_title: str,
    start_date: Union[str, date, datetime],
    location: str,
    price: float,
) -> Dict[str, Any]:
    """Confirmation d'inscription: date de début en format long nl-NL, prix en euros."""
    try:
        html = render_email(
            "enrollment_confirmation.html",
            full_name=full_name,
            course_title=course_title,
            start_date=format_date(start_date),
            location=location,
            price=format_price(price),
        )
    except Exception as e:
        logger.exception("emails.enrollment_confirmation render failed")
        return {"error": str(e)}
    return _send(mailer, "enrollment_confirmation", to, f"Inschrijving bevestigd: {course_title}", html)

def send_payment_receipt(
    mailer,
    *,
    to: str,
    full_name: str,
    course_title: str,
    amount: float,
    payment_date: Union[str, date, datetime],
    payment_method: str,
    invoice_number: str,
) -> Dict[str, Any]:
    try:
        html = render_email(
            "payment_receipt.html",
            full_name=full_name,
            course_title=course_title,
            amount=format_price(amount),
            payment_date=format_date(payment_date),
            payment_method=payment_method,
            invoice_number=invoice_number,
        )
    except Exception as e:
        logger.exception("emails.payment_receipt render failed")
        return {"error": str(e)}
    return _send(mailer, "payment_receipt", to, f"Betaling ontvangen - Factuur {invoice_number}", html)
