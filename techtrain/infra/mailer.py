"""
Adaptateur d'envoi d'emails transactionnels (API HTTP Resend).
- ResendMailer: POST https://api.resend.com/emails avec la clé API en Bearer.
- DisabledMailer: variante choisie quand RESEND_API_KEY est absent; aucun envoi, warning loggé.
Les deux exposent send(to, subject, html) -> {"success": bool, "id"?: str, "error"?: str}.
"""
import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

class ResendMailer:
    enabled = True

    def __init__(self, api_key: str, sender: str, reply_to: Optional[str] = None, timeout: int = 10):
        self.api_key = api_key
        self.sender = sender
        self.reply_to = reply_to
        self.timeout = timeout

    def send(self, to: str, subject: str, html: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if self.reply_to:
            payload["reply_to"] = self.reply_to
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.post(RESEND_API_URL, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.exception("mailer.send failed to=%s subject=%s", to, subject)
            return {"success": False, "error": str(e)}
        if not 200 <= resp.status_code < 300:
            logger.error("mailer.send rejected status=%s body=%s", resp.status_code, resp.text[:300])
            return {"success": False, "error": f"status {resp.status_code}"}
        try:
            body = resp.json() or {}
        except ValueError:
            body = {}
        return {"success": True, "id": body.get("id")}

class DisabledMailer:
    enabled = False

    def send(self, to: str, subject: str, html: str) -> Dict[str, Any]:
        logger.warning("Email non envoyé (RESEND_API_KEY manquant) to=%s subject=%s", to, subject)
        return {"success": False, "error": "Email provider not configured"}

def build_mailer(api_key: str, sender: str, reply_to: Optional[str] = None):
    if not api_key:
        logger.warning("RESEND_API_KEY absent: emails désactivés")
        return DisabledMailer()
    return ResendMailer(api_key, sender, reply_to=reply_to)
