"""
Journalisation structurée des événements métier et sécurité.
Chaque helper émet via un logger nommé avec un `extra` exploitable par un handler JSON.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

security_logger = logging.getLogger("techtrain.security")
audit_logger = logging.getLogger("techtrain.audit")
business_logger = logging.getLogger("techtrain.events")

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

def log_security_event(event: str, details: Optional[Dict[str, Any]] = None) -> None:
    """Événement sécurité (warning); les événements CRITICAL sont remontés en error."""
    context = {**(details or {}), "security_event": True, "timestamp": _now()}
    security_logger.warning("[SECURITY] %s", event, extra={"context": context})
    if "CRITICAL" in event:
        security_logger.error("[CRITICAL SECURITY] %s", event, extra={"context": {**context, "alert": True}})

def log_rate_limit_exceeded(ip: str, endpoint: str, details: Optional[Dict[str, Any]] = None) -> None:
    log_security_event("Rate limit exceeded", {"ip": ip, "endpoint": endpoint, **(details or {})})

def log_failed_login(email: str, ip: str, reason: Optional[str] = None) -> None:
    log_security_event("Failed login attempt", {"email": email, "ip": ip, "reason": reason})

def log_audit_event(action: str, user_id: str, resource_type: str, resource_id: str, details: Optional[Dict[str, Any]] = None) -> None:
    context = {
        "audit": True,
        "action": action,
        "user_id": user_id,
        "resource_type": resource_type,
        "resource_id": resource_id,
        "timestamp": _now(),
        **(details or {}),
    }
    audit_logger.info("[AUDIT] %s", action, extra={"context": context})

def log_payment_event(event: str, amount: float, currency: str, user_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
    level = logging.ERROR if event == "failed" else logging.INFO
    context = {"event": event, "amount": amount, "currency": currency, "user_id": user_id, **(details or {})}
    business_logger.log(level, "Payment %s", event, extra={"context": context})

def log_enrollment_event(event: str, course_id: str, user_id: str, details: Optional[Dict[str, Any]] = None) -> None:
    context = {"event": event, "course_id": course_id, "user_id": user_id, **(details or {})}
    business_logger.info("Enrollment %s", event, extra={"context": context})
