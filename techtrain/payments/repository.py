"""
Accès aux données pour la feature 'payments'.
Client service-role (bypass RLS): ces fonctions sont appelées par le webhook Stripe
et par la préparation des paiements, hors session utilisateur.
- Lectures annexes (profil, cours, inscription liée): best-effort, None en cas d'erreur.
- Écritures: l'erreur PostgREST est propagée, l'appelant l'isole et la journalise.
"""
from typing import Any, Dict, List, Optional
import logging

import techtrain.infra.supabase_client as supabase_client
from techtrain.enrollments.models import EnrollmentStatus
from .models import PaymentStatus

logger = logging.getLogger(__name__)

def _first(res) -> Optional[Dict[str, Any]]:
    rows = res.data or []
    return rows[0] if isinstance(rows, list) and rows else None

# --- Lectures best-effort ---

def get_course_summary(course_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("courses")
            .select("id, title, slug, price")
            .eq("id", course_id)
            .limit(1)
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception("payments.repository.get_course_summary failed course_id=%s", course_id)
        return None

def get_profile_contact(user_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("profiles")
            .select("full_name, email")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception("payments.repository.get_profile_contact failed user_id=%s", user_id)
        return None

def find_enrollment_id(user_id: str, course_id: str) -> Optional[str]:
    if not user_id or not course_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("enrollments")
            .select("id")
            .eq("user_id", user_id)
            .eq("course_id", course_id)
            .limit(1)
            .execute()
        )
        row = _first(res)
        return row.get("id") if row else None
    except Exception:
        logger.exception("payments.repository.find_enrollment_id failed user_id=%s course_id=%s", user_id, course_id)
        return None

def list_user_payments(user_token: str, user_id: str) -> List[Dict[str, Any]]:
    """Paiements du user (client utilisateur, RLS actif), plus récents d'abord."""
    res = (
        supabase_client.get_user_supabase(user_token)
        .table("payments")
        .select("*")
        .eq("user_id", user_id)
        .order("paid_at", desc=True)
        .execute()
    )
    return res.data or []

# --- Écritures (webhook) ---

def insert_payment(row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    res = supabase_client.get_service_supabase().table("payments").insert(row).execute()
    return _first(res)

def mark_payment_refunded(payment_intent_id: str) -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("payments")
        .update({"status": PaymentStatus.REFUNDED.value})
        .eq("stripe_payment_intent_id", payment_intent_id)
        .execute()
    )
    return res.data or []

def get_payment_by_intent(payment_intent_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("payments")
        .select("id, course_id, user_id")
        .eq("stripe_payment_intent_id", payment_intent_id)
        .limit(1)
        .execute()
    )
    return _first(res)

def cancel_enrollment_for(user_id: str, course_id: str) -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("enrollments")
        .update({"status": EnrollmentStatus.CANCELLED.value})
        .eq("course_id", course_id)
        .eq("user_id", user_id)
        .execute()
    )
    return res.data or []

# --- Idempotence des webhooks ---

def claim_event(event_id: str, event_type: str) -> bool:
    """
    Réserve l'identifiant d'événement Stripe (table webhook_events, event_id UNIQUE).
    Retour: True si réservé, False si déjà traité (livraison en double).
    """
    try:
        supabase_client.get_service_supabase().table("webhook_events").insert(
            {"event_id": event_id, "event_type": event_type}
        ).execute()
        return True
    except Exception as e:
        if supabase_client.is_unique_violation(e):
            return False
        raise

def release_event(event_id: str) -> None:
    """Libère la réservation pour que la relivraison Stripe puisse retraiter l'événement."""
    try:
        supabase_client.get_service_supabase().table("webhook_events").delete().eq("event_id", event_id).execute()
    except Exception:
        logger.exception("payments.repository.release_event failed event_id=%s", event_id)
