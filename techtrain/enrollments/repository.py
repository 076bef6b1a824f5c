"""
Accès aux données pour la feature 'enrollments'.
Toutes les opérations passent par le client utilisateur (RLS actif): un utilisateur
ne voit et ne modifie que ses propres inscriptions. Les écritures lèvent l'erreur
PostgREST telle quelle (le service décide du message).
"""
from typing import Any, Dict, List, Optional
import logging

import techtrain.infra.supabase_client as supabase_client
from .models import EnrollmentStatus

logger = logging.getLogger(__name__)

ENROLLMENT_WITH_SUMMARY = "*, course:courses(title, price), schedule:course_schedules(start_date, location)"
ENROLLMENT_WITH_DETAILS = "*, course:courses(*), schedule:course_schedules(*)"

def find_user_enrollment(user_token: str, user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
    """Inscription existante (tout statut) pour le couple (user, course), sinon None."""
    res = (
        supabase_client.get_user_supabase(user_token)
        .table("enrollments")
        .select("id, status")
        .eq("user_id", user_id)
        .eq("course_id", course_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def insert_enrollment(user_token: str, user_id: str, course_id: str, schedule_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Crée l'inscription (active, progression 0) puis la relit avec cours et session joints.
    Une violation de l'unicité (user_id, course_id) remonte en APIError code 23505.
    """
    client = supabase_client.get_user_supabase(user_token)
    res = (
        client
        .table("enrollments")
        .insert({
            "user_id": user_id,
            "course_id": course_id,
            "schedule_id": schedule_id or None,
            "status": EnrollmentStatus.ACTIVE.value,
            "progress": 0,
        })
        .execute()
    )
    rows = res.data or []
    created = rows[0] if rows else {}
    if not created.get("id"):
        return created
    res = (
        client
        .table("enrollments")
        .select(ENROLLMENT_WITH_SUMMARY)
        .eq("id", created["id"])
        .limit(1)
        .execute()
    )
    joined = res.data or []
    return joined[0] if joined else created

def list_user_enrollments(user_token: str, user_id: str) -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_user_supabase(user_token)
        .table("enrollments")
        .select(ENROLLMENT_WITH_DETAILS)
        .eq("user_id", user_id)
        .order("enrolled_at", desc=True)
        .execute()
    )
    return res.data or []

def update_user_enrollment(user_token: str, user_id: str, enrollment_id: str, fields: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Met à jour une inscription du user; retourne les lignes modifiées ([] si aucune ne correspond)."""
    res = (
        supabase_client.get_user_supabase(user_token)
        .table("enrollments")
        .update(fields)
        .eq("id", enrollment_id)
        .eq("user_id", user_id)
        .execute()
    )
    return res.data or []
