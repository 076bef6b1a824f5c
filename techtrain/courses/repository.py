"""
Accès aux données du catalogue: cours et sessions planifiées (lecture seule, client 'anon').
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import techtrain.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

SCHEDULE_WITH_COURSE = "*, course:courses(title, slug, price, category, image_url)"

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def list_courses(category: Optional[str] = None) -> List[Dict[str, Any]]:
    try:
        query = supabase_client.get_supabase().table("courses").select("*")
        if category:
            query = query.eq("category", category)
        res = query.order("title").execute()
        return res.data or []
    except Exception:
        logger.exception("courses.repository.list_courses failed category=%s", category)
        return []

def get_course_by_slug(slug: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_supabase()
            .table("courses")
            .select("*")
            .eq("slug", slug)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("courses.repository.get_course_by_slug failed slug=%s", slug)
        return None

def get_course_schedules(course_id: str) -> List[Dict[str, Any]]:
    """Sessions futures d'un cours, par date de début croissante."""
    try:
        res = (
            supabase_client.get_supabase()
            .table("course_schedules")
            .select(SCHEDULE_WITH_COURSE)
            .eq("course_id", course_id)
            .gte("start_date", _now_iso())
            .order("start_date")
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("courses.repository.get_course_schedules failed course_id=%s", course_id)
        return []

def get_upcoming_schedules(limit: int = 10) -> List[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_supabase()
            .table("course_schedules")
            .select(SCHEDULE_WITH_COURSE)
            .gte("start_date", _now_iso())
            .order("start_date")
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("courses.repository.get_upcoming_schedules failed limit=%s", limit)
        return []

def get_schedules_by_date_range(start: datetime, end: datetime) -> List[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_supabase()
            .table("course_schedules")
            .select(SCHEDULE_WITH_COURSE)
            .gte("start_date", start.isoformat())
            .lte("start_date", end.isoformat())
            .order("start_date")
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("courses.repository.get_schedules_by_date_range failed start=%s end=%s", start, end)
        return []

def get_schedule(schedule_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_supabase()
            .table("course_schedules")
            .select("id, course_id, start_date, available_spots, max_participants")
            .eq("id", schedule_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("courses.repository.get_schedule failed schedule_id=%s", schedule_id)
        return None

def check_schedule_availability(schedule_id: str) -> Dict[str, Any]:
    """
    Disponibilité d'une session: {available, spots, total}.
    Les places ne sont pas décrémentées par les inscriptions: valeur indicative.
    """
    row = get_schedule(schedule_id)
    if not row:
        return {"available": False, "spots": 0, "total": 0}
    spots = int(row.get("available_spots") or 0)
    return {"available": spots > 0, "spots": spots, "total": int(row.get("max_participants") or 0)}
