from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from techtrain.utils.rate_limit import rate_limit
from . import repository as courses_repo

router = APIRouter(prefix="/api/v1", tags=["Courses API"], dependencies=[Depends(rate_limit("api"))])

@router.get("/courses")
def list_courses(category: Optional[str] = None):
    return {"courses": courses_repo.list_courses(category)}

@router.get("/courses/{slug}")
def get_course(slug: str):
    course = courses_repo.get_course_by_slug(slug)
    if not course:
        raise HTTPException(status_code=404, detail="Cursus niet gevonden")
    return course

@router.get("/courses/{course_id}/schedules")
def course_schedules(course_id: str):
    return {"schedules": courses_repo.get_course_schedules(course_id)}

@router.get("/schedules/upcoming")
def upcoming_schedules(limit: int = Query(10, ge=1, le=100)):
    return {"schedules": courses_repo.get_upcoming_schedules(limit)}

@router.get("/schedules")
def schedules_by_date_range(start: datetime, end: datetime):
    """Sessions dont la date de début est comprise entre start et end (vue calendrier)."""
    if end < start:
        raise HTTPException(status_code=400, detail="Einddatum ligt voor de startdatum")
    return {"schedules": courses_repo.get_schedules_by_date_range(start, end)}

@router.get("/schedules/{schedule_id}/availability")
def schedule_availability(schedule_id: str):
    return courses_repo.check_schedule_availability(schedule_id)
