from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from techtrain.app_setup.services import get_mailer
from techtrain.utils.rate_limit import rate_limit
from techtrain.utils.results import to_response
from techtrain.utils.security import get_optional_user
from . import service as enrollments_service
from .models import CreateEnrollmentRequest, ProgressRequest

router = APIRouter(prefix="/api/v1/enrollments", tags=["Enrollments API"], dependencies=[Depends(rate_limit("api"))])

@router.post("")
def create_enrollment(
    body: CreateEnrollmentRequest,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    mailer=Depends(get_mailer),
):
    """
    Inscrit l'utilisateur courant à un cours (session optionnelle).
    - 401 si non connecté, 409 si déjà inscrit.
    - E-mail de confirmation best-effort.
    """
    result = enrollments_service.create_enrollment(user, body.course_id, body.schedule_id, mailer=mailer)
    return to_response(result, status_code=201 if result.success else None)

@router.get("")
def list_enrollments(user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    return to_response(enrollments_service.get_user_enrollments(user))

@router.get("/check/{course_id}")
def check_enrollment(course_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    return enrollments_service.check_enrollment(user, course_id)

@router.patch("/{enrollment_id}/progress")
def update_progress(
    enrollment_id: str,
    body: ProgressRequest,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    return to_response(enrollments_service.update_enrollment_progress(user, enrollment_id, body.progress))

@router.post("/{enrollment_id}/cancel")
def cancel_enrollment(enrollment_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    return to_response(enrollments_service.cancel_enrollment(user, enrollment_id))
