from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from techtrain.utils.rate_limit import rate_limit
from techtrain.utils.results import to_response
from techtrain.utils.security import get_optional_user
from . import service as account_service

router = APIRouter(prefix="/api/v1/account", tags=["Account API"], dependencies=[Depends(rate_limit("api"))])

class DeleteAccountRequest(BaseModel):
    user_id: Optional[str] = None
    confirmed: bool = False

class PrivacyPreferences(BaseModel):
    marketing_emails: bool = False
    data_processing: bool = False

@router.get("/export")
def export_data(user_id: Optional[str] = None, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    """Export JSON de toutes les données du compte (profil, inscriptions, paiements)."""
    return to_response(account_service.export_user_data(user, user_id))

@router.post("/portability")
def data_portability(user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    return to_response(account_service.request_data_portability(user))

@router.post("/deletion-request")
def deletion_request(user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    return to_response(account_service.request_account_deletion(user))

@router.post("/delete")
def delete_account(body: DeleteAccountRequest, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    """Confirmation explicite (confirmed=true) de la suppression du compte connecté."""
    return to_response(account_service.delete_user_data(user, body.user_id, body.confirmed))

@router.put("/privacy-preferences")
def privacy_preferences(body: PrivacyPreferences, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    return to_response(account_service.update_privacy_preferences(user, body.marketing_emails, body.data_processing))
