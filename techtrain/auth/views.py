from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, EmailStr

from techtrain.app_setup.services import get_mailer
from techtrain.config import RESET_REDIRECT_URL
from techtrain.utils.rate_limit import rate_limit, get_client_ip
from techtrain.utils.results import ActionResult, to_response
from techtrain.utils.security import (
    require_user,
    get_optional_user,
    extract_token,
    set_session_cookie,
    clear_session_cookie,
)
from . import service as auth_service

# --- API Router (/api/v1/auth) ---

api_router = APIRouter(prefix="/api/v1/auth", tags=["Auth API"])

class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = ""
    full_name: Optional[str] = None

class SignInRequest(BaseModel):
    email: EmailStr
    password: str = ""

class ResetEmailRequest(BaseModel):
    email: EmailStr

class UpdatePasswordRequest(BaseModel):
    password: str = ""
    confirm_password: str = ""
    # Token du lien de reset; sinon la session courante est utilisée
    token: Optional[str] = None

class UpdateProfileRequest(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

@api_router.post("/signup", dependencies=[Depends(rate_limit("auth"))])
def api_signup(req: SignUpRequest, mailer=Depends(get_mailer)):
    """Inscription: le compte doit ensuite être confirmé par e-mail (pas de session renvoyée)."""
    result = auth_service.sign_up(req.email, req.password, req.full_name, mailer=mailer)
    return to_response(result)

@api_router.post("/login", dependencies=[Depends(rate_limit("auth"))])
def api_login(req: SignInRequest, request: Request):
    """Connexion (API JSON).
    - Pose le cookie HTTPOnly sb_access en cas de succès.
    - Retourne {data: {access_token, refresh_token, user}, success}.
    """
    result = auth_service.sign_in(req.email, req.password, ip=get_client_ip(request))
    response = to_response(result)
    if result.success:
        set_session_cookie(response, result.data["access_token"])
    return response

@api_router.post("/logout")
def api_logout():
    response = to_response(ActionResult.ok(message="Uitgelogd"))
    clear_session_cookie(response)
    return response

@api_router.post("/request-password-reset", dependencies=[Depends(rate_limit("auth"))])
def api_request_reset(req: ResetEmailRequest):
    return to_response(auth_service.request_password_reset(req.email, RESET_REDIRECT_URL))

@api_router.post("/update-password", dependencies=[Depends(rate_limit("auth"))])
def api_update_password(body: UpdatePasswordRequest, request: Request):
    token = body.token or extract_token(request)
    return to_response(auth_service.update_password(token, body.password, body.confirm_password))

@api_router.get("/me")
def api_me(user: Dict[str, Any] = Depends(require_user)):
    """Retourne l'utilisateur courant (id, email, metadata) après contrôle de session."""
    return {"id": user["id"], "email": user["email"], "metadata": user.get("metadata") or {}}

@api_router.get("/profile")
def api_get_profile(user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    return to_response(auth_service.get_profile(user))

@api_router.patch("/profile")
def api_update_profile(body: UpdateProfileRequest, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    return to_response(auth_service.update_profile(user, body.full_name, body.avatar_url))
