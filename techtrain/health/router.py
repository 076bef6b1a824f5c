from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from techtrain.health.service import check_health
from techtrain.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/api/health", tags=["Health"])

NO_CACHE = {"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0"}

@router.get("")
def health_root():
    status_code, body = check_health()
    return JSONResponse(status_code=status_code, content=body, headers=NO_CACHE)

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return JSONResponse(rate_limit_health_info(request), headers=NO_CACHE)
