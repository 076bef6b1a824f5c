"""
Résultat uniforme des cas d'usage (équivalent des « server actions »).
- Succès: {"data"?, "success": True, "message"?}
- Échec: {"error": "<message localisé>"} + kind pour choisir le code HTTP côté vue.
"""
from enum import Enum
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    ALREADY_ENROLLED = "already_enrolled"
    NOT_FOUND = "not_found"
    PROVIDER_ERROR = "provider_error"
    VALIDATION = "validation"
    UNEXPECTED = "unexpected"

_STATUS_BY_KIND = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.ALREADY_ENROLLED: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PROVIDER_ERROR: 502,
}

class ActionResult:
    def __init__(
        self,
        success: bool,
        data: Any = None,
        message: Optional[str] = None,
        error: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
    ):
        self.success = success
        self.data = data
        self.message = message
        self.error = error
        self.kind = kind

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ActionResult":
        return cls(True, data=data, message=message)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind = ErrorKind.VALIDATION) -> "ActionResult":
        return cls(False, error=error, kind=kind)

    @property
    def status_code(self) -> int:
        if self.success:
            return 200
        return _STATUS_BY_KIND.get(self.kind, 400)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            # data optionnel en échec: contexte pour le front (ex: inscriptions bloquantes)
            return {"error": self.error} if self.data is None else {"error": self.error, "data": self.data}
        out: Dict[str, Any] = {"success": True}
        if self.data is not None:
            out["data"] = self.data
        if self.message:
            out["message"] = self.message
        return out

def to_response(result: ActionResult, status_code: Optional[int] = None) -> JSONResponse:
    """Convertit un ActionResult en JSONResponse (code HTTP déduit du kind)."""
    return JSONResponse(status_code=status_code or result.status_code, content=result.to_dict())
