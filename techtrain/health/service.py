from datetime import datetime, timezone
from typing import Any, Dict, Tuple
import logging

import techtrain.infra.supabase_client as supabase_client
from techtrain.config import APP_VERSION
from techtrain.utils.audit import log_security_event

logger = logging.getLogger(__name__)

def check_health() -> Tuple[int, Dict[str, Any]]:
    """
    Vérifie la connexion base par une lecture triviale de 'courses'.
    Retour: (200, {status: healthy, ...}) ou (503, {status: unhealthy, error, ...}).
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        supabase_client.get_supabase().table("courses").select("id").limit(1).execute()
    except Exception as e:
        message = str(getattr(e, "message", None) or getattr(e, "detail", None) or e)
        log_security_event("CRITICAL: Database connection failed", {"error": message})
        return 503, {"status": "unhealthy", "error": message, "timestamp": timestamp}
    return 200, {
        "status": "healthy",
        "timestamp": timestamp,
        "database": "connected",
        "version": APP_VERSION,
    }
