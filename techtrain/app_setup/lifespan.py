"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Construit les services (Stripe, mailer, rate limiting) sauf s'ils ont été injectés (tests).
- Ferme proprement le client Redis à l'arrêt.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from .services import build_services

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("uvicorn.error")
    built_here = False
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
        built_here = True
    else:
        logger.info("Services injectés: construction ignorée")

    yield

    redis_client = getattr(app.state.services, "redis", None)
    if built_here and redis_client is not None:
        try:
            await redis_client.aclose()
        except Exception as e:
            logger.warning(f"Fermeture Redis en échec: {e}")
