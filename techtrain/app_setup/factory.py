"""
Factory d'application pour les entrypoints (techtrain.asgi) et les tests.
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from typing import Optional
from fastapi import FastAPI
from techtrain.config import APP_VERSION
from techtrain.utils.csrf import register_csrf_middleware
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_middleware, register_no_cache_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers
from .services import AppServices

def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base, CSRF, sécurité, no-cache
      - gestionnaires d'exceptions
      - tous les routers (API, webhooks, health)
    Paramètre:
      services: clients fournisseurs déjà construits (tests); sinon construits au démarrage.
    """
    app = FastAPI(title="TechTrain API", version=APP_VERSION, lifespan=lifespan)
    app.state.services = services
    register_basic_middlewares(app)
    register_csrf_middleware(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
