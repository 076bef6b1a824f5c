"""
Registre central des routers.
- API v1: auth, courses/schedules, enrollments, payments, account
- Webhooks: Stripe
- Health
"""
from fastapi import FastAPI
from techtrain.auth.views import api_router as auth_api_router
from techtrain.courses import views as courses_views
from techtrain.enrollments import views as enrollments_views
from techtrain.payments import views as payments_views
from techtrain.account import views as account_views
from techtrain.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(auth_api_router)
    app.include_router(courses_views.router)
    app.include_router(enrollments_views.router)
    app.include_router(payments_views.router)
    app.include_router(account_views.router)
    # Webhooks fournisseurs
    app.include_router(payments_views.webhook_router)
    # Health & monitoring
    app.include_router(health_router)
