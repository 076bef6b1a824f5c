"""
Clients des fournisseurs externes, construits UNE fois au démarrage et injectés via app.state.
- stripe: StripeGateway ou DisabledStripeGateway
- mailer: ResendMailer ou DisabledMailer
- rate_limiters: limiteurs Redis par classe, ou variantes désactivées
Les tests passent leurs propres AppServices à create_app(services=...).
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from fastapi import Request

from techtrain import config
from techtrain.infra.mailer import build_mailer
from techtrain.infra.stripe_gateway import build_stripe_gateway
from techtrain.utils.rate_limit import build_rate_limiters

logger = logging.getLogger("uvicorn.error")

@dataclass
class AppServices:
    stripe: Any
    mailer: Any
    rate_limiters: Dict[str, Any] = field(default_factory=dict)
    redis: Any = None

def _build_redis():
    """Client Redis asynchrone: fakeredis en tests, RATE_LIMIT_REDIS_URL sinon, None si non configuré."""
    if config.USE_FAKE_REDIS_FOR_TESTS:
        from fakeredis.aioredis import FakeRedis  # dépendance de test uniquement
        return FakeRedis(decode_responses=True)
    if not config.RATE_LIMIT_REDIS_URL:
        logger.warning("RATE_LIMIT_REDIS_URL absent: rate limiting désactivé")
        return None
    import redis.asyncio as aioredis
    return aioredis.from_url(config.RATE_LIMIT_REDIS_URL, encoding="utf-8", decode_responses=True)

def build_services() -> AppServices:
    redis_client = _build_redis()
    services = AppServices(
        stripe=build_stripe_gateway(config.STRIPE_SECRET_KEY, config.STRIPE_WEBHOOK_SECRET, config.STRIPE_CURRENCY),
        mailer=build_mailer(config.RESEND_API_KEY, config.EMAIL_FROM, reply_to=config.EMAIL_REPLY_TO),
        rate_limiters=build_rate_limiters(redis_client),
        redis=redis_client,
    )
    logger.info(
        "Services: stripe=%s mailer=%s rate_limit=%s",
        "enabled" if services.stripe.enabled else "disabled",
        "enabled" if services.mailer.enabled else "disabled",
        "enabled" if redis_client is not None else "disabled",
    )
    return services

# --- Dépendances FastAPI ---

def get_services(request: Request) -> AppServices:
    return request.app.state.services

def get_stripe(request: Request):
    return get_services(request).stripe

def get_mailer(request: Request):
    return get_services(request).mailer
