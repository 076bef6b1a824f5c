"""
Rate limiting par fenêtre glissante (log horodaté dans un sorted set Redis).

Classes de limites (par IP cliente):
- auth: 5 requêtes / 15 min (login, inscription, reset)
- payment: 3 requêtes / 5 min (création de paiement)
- api: 60 requêtes / 1 min (routes générales)
- contact: 3 requêtes / 1 h (formulaires de contact)

Sans Redis configuré, DisabledLimiter laisse tout passer (warning unique au démarrage).
Une erreur Redis au moment de l'appel est loggée et la requête est autorisée.
"""
import logging
import math
import time
from typing import Callable, Dict, List, NamedTuple, Optional
from uuid import uuid4

from fastapi import HTTPException, Request

from techtrain import config
from techtrain.utils.audit import log_rate_limit_exceeded

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Te veel pogingen. Probeer het later opnieuw."

class LimitSpec(NamedTuple):
    limit: int
    window_seconds: int

LIMITS: Dict[str, LimitSpec] = {
    "auth": LimitSpec(5, 15 * 60),
    "payment": LimitSpec(3, 5 * 60),
    "api": LimitSpec(60, 60),
    "contact": LimitSpec(3, 60 * 60),
}

class RateLimitResult(NamedTuple):
    success: bool
    limit: int
    remaining: int
    reset: float
    retry_after: int = 0

class SlidingWindowLimiter:
    """
    Compte les requêtes d'un identifiant sur les `window_seconds` dernières secondes.
    Une requête refusée n'est pas comptabilisée.
    """
    def __init__(self, redis, name: str, limit: int, window_seconds: int, clock: Callable[[], float] = time.time):
        self.redis = redis
        self.name = name
        self.prefix = f"ratelimit:{name}"
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock

    async def hit(self, identifier: str) -> RateLimitResult:
        now = self.clock()
        key = f"{self.prefix}:{identifier}"
        member = f"{now}:{uuid4().hex}"
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(key, "-inf", now - self.window_seconds)
                pipe.zadd(key, {member: now})
                pipe.zcard(key)
                pipe.expire(key, self.window_seconds)
                _, _, count, _ = await pipe.execute()

            if count <= self.limit:
                return RateLimitResult(True, self.limit, self.limit - count, now + self.window_seconds)

            await self.redis.zrem(key, member)
            oldest = await self.redis.zrange(key, 0, 0, withscores=True)
            reset = (oldest[0][1] if oldest else now) + self.window_seconds
            return RateLimitResult(False, self.limit, 0, reset, max(1, math.ceil(reset - now)))
        except Exception:
            logger.exception("rate_limit.hit failed limiter=%s identifier=%s", self.name, identifier)
            return RateLimitResult(True, self.limit, self.limit, now)

class DisabledLimiter:
    def __init__(self, name: str):
        self.name = name

    async def hit(self, identifier: str) -> RateLimitResult:
        logger.debug("Rate limiting non configuré (%s): requête autorisée sans limite", self.name)
        return RateLimitResult(True, 0, 0, 0)

def build_rate_limiters(redis=None, clock: Callable[[], float] = time.time) -> Dict[str, object]:
    """Un limiteur par classe; variante désactivée si aucun client Redis n'est fourni."""
    if redis is None:
        return {name: DisabledLimiter(name) for name in LIMITS}
    return {
        name: SlidingWindowLimiter(redis, name, spec.limit, spec.window_seconds, clock=clock)
        for name, spec in LIMITS.items()
    }

def _is_trusted_proxy(host: Optional[str], trusted: List[str]) -> bool:
    return bool(host) and ("*" in trusted or host in trusted)

def get_client_ip(request: Request, trusted_proxies: Optional[List[str]] = None) -> str:
    """
    IP cliente. Les en-têtes de proxy ne sont lus que si le pair TCP est un proxy de confiance
    (config.TRUSTED_PROXIES): 1re entrée de X-Forwarded-For, puis X-Real-IP.
    Sinon: pair TCP, à défaut 'unknown'.
    """
    peer = request.client.host if request.client and request.client.host else None
    trusted = config.TRUSTED_PROXIES if trusted_proxies is None else trusted_proxies
    if not _is_trusted_proxy(peer, trusted):
        return peer or "unknown"

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    return peer

async def check_rate_limit(limiter: Optional[object], identifier: str) -> RateLimitResult:
    if limiter is None:
        logger.warning("Rate limiting non configuré: requête autorisée sans limite")
        return RateLimitResult(True, 0, 0, 0)
    return await limiter.hit(identifier)

def rate_limit(name: str):
    """
    Dépendance FastAPI: applique la classe de limite `name` à l'IP cliente.
    Les limiteurs sont lus sur app.state.services (construits au démarrage).
    """
    if name not in LIMITS:
        raise ValueError(f"Classe de rate limit inconnue: {name}")

    async def _dep(request: Request):
        services = getattr(request.app.state, "services", None)
        limiters = getattr(services, "rate_limiters", None) or {}
        ip = get_client_ip(request)
        result = await check_rate_limit(limiters.get(name), ip)
        if not result.success:
            log_rate_limit_exceeded(ip, request.url.path, {"limiter": name})
            raise HTTPException(
                status_code=429,
                detail=RATE_LIMIT_MESSAGE,
                headers={"Retry-After": str(result.retry_after)},
            )
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, object]:
    services = getattr(request.app.state, "services", None)
    limiters = getattr(services, "rate_limiters", None) or {}
    enabled = any(isinstance(l, SlidingWindowLimiter) for l in limiters.values())
    return {"enabled": enabled, "backend": "redis" if enabled else None, "classes": sorted(limiters)}
