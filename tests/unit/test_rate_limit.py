import asyncio
import logging
from types import SimpleNamespace

import pytest
from fakeredis import FakeServer
from fakeredis.aioredis import FakeRedis
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient
from starlette.requests import Request as StarletteRequest

from techtrain.utils.rate_limit import (
    LIMITS,
    RATE_LIMIT_MESSAGE,
    DisabledLimiter,
    RateLimitResult,
    SlidingWindowLimiter,
    build_rate_limiters,
    get_client_ip,
    rate_limit,
    rate_limit_health_info,
)


class Clock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _redis():
    # Serveur isolé par test (les FakeRedis partagent sinon le même état)
    return FakeRedis(server=FakeServer(), decode_responses=True)


def test_limit_classes():
    assert LIMITS["auth"] == (5, 900)
    assert LIMITS["payment"] == (3, 300)
    assert LIMITS["api"] == (60, 60)
    assert LIMITS["contact"] == (3, 3600)


def test_auth_sixth_attempt_rejected_then_accepted_after_window():
    clock = Clock()

    async def scenario():
        limiter = build_rate_limiters(_redis(), clock=clock)["auth"]
        results = []
        for _ in range(6):
            results.append(await limiter.hit("1.2.3.4"))
            clock.now += 1
        clock.now += 15 * 60
        return results, await limiter.hit("1.2.3.4")

    results, after_window = asyncio.run(scenario())

    assert [r.success for r in results] == [True] * 5 + [False]
    assert [r.remaining for r in results[:5]] == [4, 3, 2, 1, 0]
    rejected = results[5]
    assert rejected.remaining == 0
    # la plus ancienne requête (t=0) sort de la fenêtre à t=900, refus à t=5
    assert rejected.retry_after == 895
    assert after_window.success is True


def test_rejected_requests_are_not_counted():
    clock = Clock()

    async def scenario():
        limiter = SlidingWindowLimiter(_redis(), "payment", 3, 300, clock=clock)
        for _ in range(3):
            await limiter.hit("ip")
        clock.now += 200
        for _ in range(5):
            await limiter.hit("ip")  # refusées
        # les 3 premières sortent de la fenêtre; les refus ne doivent pas compter
        clock.now += 101
        return [await limiter.hit("ip") for _ in range(3)]

    again = asyncio.run(scenario())
    assert all(r.success for r in again)


def test_identifiers_are_independent():
    clock = Clock()

    async def scenario():
        limiter = SlidingWindowLimiter(_redis(), "payment", 3, 300, clock=clock)
        for _ in range(4):
            await limiter.hit("10.0.0.1")
        return await limiter.hit("10.0.0.1"), await limiter.hit("10.0.0.2")

    first_ip, other_ip = asyncio.run(scenario())
    assert first_ip.success is False
    assert other_ip.success is True


def test_redis_failure_allows_request():
    class BrokenRedis:
        def pipeline(self, transaction=True):
            raise ConnectionError("redis down")

    limiter = SlidingWindowLimiter(BrokenRedis(), "auth", 5, 900)
    result = asyncio.run(limiter.hit("ip"))
    assert result.success is True


def test_disabled_limiter_always_allows():
    limiter = DisabledLimiter("auth")

    async def scenario():
        return [await limiter.hit("ip") for _ in range(20)]

    assert all(r.success for r in asyncio.run(scenario()))
    assert all(isinstance(l, DisabledLimiter) for l in build_rate_limiters(None).values())


def test_disabled_limiter_does_not_warn_per_request(caplog):
    caplog.set_level(logging.WARNING, logger="techtrain.utils.rate_limit")
    limiter = DisabledLimiter("api")

    async def scenario():
        for _ in range(3):
            await limiter.hit("ip")

    asyncio.run(scenario())
    assert not [r for r in caplog.records if r.name == "techtrain.utils.rate_limit"]


def _scope_request(headers=None, client=("10.0.0.9", 5000)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return StarletteRequest(scope)


def test_client_ip_resolution_order_behind_trusted_proxy():
    trusted = ["10.0.0.9"]
    assert get_client_ip(_scope_request({"X-Forwarded-For": "1.1.1.1, 2.2.2.2", "X-Real-IP": "3.3.3.3"}), trusted) == "1.1.1.1"
    assert get_client_ip(_scope_request({"X-Real-IP": "3.3.3.3"}), trusted) == "3.3.3.3"
    assert get_client_ip(_scope_request(), trusted) == "10.0.0.9"
    assert get_client_ip(_scope_request({"X-Forwarded-For": "1.1.1.1"}), ["*"]) == "1.1.1.1"
    assert get_client_ip(_scope_request(client=None), trusted) == "unknown"


def test_forwarding_headers_ignored_from_untrusted_peer(monkeypatch):
    monkeypatch.setattr("techtrain.config.TRUSTED_PROXIES", ["127.0.0.1"])
    headers = {"X-Forwarded-For": "1.1.1.1", "X-Real-IP": "3.3.3.3"}
    assert get_client_ip(_scope_request(headers)) == "10.0.0.9"
    assert get_client_ip(_scope_request(headers, client=("127.0.0.1", 5000))) == "1.1.1.1"


def test_unknown_limit_class_is_rejected():
    with pytest.raises(ValueError):
        rate_limit("bogus")


class _RejectingLimiter:
    async def hit(self, identifier):
        return RateLimitResult(False, 5, 0, 0, retry_after=42)


def _make_app(limiters):
    app = FastAPI()
    app.state.services = SimpleNamespace(rate_limiters=limiters)

    @app.post("/login", dependencies=[Depends(rate_limit("auth"))])
    def login():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_dependency_returns_429_with_retry_after():
    client = TestClient(_make_app({"auth": _RejectingLimiter()}))
    resp = client.post("/login")
    assert resp.status_code == 429
    assert resp.json() == {"detail": RATE_LIMIT_MESSAGE}
    assert resp.headers["Retry-After"] == "42"


def test_dependency_without_limiter_lets_requests_through():
    client = TestClient(_make_app({}))
    assert client.post("/login").status_code == 200


def test_health_info_reports_backend():
    disabled = TestClient(_make_app(build_rate_limiters(None))).get("/rl_info").json()
    assert disabled["enabled"] is False
    assert disabled["backend"] is None
    assert disabled["classes"] == ["api", "auth", "contact", "payment"]

    enabled = TestClient(_make_app(build_rate_limiters(_redis()))).get("/rl_info").json()
    assert enabled["enabled"] is True
    assert enabled["backend"] == "redis"
