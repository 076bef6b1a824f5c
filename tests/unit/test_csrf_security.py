import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from starlette.requests import Request

from techtrain.utils.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, register_csrf_middleware
from techtrain.utils.security import COOKIE_NAME, extract_token, get_current_user, get_optional_user


def _make_app():
    app = FastAPI()
    register_csrf_middleware(app)

    @app.get("/simple")
    def simple_get():
        return {"ok": True}

    @app.post("/simple")
    def simple_post():
        return {"ok": True}

    @app.post("/api/webhooks/stripe")
    def webhook():
        return {"received": True}

    return app


def test_get_sets_csrf_cookie():
    client = TestClient(_make_app())
    resp = client.get("/simple")
    assert resp.status_code == 200
    assert CSRF_COOKIE_NAME in resp.cookies


def test_post_without_session_cookie_is_not_checked():
    client = TestClient(_make_app())
    assert client.post("/simple").status_code == 200


def test_post_with_session_requires_matching_token():
    client = TestClient(_make_app())
    client.cookies.set(COOKIE_NAME, "session-token")
    client.cookies.set(CSRF_COOKIE_NAME, "csrf-abc")

    missing = client.post("/simple")
    assert missing.status_code == 403
    assert missing.json() == {"error": "CSRF verification failed"}

    assert client.post("/simple", headers={CSRF_HEADER_NAME: "wrong"}).status_code == 403
    assert client.post("/simple", headers={CSRF_HEADER_NAME: "csrf-abc"}).status_code == 200


def test_stripe_webhook_is_exempt():
    client = TestClient(_make_app())
    client.cookies.set(COOKIE_NAME, "session-token")
    assert client.post("/api/webhooks/stripe").status_code == 200


def _request(headers=None, cookies=None):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        raw.append((b"cookie", "; ".join(f"{k}={v}" for k, v in cookies.items()).encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


def test_extract_token_prefers_bearer():
    req = _request({"Authorization": "Bearer header-token"}, {COOKIE_NAME: "cookie-token"})
    assert extract_token(req) == "header-token"
    assert extract_token(_request(cookies={COOKIE_NAME: "cookie-token"})) == "cookie-token"
    assert extract_token(_request()) is None


def test_get_current_user_without_token():
    with pytest.raises(HTTPException) as exc:
        get_current_user(_request())
    assert exc.value.status_code == 401
    assert exc.value.detail == "Niet ingelogd"


def test_get_current_user_resolves_token(monkeypatch):
    monkeypatch.setattr(
        "techtrain.auth.service.get_user_from_token",
        lambda token: {"id": "user-1", "email": "a@b.nl", "metadata": {}, "token": token},
    )
    user = get_current_user(_request({"Authorization": "Bearer abc"}))
    assert user["id"] == "user-1"
    assert user["token"] == "abc"


def test_expired_session(monkeypatch):
    def boom(token):
        raise RuntimeError("jwt expired")

    monkeypatch.setattr("techtrain.auth.service.get_user_from_token", boom)
    with pytest.raises(HTTPException) as exc:
        get_current_user(_request({"Authorization": "Bearer abc"}))
    assert exc.value.detail == "Sessie verlopen, log opnieuw in"
    assert get_optional_user(_request({"Authorization": "Bearer abc"})) is None
