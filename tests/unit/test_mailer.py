import requests

from techtrain.infra.mailer import RESEND_API_URL, DisabledMailer, ResendMailer, build_mailer


class _Resp:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body if body is not None else {}
        self.text = str(self._body)

    def json(self):
        return self._body


def test_resend_mailer_posts_message(monkeypatch):
    calls = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.update(url=url, json=json, headers=headers, timeout=timeout)
        return _Resp(200, {"id": "em_123"})

    monkeypatch.setattr("techtrain.infra.mailer.requests.post", fake_post)
    mailer = ResendMailer("re_key", "TechTrain <info@techtrain.nl>", reply_to="info@techtrain.nl")
    res = mailer.send("student@example.com", "Onderwerp", "<p>Hallo</p>")

    assert res == {"success": True, "id": "em_123"}
    assert calls["url"] == RESEND_API_URL
    assert calls["json"]["to"] == ["student@example.com"]
    assert calls["json"]["from"] == "TechTrain <info@techtrain.nl>"
    assert calls["json"]["reply_to"] == "info@techtrain.nl"
    assert calls["headers"]["Authorization"] == "Bearer re_key"
    assert calls["timeout"] == 10


def test_resend_mailer_reports_rejection(monkeypatch):
    monkeypatch.setattr("techtrain.infra.mailer.requests.post", lambda *a, **k: _Resp(422, {"message": "invalid"}))
    res = ResendMailer("re_key", "x@y.nl").send("a@b.nl", "s", "h")
    assert res["success"] is False
    assert "422" in res["error"]


def test_resend_mailer_reports_network_error(monkeypatch):
    def boom(*a, **k):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr("techtrain.infra.mailer.requests.post", boom)
    res = ResendMailer("re_key", "x@y.nl").send("a@b.nl", "s", "h")
    assert res["success"] is False
    assert "unreachable" in res["error"]


def test_build_mailer_without_key_is_disabled():
    mailer = build_mailer("", "x@y.nl")
    assert isinstance(mailer, DisabledMailer)
    assert mailer.enabled is False
    assert mailer.send("a@b.nl", "s", "h") == {"success": False, "error": "Email provider not configured"}
    assert isinstance(build_mailer("re_key", "x@y.nl"), ResendMailer)
