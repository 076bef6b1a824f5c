import hashlib
import hmac
import re
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generator, List, Optional

import pytest
import stripe
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from techtrain.app_setup.factory import create_app
from techtrain.app_setup.services import AppServices
from techtrain.infra.stripe_gateway import StripeGateway
from techtrain.utils.rate_limit import build_rate_limiters
from techtrain.utils.security import get_optional_user, require_user

WEBHOOK_SECRET = "whsec_test_secret"

TEST_USER: Dict[str, Any] = {
    "id": "user-1",
    "email": "student@example.com",
    "metadata": {"full_name": "Test Student"},
    "token": "fake-token",
}

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)

# --- Double Supabase en mémoire ---

class _Resp:
    def __init__(self, data=None):
        self.data = data

# Contraintes UNIQUE émulées (code Postgres 23505)
UNIQUE_KEYS = {
    "enrollments": [("user_id", "course_id")],
    "webhook_events": [("event_id",)],
}

_EMBED = re.compile(r"^(?:(\w+):)?(\w+)\((.*)\)$")

def _split_columns(columns: str) -> List[str]:
    parts, depth, current = [], 0, ""
    for ch in columns:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += ch
    if current.strip():
        parts.append(current.strip())
    return parts

class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.columns = "*"
        self.payload: Any = None
        self.filters: List[Any] = []
        self.order_by: Optional[str] = None
        self.order_desc = False
        self.limit_n: Optional[int] = None

    def select(self, columns: str = "*"):
        self.columns = columns
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, col, value):
        self.filters.append(lambda r: r.get(col) == value)
        return self

    def gte(self, col, value):
        self.filters.append(lambda r: r.get(col) is not None and str(r.get(col)) >= str(value))
        return self

    def lte(self, col, value):
        self.filters.append(lambda r: r.get(col) is not None and str(r.get(col)) <= str(value))
        return self

    def in_(self, col, values):
        values = list(values)
        self.filters.append(lambda r: r.get(col) in values)
        return self

    def order(self, col, desc=False):
        self.order_by, self.order_desc = col, desc
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        return [r for r in self.db.tables.setdefault(self.table_name, []) if all(f(r) for f in self.filters)]

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for part in _split_columns(self.columns):
            m = _EMBED.match(part)
            if m:
                alias, table, cols = m.group(1) or m.group(2), m.group(2), m.group(3)
                target_id = row.get(f"{alias}_id")
                target = next((t for t in self.db.tables.get(table, []) if t.get("id") == target_id), None)
                if target is None:
                    out[alias] = None
                elif cols.strip() == "*":
                    out[alias] = dict(target)
                else:
                    out[alias] = {c.strip(): target.get(c.strip()) for c in cols.split(",")}
            elif part == "*":
                out.update(row)
            else:
                out[part] = row.get(part)
        return out

    def execute(self):
        failure = self.db.failures.get((self.table_name, self.op))
        if failure is not None:
            raise failure
        self.db.calls.append((self.table_name, self.op))
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            created = []
            for item in items:
                row = self.db.with_defaults(self.table_name, dict(item))
                self.db.check_unique(self.table_name, row)
                rows.append(row)
                created.append(dict(row))
            return _Resp(created)

        if self.op == "update":
            updated = []
            for row in self._matching():
                row.update(self.payload)
                updated.append(dict(row))
            return _Resp(updated)

        if self.op == "delete":
            doomed = self._matching()
            self.db.tables[self.table_name] = [r for r in rows if r not in doomed]
            return _Resp([dict(r) for r in doomed])

        result = self._matching()
        if self.order_by:
            result = sorted(result, key=lambda r: str(r.get(self.order_by) or ""), reverse=self.order_desc)
        if self.limit_n is not None:
            result = result[: self.limit_n]
        return _Resp([self._project(r) for r in result])

class FakeSupabase:
    """Client Supabase minimal: table().select/insert/update/delete + filtres, en mémoire."""
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Dict[Any, Exception] = {}
        self.calls: List[Any] = []
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def seed(self, table: str, rows: List[Dict[str, Any]]) -> None:
        self.tables.setdefault(table, []).extend(dict(r) for r in rows)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])

    def fail(self, table: str, op: str, exc: Optional[Exception] = None) -> None:
        self.failures[(table, op)] = exc or APIError({"code": "XX000", "message": f"{table} {op} failed"})

    def with_defaults(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        row.setdefault("id", str(uuid.uuid4()))
        # Horodatage croissant pour des tris déterministes
        self._clock += timedelta(seconds=1)
        if table == "enrollments":
            row.setdefault("enrolled_at", self._clock.isoformat())
            row.setdefault("completed_at", None)
        else:
            row.setdefault("created_at", self._clock.isoformat())
        return row

    def check_unique(self, table: str, row: Dict[str, Any]) -> None:
        for key in UNIQUE_KEYS.get(table, []):
            values = tuple(row.get(k) for k in key)
            if any(tuple(r.get(k) for k in key) == values for r in self.tables.get(table, [])):
                raise APIError({
                    "code": "23505",
                    "message": f'duplicate key value violates unique constraint "{table}_{"_".join(key)}_key"',
                    "details": None,
                    "hint": None,
                })

@pytest.fixture()
def fake_db(monkeypatch) -> FakeSupabase:
    db = FakeSupabase()
    monkeypatch.setattr("techtrain.infra.supabase_client.get_supabase", lambda: db)
    monkeypatch.setattr("techtrain.infra.supabase_client.get_service_supabase", lambda: db)
    monkeypatch.setattr("techtrain.infra.supabase_client.get_user_supabase", lambda token: db)
    return db

@pytest.fixture()
def catalog(fake_db) -> Dict[str, Any]:
    """Un cours, une session future et le profil de TEST_USER."""
    course = {"id": "course-1", "slug": "python-basis", "title": "Python Basis", "price": 1299, "category": "programming"}
    schedule = {
        "id": "schedule-1",
        "course_id": "course-1",
        "start_date": "2099-10-17T09:00:00+00:00",
        "end_date": "2099-10-19T17:00:00+00:00",
        "location": "Amsterdam",
        "max_participants": 12,
        "available_spots": 12,
    }
    profile = {"id": TEST_USER["id"], "email": TEST_USER["email"], "full_name": "Test Student", "avatar_url": None}
    fake_db.seed("courses", [course])
    fake_db.seed("course_schedules", [schedule])
    fake_db.seed("profiles", [profile])
    return {"course": course, "schedule": schedule, "profile": profile}

# --- Doubles fournisseurs ---

class FakeStripeGateway(StripeGateway):
    """Vérification de signature réelle (HMAC); appels API Stripe simulés et enregistrés."""
    def __init__(self):
        super().__init__("sk_test_dummy", WEBHOOK_SECRET)
        self.created: List[Dict[str, Any]] = []
        self.refunded: List[str] = []
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.fail_with: Optional[Exception] = None

    def create_payment_intent(self, **kwargs):
        if self.fail_with:
            raise self.fail_with
        self.created.append(kwargs)
        intent_id = f"pi_test_{len(self.created)}"
        self.intents[intent_id] = {"id": intent_id, "status": "requires_payment_method", "metadata": dict(kwargs["metadata"])}
        return {"id": intent_id, "client_secret": f"{intent_id}_secret_abc", "status": "requires_payment_method"}

    def retrieve_payment_intent(self, intent_id: str):
        if self.fail_with:
            raise self.fail_with
        if intent_id not in self.intents:
            raise stripe.InvalidRequestError(f"No such payment_intent: '{intent_id}'", "intent")
        return dict(self.intents[intent_id])

    def refund_payment_intent(self, intent_id: str):
        if self.fail_with:
            raise self.fail_with
        self.refunded.append(intent_id)
        return {"id": f"re_{intent_id}", "status": "succeeded", "amount": 0}

class RecordingMailer:
    enabled = True

    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, str]] = []
        self.fail = fail

    def send(self, to: str, subject: str, html: str) -> Dict[str, Any]:
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return {"success": True, "id": f"em_{len(self.sent)}"}

def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """En-tête Stripe-Signature valide: t=<ts>,v1=HMAC_SHA256(secret, "<ts>.<payload>")."""
    ts = int(timestamp if timestamp is not None else time.time())
    signature = hmac.new(secret.encode("utf-8"), f"{ts}.{payload}".encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={ts},v1={signature}"

@pytest.fixture()
def gateway() -> FakeStripeGateway:
    return FakeStripeGateway()

@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()

@pytest.fixture()
def services(gateway, mailer) -> AppServices:
    return AppServices(stripe=gateway, mailer=mailer, rate_limiters=build_rate_limiters(None))

@pytest.fixture()
def app(services):
    application = create_app(services=services)
    # Utilisateur connecté par défaut; les tests anonymes surchargent get_optional_user
    application.dependency_overrides[get_optional_user] = lambda: TEST_USER
    application.dependency_overrides[require_user] = lambda: TEST_USER
    yield application
    application.dependency_overrides.clear()

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture()
def anonymous(app):
    app.dependency_overrides[get_optional_user] = lambda: None
    return app

@pytest.fixture()
def signer():
    return sign_payload

@pytest.fixture()
def user() -> Dict[str, Any]:
    return dict(TEST_USER)
