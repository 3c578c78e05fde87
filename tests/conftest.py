"""Pytest fixtures for backend tests."""

from __future__ import annotations

import copy
import os
import threading
import uuid
from collections.abc import Callable, Iterator
from typing import Any
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient
from postgrest import APIError


def _set_default_env() -> None:
    os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
    os.environ.setdefault("SUPABASE_SERVICE_KEY", "service-key")
    os.environ.setdefault("ENABLE_SCHEDULER", "false")
    os.environ.setdefault("CLIENT_URL", "http://localhost:3000")
    os.environ.setdefault("SESSION_COOKIE_SECURE", "false")
    os.environ.setdefault("SESSION_COOKIE_SAMESITE", "lax")
    os.environ.setdefault("GOOGLE_CLIENT_ID", "google-client")
    os.environ.setdefault("GOOGLE_CLIENT_SECRET", "google-secret")
    os.environ.setdefault("LINKEDIN_CLIENT_ID", "linkedin-client")
    os.environ.setdefault("LINKEDIN_CLIENT_SECRET", "linkedin-secret")
    os.environ.setdefault("EMAIL_USER", "")
    os.environ.setdefault("EMAIL_PASSWORD", "")


_set_default_env()

from app.services.mail_service import MailService  # noqa: E402

UNIQUE_KEYS: dict[str, list[tuple[str, ...]]] = {
    "users": [("email",), ("provider", "provider_id")],
    "sessions": [("id",)],
    "candidates": [("id",)],
}


class FakeResponse:
    def __init__(self, data: list[dict[str, Any]] | None, count: int | None = None) -> None:
        self.data = data
        self.count = count


class FakeQuery:
    """Just enough of the PostgREST builder for the services under test."""

    def __init__(self, db: FakeSupabase, table: str) -> None:
        self.db = db
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload: Any = None
        self.filters: list[Callable[[dict[str, Any]], bool]] = []
        self.count_mode: str | None = None
        self.head = False
        self.orders: list[tuple[str, bool]] = []
        self.limit_value: int | None = None
        self.range_bounds: tuple[int, int] | None = None

    def select(self, columns: str = "*", count: str | None = None, head: bool = False):
        self.op = "select"
        self.columns = columns
        self.count_mode = count
        self.head = head
        return self

    def insert(self, payload: Any):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload: dict[str, Any]):
        self.op = "update"
        self.payload = payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column: str, value: Any):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def lt(self, column: str, value: Any):
        self.filters.append(lambda row: row.get(column) is not None and row[column] < value)
        return self

    def in_(self, column: str, values: list[Any]):
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column: str, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def limit(self, value: int):
        self.limit_value = value
        return self

    def range(self, start: int, end: int):
        self.range_bounds = (start, end)
        return self

    def execute(self) -> FakeResponse:
        return self.db.run(self)


class FakeSupabase:
    """In-memory stand-in for ``supabase.Client`` with atomic statements.

    Like PostgREST, a select returns at most ``max_rows`` rows.
    """

    max_rows = 1000

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {
            "users": [],
            "candidates": [],
            "sessions": [],
        }
        self.hooks: list[Callable[[FakeQuery], None]] = []
        self._lock = threading.Lock()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def run(self, query: FakeQuery) -> FakeResponse:
        for hook in list(self.hooks):
            hook(query)
        with self._lock:
            if query.op == "select":
                return self._select(query)
            handler = getattr(self, f"_{query.op}")
            return FakeResponse(copy.deepcopy(handler(query)))

    def _matching(self, query: FakeQuery) -> list[dict[str, Any]]:
        return [row for row in self.rows(query.table) if all(f(row) for f in query.filters)]

    def _select(self, query: FakeQuery) -> FakeResponse:
        """Filter, order, page and cap like PostgREST (nulls sort last)."""
        rows = self._matching(query)
        total = len(rows) if query.count_mode == "exact" else None
        for key, desc in reversed(query.orders):
            present = [row for row in rows if row.get(key) is not None]
            missing = [row for row in rows if row.get(key) is None]
            present.sort(key=lambda row: row[key], reverse=desc)
            rows = present + missing
        if query.range_bounds is not None:
            start, end = query.range_bounds
            rows = rows[start : end + 1]
        if query.limit_value is not None:
            rows = rows[: query.limit_value]
        rows = rows[: self.max_rows]
        if query.head:
            return FakeResponse(None, count=total)
        if query.columns.strip() != "*":
            columns = [column.strip() for column in query.columns.split(",")]
            rows = [{column: row.get(column) for column in columns} for row in rows]
        return FakeResponse(copy.deepcopy(rows), count=total)

    def _insert(self, query: FakeQuery) -> list[dict[str, Any]]:
        payloads = query.payload if isinstance(query.payload, list) else [query.payload]
        created = []
        for payload in payloads:
            row = {"id": str(uuid.uuid4()), **copy.deepcopy(payload)}
            self._check_unique(query.table, row, exclude=None)
            self.rows(query.table).append(row)
            created.append(row)
        return created

    def _update(self, query: FakeQuery) -> list[dict[str, Any]]:
        matched = self._matching(query)
        for row in matched:
            self._check_unique(query.table, {**row, **query.payload}, exclude=row)
        for row in matched:
            row.update(copy.deepcopy(query.payload))
        return matched

    def _delete(self, query: FakeQuery) -> list[dict[str, Any]]:
        matched = self._matching(query)
        self.tables[query.table] = [row for row in self.rows(query.table) if row not in matched]
        return matched

    def _check_unique(
        self,
        table: str,
        candidate: dict[str, Any],
        exclude: dict[str, Any] | None,
    ) -> None:
        for columns in UNIQUE_KEYS.get(table, []):
            values = tuple(candidate.get(column) for column in columns)
            if any(value is None for value in values):
                continue
            for row in self.rows(table):
                if row is exclude:
                    continue
                if tuple(row.get(column) for column in columns) == values:
                    raise APIError(
                        {
                            "message": "duplicate key value violates unique constraint",
                            "code": "23505",
                            "hint": None,
                            "details": None,
                        }
                    )

    def add_candidate(self, name: str, vote_count: int = 0) -> dict[str, Any]:
        row = {
            "id": str(uuid.uuid4()),
            "name": name,
            "profile_url": f"https://www.linkedin.com/in/{name.lower().replace(' ', '-')}",
            "party": "Independent",
            "team": "White Matrix Team",
            "image_url": "",
            "vote_count": vote_count,
        }
        self.rows("candidates").append(row)
        return dict(row)

    def add_user(self, **fields: Any) -> dict[str, Any]:
        row = {
            "id": str(uuid.uuid4()),
            "name": "Test User",
            "email": f"{uuid.uuid4().hex[:8]}@example.com",
            "password_hash": None,
            "provider": "local",
            "provider_id": None,
            "avatar_url": "",
            "profile_url": "",
            "has_voted": False,
            "voted_at": None,
            "voted_for": None,
            "reset_token_hash": None,
            "reset_token_expires_at": None,
        }
        row.update(fields)
        self.rows("users").append(row)
        return dict(row)

    def user(self, user_id: str) -> dict[str, Any]:
        return next(row for row in self.rows("users") if row["id"] == user_id)

    def user_by_email(self, email: str) -> dict[str, Any] | None:
        return next((row for row in self.rows("users") if row["email"] == email), None)


class RecordingMailer(MailService):
    """Mailer that records reset links instead of talking to SMTP."""

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[dict[str, str]] = []

    def send_password_reset(self, recipient: str, name: str, reset_url: str) -> bool:
        self.sent.append({"to": recipient, "name": name, "reset_url": reset_url})
        return True

    def last_token(self) -> str:
        query = parse_qs(urlparse(self.sent[-1]["reset_url"]).query)
        return query["resetToken"][0]


def oauth_transport(userinfo: dict[str, dict[str, Any]]) -> httpx.MockTransport:
    """Serve token and userinfo endpoints for both providers.

    ``userinfo`` maps provider name to the payload its userinfo endpoint returns.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        provider = "linkedin" if "linkedin" in host else "google"
        if request.method == "POST":
            if b"code=bad-code" in request.content:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": f"{provider}-access"})
        return httpx.Response(200, json=userinfo[provider])

    return httpx.MockTransport(handler)


@pytest.fixture
def db() -> FakeSupabase:
    """Fresh in-memory database per test."""
    return FakeSupabase()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def userinfo() -> dict[str, dict[str, Any]]:
    """Mutable userinfo payloads served by the fake providers."""
    return {
        "google": {
            "sub": "google-123",
            "name": "Grace Hopper",
            "email": "grace@example.com",
            "picture": "https://lh3.googleusercontent.com/grace.png",
        },
        "linkedin": {
            "sub": "li-456",
            "name": "Linus Lovelace",
            "email": "linus@example.com",
            "picture": "https://media.licdn.com/linus.png",
            "vanityName": "linus-lovelace",
        },
    }


@pytest.fixture
def client(
    db: FakeSupabase,
    mailer: RecordingMailer,
    userinfo: dict[str, dict[str, Any]],
) -> Iterator[TestClient]:
    """Create a FastAPI test client wired to the in-memory fakes."""
    from app.dependencies import get_db_client, get_mailer, get_oauth_http
    from app.main import app

    http = httpx.Client(transport=oauth_transport(userinfo))
    app.dependency_overrides[get_db_client] = lambda: db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_oauth_http] = lambda: http
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        http.close()


@pytest.fixture
def signed_in(client: TestClient) -> Callable[..., dict[str, Any]]:
    """Register a local account on ``client`` and return the user payload."""

    def _register(
        email: str = "voter@example.com",
        password: str = "secret123",
        name: str = "Valid Voter",
    ) -> dict[str, Any]:
        response = client.post(
            "/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        return response.json()["user"]

    return _register
