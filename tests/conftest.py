"""Pytest configuration and fixtures."""

import copy
import os
import time
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any
from unittest.mock import patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from jose import jwt

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-google-client-id.apps.googleusercontent.com")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_stripe_secret_key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_webhook_secret")
os.environ.setdefault("STRIPE_PUBLISHABLE_KEY", "pk_test_stripe_publishable_key")
os.environ.setdefault("PAYMENT_SIGNING_SECRET", "test-payment-signing-secret")
os.environ.setdefault("RESEND_API_KEY", "re_test_key")
os.environ.setdefault("ADMIN_EMAIL", "admin@sacmtb.com")

TEST_JWT_SECRET = os.environ["JWT_SECRET"]


class FakeResponse:
    """Mimics the APIResponse returned by postgrest `execute()`."""

    def __init__(self, data: list[dict[str, Any]]) -> None:
        self.data = data


class FakeQuery:
    """Chainable query builder over one in-memory table."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: list[Callable[[dict[str, Any]], bool]] = []
        self._order: tuple[str, bool] | None = None
        self._limit: int | None = None

    def select(self, *columns: str, **kwargs: Any) -> "FakeQuery":
        self._op = "select"
        return self

    def insert(self, payload: dict[str, Any] | list[dict[str, Any]]) -> "FakeQuery":
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values: list[Any]) -> "FakeQuery":
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def limit(self, size: int) -> "FakeQuery":
        self._limit = size
        return self

    def _matches(self, row: dict[str, Any]) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> FakeResponse:
        self._db.calls.append((self._table, self._op))
        if self._table in self._db.failing_tables:
            raise RuntimeError(f"Simulated failure on table {self._table}")

        rows = self._db.tables.setdefault(self._table, [])

        if self._op == "insert":
            payloads = self._payload if isinstance(self._payload, list) else [self._payload]
            created = []
            for payload in payloads:
                row = copy.deepcopy(payload)
                row.setdefault("id", str(uuid4()))
                stamp = self._db.next_timestamp()
                row.setdefault("created_at", stamp)
                row.setdefault("updated_at", stamp)
                rows.append(row)
                created.append(copy.deepcopy(row))
            return FakeResponse(created)

        matched = [row for row in rows if self._matches(row)]

        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return FakeResponse(copy.deepcopy(matched))

        if self._op == "delete":
            self._db.tables[self._table] = [row for row in rows if not self._matches(row)]
            return FakeResponse(copy.deepcopy(matched))

        if self._order is not None:
            column, desc = self._order
            matched = sorted(matched, key=lambda r: (r.get(column) is None, r.get(column) or 0), reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        return FakeResponse(copy.deepcopy(matched))


class FakeBucket:
    """One Supabase Storage bucket held in memory."""

    def __init__(self, storage: "FakeStorage", name: str) -> None:
        self.storage = storage
        self.name = name

    def upload(self, path: str, file: bytes, file_options: dict[str, Any] | None = None) -> dict[str, Any]:
        failing = self.name in self.storage.failing_buckets
        if failing or (self.storage.fail_after is not None and self.storage.uploads >= self.storage.fail_after):
            raise RuntimeError(f"storage unavailable: {self.name}")
        self.storage.uploads += 1
        self.storage.objects[(self.name, path)] = {
            "content": file,
            "content_type": (file_options or {}).get("content-type"),
        }
        return {"Key": f"{self.name}/{path}"}

    def get_public_url(self, path: str) -> str:
        return f"https://test-project.supabase.co/storage/v1/object/public/{self.name}/{path}"

    def remove(self, paths: list[str]) -> list[dict[str, Any]]:
        for path in paths:
            self.storage.objects.pop((self.name, path), None)
        self.storage.removed.extend(paths)
        return [{"name": p} for p in paths]

    def paths(self) -> list[str]:
        return [p for (b, p) in self.storage.objects if b == self.name]


class FakeStorage:
    """In-memory stand-in for the Supabase Storage API."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}
        self.removed: list[str] = []
        self.uploads = 0
        self.failing_buckets: set[str] = set()
        # Fail uploads after this many have succeeded, when set
        self.fail_after: int | None = None

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


class FakeSupabase:
    """In-memory stand-in for the Supabase client's table API."""

    def __init__(self) -> None:
        self.storage = FakeStorage()
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []
        self.failing_tables: set[str] = set()
        self._clock = count()
        self._epoch = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def next_timestamp(self) -> str:
        """Strictly increasing creation time so newest-first ordering is stable."""
        return (self._epoch + timedelta(seconds=next(self._clock))).isoformat()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str) -> list[dict[str, Any]]:
        return self.tables.get(name, [])

    def get(self, name: str, row_id: str) -> dict[str, Any] | None:
        for row in self.rows(name):
            if row.get("id") == row_id:
                return row
        return None

    def seed(self, name: str, row: dict[str, Any]) -> dict[str, Any]:
        return self.table(name).insert(row).execute().data[0]


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from sacmtb.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Start every test with a fresh rate limiter and notification dispatcher."""
    from sacmtb.core import rate_limiter
    from sacmtb.services import notification_service

    rate_limiter._rate_limiter = None
    notification_service._dispatcher = None
    yield
    rate_limiter._rate_limiter = None
    notification_service._dispatcher = None


@pytest.fixture
def fake_db() -> Generator[FakeSupabase, None, None]:
    """Provide an in-memory database wired in as the Supabase client.

    Yields:
        FakeSupabase: The fake client every service will receive.
    """
    from sacmtb.core.supabase import get_supabase_client

    db = FakeSupabase()
    get_supabase_client.cache_clear()
    with patch("sacmtb.core.supabase.create_client", return_value=db):
        yield db
    get_supabase_client.cache_clear()


@pytest.fixture
def sent_emails() -> Generator[list[dict[str, Any]], None, None]:
    """Capture outgoing Resend emails instead of sending them.

    Yields:
        list: Parameters of every `resend.Emails.send` call.
    """
    outbox: list[dict[str, Any]] = []

    def _send(params: dict[str, Any]) -> dict[str, Any]:
        outbox.append(params)
        return {"id": f"email_{len(outbox)}"}

    with patch("resend.Emails.send", side_effect=_send):
        yield outbox


@pytest.fixture
def stripe_intents() -> Generator[list[dict[str, Any]], None, None]:
    """Stub Stripe PaymentIntent creation.

    Yields:
        list: Parameters of every `stripe.PaymentIntent.create` call.
    """
    created: list[dict[str, Any]] = []

    def _create(**params: Any) -> dict[str, Any]:
        created.append(params)
        intent_id = f"pi_test_{len(created)}"
        return {
            "id": intent_id,
            "object": "payment_intent",
            "client_secret": f"{intent_id}_secret_abc",
            "amount": params["amount"],
            "currency": params["currency"],
            "metadata": params.get("metadata", {}),
        }

    with patch("stripe.PaymentIntent.create", side_effect=_create):
        yield created


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Factory for bearer tokens signed with the test secret."""

    def _make(user_id: str, email: str = "rider@example.com", role: str = "user", expires_in: int = 3600) -> str:
        now = int(time.time())
        payload = {
            "sub": user_id,
            "email": email,
            "role": role,
            "iat": now,
            "exp": now + expires_in,
        }
        return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")

    return _make


@pytest.fixture
def seed_user(fake_db: FakeSupabase) -> Callable[..., dict[str, Any]]:
    """Factory inserting a verified user row."""

    def _seed(**overrides: Any) -> dict[str, Any]:
        row = {
            "name": "Test Rider",
            "email": f"rider-{uuid4().hex[:8]}@example.com",
            "phone": "9876543210",
            "password_hash": None,
            "avatar": None,
            "google_id": None,
            "otp_hash": None,
            "otp_expires_at": None,
            "otp_attempts": 0,
            "is_verified": True,
            "is_blocked": False,
            "is_admin": False,
            **overrides,
        }
        return fake_db.seed("users", row)

    return _seed


@pytest.fixture
def seed_product(fake_db: FakeSupabase) -> Callable[..., dict[str, Any]]:
    """Factory inserting a catalog product."""

    def _seed(**overrides: Any) -> dict[str, Any]:
        row = {
            "name": "Trailblazer 29",
            "description": "Hardtail mountain bike",
            "price": 1000.0,
            "discount_price": None,
            "stock": 5,
            "image_urls": ["https://cdn.example.com/trailblazer.jpg"],
            "category": "Bicycle",
            "type": "MTB",
            "brand": "SAC MTB",
            "is_featured": False,
            "rating": 0,
            "num_reviews": 0,
            **overrides,
        }
        return fake_db.seed("products", row)

    return _seed


@pytest.fixture
def client(fake_db: FakeSupabase, sent_emails: list, stripe_intents: list) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    The lifespan runs, so the admin account is seeded and pending
    notifications are drained when the client closes.

    Yields:
        TestClient: FastAPI test client.
    """
    from sacmtb.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(make_token: Callable[..., str]) -> Callable[[dict[str, Any]], dict[str, str]]:
    """Factory for Authorization headers of a seeded user."""

    def _headers(user: dict[str, Any]) -> dict[str, str]:
        role = "admin" if user.get("is_admin") else "user"
        return {"Authorization": f"Bearer {make_token(user['id'], user['email'], role)}"}

    return _headers


@pytest.fixture
def admin_user(client: TestClient, fake_db: FakeSupabase) -> dict[str, Any]:
    """The admin account seeded at application startup."""
    admin_email = os.environ["ADMIN_EMAIL"]
    return next(u for u in fake_db.rows("users") if u["email"] == admin_email)
