"""Shared test fixtures.

Tests never touch the network. Supabase is replaced by an in-memory fake that
understands the query-builder calls the services make, edge functions by a
recorder, and Redis is left uninitialised so caching and rate limiting pass
straight through.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import AsyncGenerator
from types import SimpleNamespace
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from supabase import AuthError, PostgrestAPIError

os.environ["PLANMONI_SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-enough-length-for-hs256"
os.environ["PLANMONI_LOG_FORMAT"] = "console"

from planmoni_admin.auth.dependencies import CurrentAdmin, get_current_admin  # noqa: E402
from planmoni_admin.config import get_settings  # noqa: E402
from planmoni_admin.edge_functions import EdgeFunctionError, get_edge_functions  # noqa: E402
from planmoni_admin.main import create_app  # noqa: E402
from planmoni_admin.supabase_client import get_supabase  # noqa: E402

get_settings.cache_clear()

SUPER_ADMIN_ROLES = [{"role_id": "r-super", "role_name": "Super Admin", "is_active": True}]
ADMIN_ROLES = [{"role_id": "r-admin", "role_name": "Admin", "is_active": True}]


def api_error(message: str = "boom", code: str = "PGRST000") -> PostgrestAPIError:
    return PostgrestAPIError({"message": message, "code": code, "hint": None, "details": None})


class FakeAuthError(AuthError):
    """AuthError with a stable constructor across client versions."""

    def __init__(self, message: str) -> None:
        Exception.__init__(self, message)
        self.message = message


# ---------------------------------------------------------------------------
# Supabase fake
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, data: Any = None, count: int | None = None) -> None:  # noqa: ANN401
        self.data = data
        self.count = count


def _compare(left: Any, right: Any) -> tuple[Any, Any]:  # noqa: ANN401
    if isinstance(left, str) or isinstance(right, str):
        return str(left), str(right)
    return left, right


class FakeQuery:
    """Chainable stand-in for the PostgREST request builder."""

    def __init__(self, db: FakeSupabase, table: str) -> None:
        self.db = db
        self.table = table
        self.filters: list[tuple[bool, Any]] = []
        self.operation = "select"
        self.payload: Any = None
        self.on_conflict: str | None = None
        self.count_mode: str | None = None
        self.head = False
        self.order_by: list[tuple[str, bool]] = []
        self.limit_n: int | None = None
        self.range_bounds: tuple[int, int] | None = None
        self.single_mode: str | None = None
        self._negate = False

    # -- operations --------------------------------------------------------

    def select(self, *_columns: str, count: str | None = None, head: bool | None = None) -> FakeQuery:
        self.count_mode = count
        self.head = bool(head)
        return self

    def insert(self, rows: dict | list[dict]) -> FakeQuery:
        self.operation, self.payload = "insert", rows
        return self

    def update(self, values: dict) -> FakeQuery:
        self.operation, self.payload = "update", values
        return self

    def upsert(self, rows: dict | list[dict], on_conflict: str = "id", **_kwargs: Any) -> FakeQuery:  # noqa: ANN401
        self.operation, self.payload, self.on_conflict = "upsert", rows, on_conflict
        return self

    def delete(self) -> FakeQuery:
        self.operation = "delete"
        return self

    # -- filters -----------------------------------------------------------

    def _filter(self, predicate: Any) -> FakeQuery:  # noqa: ANN401
        self.filters.append((self._negate, predicate))
        self._negate = False
        return self

    @property
    def not_(self) -> FakeQuery:
        self._negate = True
        return self

    def eq(self, column: str, value: Any) -> FakeQuery:  # noqa: ANN401
        return self._filter(lambda row: row.get(column) == value)

    def neq(self, column: str, value: Any) -> FakeQuery:  # noqa: ANN401
        return self._filter(lambda row: row.get(column) != value)

    def _cmp(self, column: str, value: Any, op: str) -> FakeQuery:  # noqa: ANN401
        def predicate(row: dict) -> bool:
            if row.get(column) is None:
                return False
            left, right = _compare(row[column], value)
            return {"gt": left > right, "gte": left >= right, "lt": left < right, "lte": left <= right}[op]

        return self._filter(predicate)

    def gt(self, column: str, value: Any) -> FakeQuery:  # noqa: ANN401
        return self._cmp(column, value, "gt")

    def gte(self, column: str, value: Any) -> FakeQuery:  # noqa: ANN401
        return self._cmp(column, value, "gte")

    def lt(self, column: str, value: Any) -> FakeQuery:  # noqa: ANN401
        return self._cmp(column, value, "lt")

    def lte(self, column: str, value: Any) -> FakeQuery:  # noqa: ANN401
        return self._cmp(column, value, "lte")

    def in_(self, column: str, values: list) -> FakeQuery:
        return self._filter(lambda row: row.get(column) in values)

    def is_(self, column: str, value: str) -> FakeQuery:
        assert value == "null"
        return self._filter(lambda row: row.get(column) is None)

    def ilike(self, column: str, pattern: str) -> FakeQuery:
        needle = pattern.strip("%").lower()
        return self._filter(lambda row: needle in str(row.get(column) or "").lower())

    def or_(self, expression: str) -> FakeQuery:
        clauses = []
        for part in expression.split(","):
            column, op, pattern = part.split(".", 2)
            assert op == "ilike"
            clauses.append((column, pattern.strip("%").lower()))
        return self._filter(
            lambda row: any(needle in str(row.get(column) or "").lower() for column, needle in clauses)
        )

    # -- modifiers ---------------------------------------------------------

    def order(self, column: str, desc: bool = False, **_kwargs: Any) -> FakeQuery:  # noqa: ANN401
        self.order_by.append((column, desc))
        return self

    def limit(self, n: int) -> FakeQuery:
        self.limit_n = n
        return self

    def range(self, start: int, end: int) -> FakeQuery:
        self.range_bounds = (start, end)
        return self

    def single(self) -> FakeQuery:
        self.single_mode = "single"
        return self

    def maybe_single(self) -> FakeQuery:
        self.single_mode = "maybe"
        return self

    # -- execution ---------------------------------------------------------

    def _matches(self, row: dict) -> bool:
        return all(predicate(row) != negate for negate, predicate in self.filters)

    async def execute(self) -> FakeResponse | None:
        self.db.calls.append((self.operation, self.table, self.payload))
        if self.table in self.db.failing_tables:
            raise api_error(f"{self.table} unavailable")

        rows = self.db.tables.setdefault(self.table, [])
        if self.operation == "insert":
            return FakeResponse([self.db.add(self.table, row) for row in _as_list(self.payload)])
        if self.operation == "upsert":
            return FakeResponse([self.db.upsert(self.table, row, self.on_conflict) for row in _as_list(self.payload)])
        if self.operation == "update":
            matched = [row for row in rows if self._matches(row)]
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(row) for row in matched])
        if self.operation == "delete":
            matched = [row for row in rows if self._matches(row)]
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResponse([dict(row) for row in matched])

        result = [dict(row) for row in rows if self._matches(row)]
        for column, desc in reversed(self.order_by):
            result.sort(key=lambda row, c=column: (row.get(c) is None, str(row.get(c))), reverse=desc)
        count = len(result) if self.count_mode else None
        if self.range_bounds:
            result = result[self.range_bounds[0] : self.range_bounds[1] + 1]
        if self.limit_n is not None:
            result = result[: self.limit_n]

        if self.single_mode == "maybe":
            return FakeResponse(result[0], count) if result else None
        if self.single_mode == "single":
            if len(result) != 1:
                raise api_error("JSON object requested, multiple (or no) rows returned", "PGRST116")
            return FakeResponse(result[0], count)
        if self.head:
            return FakeResponse([], count)
        return FakeResponse(result, count)


def _as_list(rows: dict | list[dict]) -> list[dict]:
    return rows if isinstance(rows, list) else [rows]


class FakeRpc:
    def __init__(self, db: FakeSupabase, name: str, params: dict) -> None:
        self.db = db
        self.name = name
        self.params = params

    async def execute(self) -> FakeResponse:
        self.db.calls.append(("rpc", self.name, self.params))
        if self.name not in self.db.rpc_results:
            raise api_error(f"Could not find the function public.{self.name}", "PGRST202")
        result = self.db.rpc_results[self.name]
        if isinstance(result, Exception):
            raise result
        if callable(result):
            result = result(self.params)
        return FakeResponse(result)


class FakeBucket:
    def __init__(self, storage: FakeStorage, bucket: str) -> None:
        self.storage = storage
        self.bucket = bucket

    async def upload(self, path: str, content: bytes, _options: dict | None = None) -> None:
        self.storage.objects[path] = content

    async def get_public_url(self, path: str) -> str:
        return f"https://project.supabase.co/storage/v1/object/public/{self.bucket}/{path}"

    async def remove(self, paths: list[str]) -> list[dict]:
        self.storage.removed.extend(paths)
        for path in paths:
            self.storage.objects.pop(path, None)
        return []


class FakeStorage:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.removed: list[str] = []

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


class FakeAuthAdmin:
    def __init__(self) -> None:
        self.signed_out: list[str] = []

    async def sign_out(self, jwt: str, scope: str = "global") -> None:  # noqa: ARG002
        self.signed_out.append(jwt)


class FakeUserClient:
    """The fake seen through a user-scoped client: RPCs are recorded with the caller's token."""

    def __init__(self, db: FakeSupabase, access_token: str) -> None:
        self.db = db
        self.access_token = access_token

    def rpc(self, name: str, params: dict | None = None) -> FakeRpc:
        self.db.user_rpcs.append((name, self.access_token))
        return self.db.rpc(name, params)


class FakeSupabase:
    """In-memory stand-in for ``supabase.AsyncClient``."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict]] = {}
        self.rpc_results: dict[str, Any] = {}
        self.failing_tables: set[str] = set()
        self.calls: list[tuple[str, str, Any]] = []
        self.storage = FakeStorage()
        self.user_rpcs: list[tuple[str, str]] = []
        self.auth = SimpleNamespace(admin=FakeAuthAdmin())

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def as_user(self, access_token: str) -> FakeUserClient:
        return FakeUserClient(self, access_token)

    def rpc(self, name: str, params: dict | None = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})

    def add(self, table: str, row: dict) -> dict:
        stored = {"id": str(uuid.uuid4()), **row}
        self.tables.setdefault(table, []).append(stored)
        return dict(stored)

    def upsert(self, table: str, row: dict, on_conflict: str | None) -> dict:
        keys = (on_conflict or "id").split(",")
        for existing in self.tables.setdefault(table, []):
            if all(existing.get(k) == row.get(k) for k in keys):
                existing.update(row)
                return dict(existing)
        return self.add(table, row)

    def calls_to(self, operation: str, name: str) -> list[Any]:
        return [payload for op, target, payload in self.calls if op == operation and target == name]


# ---------------------------------------------------------------------------
# Supabase Auth fake (the anon-key client used for sign-in)
# ---------------------------------------------------------------------------


class FakeGoTrue:
    def __init__(self) -> None:
        self.users: dict[str, dict] = {}
        self.signed_out = 0
        self.sign_ups: list[dict] = []
        self.reset_requests: list[tuple[str, dict]] = []

    def add_user(self, user_id: str, email: str, password: str, **metadata: Any) -> None:  # noqa: ANN401
        self.users[email] = {"id": user_id, "email": email, "password": password, "metadata": metadata}

    def _session(self, user: dict) -> SimpleNamespace:
        return SimpleNamespace(
            user=SimpleNamespace(id=user["id"], email=user["email"], user_metadata=user["metadata"]),
            session=SimpleNamespace(access_token=f"access-{user['id']}", refresh_token=f"refresh-{user['id']}", expires_in=3600),
        )

    async def sign_in_with_password(self, credentials: dict) -> SimpleNamespace:
        user = self.users.get(credentials["email"])
        if user is None or user["password"] != credentials["password"]:
            raise FakeAuthError("Invalid login credentials")
        return self._session(user)

    async def refresh_session(self, refresh_token: str) -> SimpleNamespace:
        for user in self.users.values():
            if refresh_token == f"refresh-{user['id']}":
                return self._session(user)
        raise FakeAuthError("Invalid Refresh Token")

    async def sign_out(self) -> None:
        self.signed_out += 1

    async def sign_up(self, credentials: dict) -> SimpleNamespace:
        if credentials["email"] in self.users:
            raise FakeAuthError("User already registered")
        self.sign_ups.append(credentials)
        return SimpleNamespace(user=None, session=None)

    async def reset_password_for_email(self, email: str, options: dict) -> None:
        self.reset_requests.append((email, options))


# ---------------------------------------------------------------------------
# Edge function fake
# ---------------------------------------------------------------------------


class FakeEdgeFunctions:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict, str]] = []
        self.responses: dict[str, dict] = {}
        self.errors: dict[str, EdgeFunctionError] = {}

    async def invoke(self, function: str, payload: dict, token: str) -> dict:
        self.calls.append((function, payload, token))
        if function in self.errors:
            raise self.errors[function]
        return self.responses.get(function, {})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def fake_functions() -> FakeEdgeFunctions:
    return FakeEdgeFunctions()


@pytest.fixture
def gotrue(monkeypatch: pytest.MonkeyPatch) -> FakeGoTrue:
    """Replace the anon-key auth client used for sign-in, sign-up and refresh."""
    fake = FakeGoTrue()

    async def _create_auth_client() -> SimpleNamespace:
        return SimpleNamespace(auth=fake)

    monkeypatch.setattr("planmoni_admin.auth.service.create_auth_client", _create_auth_client)
    return fake


@pytest.fixture(autouse=True)
def user_clients(monkeypatch: pytest.MonkeyPatch, fake_supabase: FakeSupabase) -> FakeSupabase:
    """Route user-scoped clients (``is_super_admin()`` and friends) to the shared fake."""

    async def _create_user_client(access_token: str) -> FakeUserClient:
        return fake_supabase.as_user(access_token)

    monkeypatch.setattr("planmoni_admin.auth.dependencies.create_user_client", _create_user_client)
    return fake_supabase


@pytest.fixture
def admin() -> CurrentAdmin:
    """A super admin, allowed through every permission check."""
    return CurrentAdmin(
        id="admin-1",
        email="admin@planmoni.com",
        access_token="admin-access-token",
        roles=list(SUPER_ADMIN_ROLES),
        is_admin_flag=True,
        is_super_admin=True,
    )


@pytest.fixture
def app(fake_supabase: FakeSupabase, fake_functions: FakeEdgeFunctions):  # noqa: ANN201
    application = create_app()
    application.dependency_overrides[get_supabase] = lambda: fake_supabase
    application.dependency_overrides[get_edge_functions] = lambda: fake_functions
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:  # noqa: ANN001
    """Unauthenticated HTTP client over the ASGI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authed_client(app, client: AsyncClient, admin: CurrentAdmin) -> AsyncClient:  # noqa: ANN001
    """Client whose requests resolve to the ``admin`` fixture."""
    app.dependency_overrides[get_current_admin] = lambda: admin
    client.headers["Authorization"] = f"Bearer {admin.access_token}"
    return client


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the login lockout counters."""

    def __init__(self) -> None:
        self.values: dict[str, int] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        value = self.values.get(key)
        return None if value is None else str(value)

    async def incr(self, key: str) -> int:
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]

    async def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return True

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.values.pop(key, None) is not None)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


def use_limited_admin(app, permissions: list[dict] | None = None) -> CurrentAdmin:  # noqa: ANN001
    """Swap the request's admin for a plain Admin holding only ``permissions``."""
    limited = CurrentAdmin(
        id="admin-2",
        email="staff@planmoni.com",
        access_token="staff-access-token",
        permissions=permissions or [],
        roles=list(ADMIN_ROLES),
    )
    app.dependency_overrides[get_current_admin] = lambda: limited
    return limited
