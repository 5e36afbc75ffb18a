"""
Shared test fixtures.

FakeSupabaseClient is an in-memory stand-in for the Supabase query builder:
filters, ordering, limits, generated ids and unique constraints that fail
with PostgREST's unique-violation code.
"""

import sys
from pathlib import Path

# Add project root to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import copy
import re
import pytest
from unittest.mock import patch
from contextlib import ExitStack
from datetime import datetime, timezone
from typing import Callable, Generator, Optional


# ===================
# FAKE SUPABASE CLIENT
# ===================

class FakeAPIError(Exception):
    """Shaped like postgrest.APIError: carries `code` and `message`."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class FakeResponse:
    def __init__(self, data, count: Optional[int] = None):
        self.data = data
        self.count = count


UNIQUE_COLUMNS = {
    "manufacturers": ["name"],
    "products": ["product_code"],
    "orders": ["order_number"],
    "shopping_mall_templates": ["mall_name"],
}


class FakeQuery:
    """Chainable query; nothing touches the store until execute()."""

    def __init__(self, client: "FakeSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._op = "select"
        self._payload = None
        self._columns = "*"
        self._count = None
        self._filters: list[Callable[[dict], bool]] = []
        self._order: list[tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._range: Optional[tuple[int, int]] = None
        self._single = False

    # ---- operations ----

    def select(self, columns: str = "*", count: Optional[str] = None):
        self._op = "select"
        self._columns = columns
        self._count = count
        return self

    def insert(self, data):
        self._op = "insert"
        self._payload = data
        return self

    def update(self, data: dict):
        self._op = "update"
        self._payload = data
        return self

    def delete(self):
        self._op = "delete"
        return self

    # ---- filters ----

    def eq(self, column, value):
        self._filters.append(lambda r: r.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda r: r.get(column) != value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda r: r.get(column) in allowed)
        return self

    def is_(self, column, value):
        if value in ("null", None):
            self._filters.append(lambda r: r.get(column) is None)
        else:
            self._filters.append(lambda r: r.get(column) is value)
        return self

    def ilike(self, column, pattern: str):
        # SQL LIKE: % is any run, _ is any one character, case-insensitive
        regex = re.compile(
            "".join(".*" if ch == "%" else "." if ch == "_" else re.escape(ch) for ch in pattern),
            re.IGNORECASE | re.DOTALL,
        )
        self._filters.append(lambda r: r.get(column) is not None and regex.fullmatch(str(r.get(column))) is not None)
        return self

    # ---- modifiers ----

    def order(self, column, desc: bool = False, **kwargs):
        self._order.append((column, desc))
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def range(self, start: int, end: int):
        self._range = (start, end)
        return self

    def single(self):
        self._single = True
        return self

    # ---- execution ----

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def _project(self, row: dict) -> dict:
        if self._columns.strip() == "*":
            return copy.deepcopy(row)
        names = [c.strip() for c in self._columns.split(",") if c.strip()]
        return {name: copy.deepcopy(row.get(name)) for name in names}

    def execute(self) -> FakeResponse:
        self._client.calls.append((self._table, self._op))
        failure = self._client.failures.get((self._table, self._op))
        if failure is not None:
            raise failure

        if self._op == "insert":
            return FakeResponse(self._client._insert(self._table, self._payload))
        if self._op == "update":
            return FakeResponse(self._client._update(self._table, self._matches, self._payload))
        if self._op == "delete":
            return FakeResponse(self._client._delete(self._table, self._matches))

        rows = [r for r in self._client.tables.setdefault(self._table, []) if self._matches(r)]
        for column, desc in reversed(self._order):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        total = len(rows)
        if self._range is not None:
            rows = rows[self._range[0]:self._range[1] + 1]
        if self._limit is not None:
            rows = rows[:self._limit]
        if self._client.max_rows is not None:
            rows = rows[:self._client.max_rows]

        data = [self._project(r) for r in rows]
        if self._single:
            if len(data) != 1:
                raise FakeAPIError("JSON object requested, multiple (or no) rows returned", code="PGRST116")
            return FakeResponse(data[0], total if self._count else None)
        return FakeResponse(data, total if self._count else None)


class FakeSupabaseClient:
    """
    In-memory Supabase client.

    Usage:
        fake_db.seed("manufacturers", [{"name": "Acme"}])
        fake_db.rows("manufacturers")
        fake_db.before_insert["products"] = lambda row: ...  # race simulation
        fake_db.failures[("orders", "update")] = Exception("boom")
        fake_db.max_rows = 2  # responses truncated like PostgREST max-rows
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.before_insert: dict[str, Callable[[dict], None]] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.calls: list[tuple[str, str]] = []
        # Per-response row cap, like PostgREST max-rows
        self.max_rows: Optional[int] = None
        self._next_id = 1

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def seed(self, table: str, rows: list[dict]) -> list[dict]:
        stored = []
        for row in rows:
            record = dict(row)
            if "id" not in record:
                record["id"] = self._allocate_id()
            else:
                self._next_id = max(self._next_id, record["id"] + 1)
            self.tables.setdefault(table, []).append(record)
            stored.append(record)
        return stored

    def rows(self, table: str) -> list[dict]:
        return self.tables.get(table, [])

    def _allocate_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def _check_unique(self, table: str, row: dict, ignore_id=None):
        for column in UNIQUE_COLUMNS.get(table, []):
            value = row.get(column)
            if value is None:
                continue
            for existing in self.tables.get(table, []):
                if existing["id"] != ignore_id and existing.get(column) == value:
                    raise FakeAPIError(
                        f'duplicate key value violates unique constraint "{table}_{column}_key"',
                        code="23505",
                    )

    def _insert(self, table: str, payload) -> list[dict]:
        rows = payload if isinstance(payload, list) else [payload]
        hook = self.before_insert.get(table)
        now = datetime.now(timezone.utc).isoformat()
        created = []
        for row in rows:
            if hook is not None:
                hook(dict(row))
            self._check_unique(table, row)
            record = {"id": self._allocate_id(), "created_at": now, **copy.deepcopy(row)}
            self.tables.setdefault(table, []).append(record)
            created.append(copy.deepcopy(record))
        return created

    def _update(self, table: str, matches, patch: dict) -> list[dict]:
        updated = []
        for record in self.tables.get(table, []):
            if matches(record):
                self._check_unique(table, {**record, **patch}, ignore_id=record["id"])
                record.update(copy.deepcopy(patch))
                updated.append(copy.deepcopy(record))
        return updated

    def _delete(self, table: str, matches) -> list[dict]:
        kept, removed = [], []
        for record in self.tables.get(table, []):
            (removed if matches(record) else kept).append(record)
        self.tables[table] = kept
        return removed


# ===================
# FIXTURES
# ===================

CLIENT_MODULES = [
    "config.database",
    "services.manufacturer_service",
    "services.product_service",
    "services.order_service",
    "services.upload_service",
    "services.shopping_mall_template_service",
]

SINGLETONS = [
    ("services.manufacturer_service", "_manufacturer_service"),
    ("services.product_service", "_product_service"),
    ("services.order_service", "_order_service"),
    ("services.upload_service", "_service"),
    ("services.shopping_mall_template_service", "_service"),
    ("services.manufacturer_import_service", "_service"),
    ("services.product_import_service", "_service"),
    ("services.shopping_mall_import_service", "_service"),
    ("services.shopping_mall_export_service", "_service"),
]


@pytest.fixture
def fake_db(monkeypatch) -> Generator[FakeSupabaseClient, None, None]:
    """
    Patch every get_supabase_client() with one in-memory client.

    Usage:
        def test_something(fake_db):
            fake_db.seed("products", [...])
            # any service created now reads and writes fake_db
    """
    import importlib

    client = FakeSupabaseClient()
    for module_name, attr in SINGLETONS:
        monkeypatch.setattr(importlib.import_module(module_name), attr, None)

    with ExitStack() as stack:
        for module_name in CLIENT_MODULES:
            stack.enter_context(
                patch(f"{module_name}.get_supabase_client", return_value=client)
            )
        yield client


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client(fake_db):
    """
    FastAPI test client backed by the in-memory database.

    Usage:
        def test_endpoint(test_client, fake_db):
            response = test_client.get("/health")
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
