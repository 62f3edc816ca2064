"""
pytest configuration and shared fixtures for the Apex Dashboard API tests.

Tests must not require a live MongoDB or RPC node. We achieve this by:
  1. Patching connect_to_mongo / close_mongo_connection to no-ops and
     leaving db_client disconnected.
  2. Overriding the get_db dependency with an in-memory FakeDB that
     understands the filters, projections and sorts this app issues.
  3. Overriding get_rpc_caller with a FakeRpcCaller whose reply (or
     failure) each test sets.
"""

import copy
import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("APP_CORE_RPC", "http://rpc.test/")


# ── In-memory Motor stand-in ──────────────────────────────────────────────────

def _matches(doc, query):
    for key, cond in (query or {}).items():
        present = key in doc
        value = doc.get(key)
        if isinstance(cond, dict) and any(k.startswith("$") for k in cond):
            for op, operand in cond.items():
                if op == "$gte":
                    if not present or value is None or not value >= operand:
                        return False
                elif op == "$ne":
                    if value == operand:
                        return False
                else:
                    raise NotImplementedError(op)
        elif value != cond:
            return False
    return True


def _project(doc, projection):
    if not projection:
        return copy.deepcopy(doc)
    included = {k for k, v in projection.items() if v}
    out = {k: copy.deepcopy(v) for k, v in doc.items() if k in included}
    if projection.get("_id", 1) and "_id" in doc:
        out["_id"] = doc["_id"]
    return out


def _sorted(docs, sort):
    for key, direction in reversed(sort or []):
        docs = sorted(
            docs,
            key=lambda d: (d.get(key) is not None, d.get(key)),
            reverse=direction < 0,
        )
    return docs


class FakeCursor:
    def __init__(self, docs, projection):
        self._docs = docs
        self._projection = projection
        self._sort = []
        self._limit = 0

    def sort(self, key, direction=1):
        self._sort = key if isinstance(key, list) else [(key, direction)]
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def __aiter__(self):
        docs = _sorted(self._docs, self._sort)
        if self._limit:
            docs = docs[: self._limit]
        for doc in docs:
            yield _project(doc, self._projection)


class FakeCollection:
    def __init__(self):
        self.docs = []
        self.find_calls = []

    def seed(self, *docs):
        for doc in docs:
            self.docs.append({"_id": ObjectId(), **doc})

    def find(self, query=None, projection=None):
        self.find_calls.append((query, projection))
        return FakeCursor([d for d in self.docs if _matches(d, query)], projection)

    async def find_one(self, query=None, sort=None):
        docs = _sorted([d for d in self.docs if _matches(d, query)], sort)
        return copy.deepcopy(docs[0]) if docs else None

    async def insert_one(self, doc):
        doc = {"_id": ObjectId(), **doc}
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def replace_one(self, query, replacement, upsert=False):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                self.docs[i] = {"_id": doc["_id"], **copy.deepcopy(replacement)}
                return SimpleNamespace(matched_count=1, upserted_id=None)
        if upsert:
            new_id = query.get("_id", ObjectId())
            self.docs.append({"_id": new_id, **copy.deepcopy(replacement)})
            return SimpleNamespace(matched_count=0, upserted_id=new_id)
        return SimpleNamespace(matched_count=0, upserted_id=None)

    async def delete_many(self, query):
        keep = [d for d in self.docs if not _matches(d, query)]
        deleted = len(self.docs) - len(keep)
        self.docs = keep
        return SimpleNamespace(deleted_count=deleted)


class FakeDB:
    def __init__(self):
        self._cols = {}

    def __getitem__(self, name):
        if name not in self._cols:
            self._cols[name] = FakeCollection()
        return self._cols[name]


class FailingDB:
    """Every collection access blows up, like an unreachable server."""

    def __getitem__(self, name):
        raise ConnectionError(f"store unreachable ({name})")


class FakeRpcCaller:
    """Stands in for RpcCaller; set .response or .error per test."""

    def __init__(self, url="http://rpc.test/"):
        self.url = url
        self.response = None
        self.error = None
        self.commands = []

    async def call(self, command):
        self.commands.append(command)
        if self.error is not None:
            raise self.error
        return self.response


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def mock_db():
    """
    Keep the real MongoDB lifecycle out of every test.

    Tests that talk to the store use the fake_db fixture through
    dependency overrides instead.
    """
    with (
        patch("apex_api.core.database.connect_to_mongo", new_callable=AsyncMock),
        patch("apex_api.core.database.close_mongo_connection", new_callable=AsyncMock),
    ):
        import apex_api.core.database as db_module

        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from apex_api.core.rate_limit import limiter

    limiter.reset()
    yield


@pytest.fixture()
def fake_db():
    return FakeDB()


@pytest.fixture()
def failing_db():
    return FailingDB()


@pytest.fixture()
def rpc_stub():
    return FakeRpcCaller()


@pytest.fixture()
async def client(mock_db):  # noqa: ARG001 — mock_db must run first
    """HTTPX client against the app with no database (disconnected)."""
    from apex_api.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def api_client(fake_db, rpc_stub):
    """HTTPX client with get_db → fake_db and get_rpc_caller → rpc_stub."""
    from apex_api.core.database import get_db
    from apex_api.core.rpc import get_rpc_caller
    from apex_api.main import app

    app.dependency_overrides[get_db] = lambda: fake_db
    app.dependency_overrides[get_rpc_caller] = lambda: rpc_stub
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
