"""
Shared fixtures: in-memory MongoDB collections and a Xilnex service backed by
httpx.MockTransport. No network, no running mongod.
"""

import copy
import re
import itertools

import httpx
import pytest
from pymongo.errors import DuplicateKeyError

from services.xilnex_client import XilnexService


_object_ids = itertools.count(1)


def _matches(doc: dict, query: dict) -> bool:
    for key, expected in query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in expected):
                return False
            continue

        value = doc.get(key)
        if isinstance(expected, dict):
            if "$ne" in expected and value == expected["$ne"]:
                return False
            if "$regex" in expected:
                flags = re.IGNORECASE if "i" in expected.get("$options", "") else 0
                if value is None or not re.search(expected["$regex"], str(value), flags):
                    return False
            if "$type" in expected and expected["$type"] == "string" and not isinstance(value, str):
                return False
        elif value != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs.sort(key=lambda d: (d.get(key) is None, d.get(key) or ""), reverse=direction == -1)
        return self

    def skip(self, n):
        self._docs = self._docs[n:]
        return self

    def limit(self, n):
        self._docs = self._docs[:n]
        return self

    async def to_list(self, length=None):
        return self._docs if length is None else self._docs[:length]


class FakeCollection:
    """Subset of motor's AsyncIOMotorCollection used by the app"""

    def __init__(self, unique_fields=()):
        self.docs = []
        self.unique_fields = unique_fields
        self.fail_inserts_with = None
        self.fail_finds_with = None

    def _check_unique(self, candidate, ignore=None):
        for field in self.unique_fields:
            value = candidate.get(field)
            if value is None:
                continue
            for doc in self.docs:
                if doc is not ignore and doc.get(field) == value:
                    raise DuplicateKeyError(f"E11000 duplicate key error dup key: {{ {field}: {value!r} }}")

    @staticmethod
    def _public(doc):
        out = copy.deepcopy(doc)
        out.pop("_id", None)
        return out

    async def find_one(self, query, projection=None):
        if self.fail_finds_with is not None:
            raise self.fail_finds_with
        for doc in self.docs:
            if _matches(doc, query):
                return self._public(doc)
        return None

    def find(self, query=None, projection=None):
        return FakeCursor([self._public(d) for d in self.docs if _matches(d, query or {})])

    async def insert_one(self, doc):
        if self.fail_inserts_with is not None:
            raise self.fail_inserts_with
        self._check_unique(doc)
        doc["_id"] = f"oid-{next(_object_ids)}"
        self.docs.append(copy.deepcopy(doc))

    async def update_one(self, query, update):
        for doc in self.docs:
            if _matches(doc, query):
                updated = {**doc, **update.get("$set", {})}
                self._check_unique(updated, ignore=doc)
                doc.update(update.get("$set", {}))
                return
        return

    async def delete_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                self.docs.remove(doc)
                return

    async def delete_many(self, query):
        self.docs = [d for d in self.docs if not _matches(d, query)]

    async def count_documents(self, query):
        return sum(1 for d in self.docs if _matches(d, query))

    def aggregate(self, pipeline):
        group = pipeline[0]["$group"]
        field = group["_id"].lstrip("$")
        counts = {}
        for doc in self.docs:
            counts[doc.get(field)] = counts.get(doc.get(field), 0) + 1
        return FakeCursor([{"_id": k, "count": v} for k, v in counts.items()])


class FailingCollection(FakeCollection):
    async def find_one(self, query, projection=None):
        raise RuntimeError("mongo unavailable")


class FakeDatabase:
    def __init__(self):
        self.customers = FakeCollection(unique_fields=("id", "email", "externalClientId"))
        self.outlets = FakeCollection(unique_fields=("id", "code"))
        self.event_log = FakeCollection()


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def seeded_db(fake_db):
    fake_db.outlets.docs.append({"id": "o-1", "code": "MAIN", "name": "Main Store", "status": "active", "type": "store"})
    fake_db.outlets.docs.append({"id": "o-2", "code": "BR1", "name": "Branch 1", "status": "active", "type": "store"})
    return fake_db


class XilnexStub:
    """
    Scripted Xilnex upstream. `responses` maps "METHOD path" to an
    httpx.Response, an exception instance, or a callable(request).
    Unscripted creates answer 201 with an incrementing id.
    """

    def __init__(self):
        self.requests = []
        self.responses = {}
        self._ids = itertools.count(100)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.method} {request.url.path}"
        scripted = self.responses.get(key)
        if isinstance(scripted, Exception):
            raise scripted
        if callable(scripted):
            return scripted(request)
        if scripted is not None:
            return scripted
        if key == "POST /logic/v2/clients":
            return httpx.Response(201, json={"id": f"ext-{next(self._ids)}"})
        return httpx.Response(200, json={"ok": True})


@pytest.fixture
def xilnex_stub():
    return XilnexStub()


@pytest.fixture
def make_xilnex(xilnex_stub):
    """Factory: make_xilnex(database, enabled=True, **credentials)"""
    def _make(database=None, enabled=True, app_id="app-id", app_token="app-token", auth="auth-key"):
        service = XilnexService(
            api_url="https://xilnex.test",
            app_id=app_id,
            app_token=app_token,
            auth=auth,
            enabled=enabled,
            timeout=30.0,
            database=database,
            transport=httpx.MockTransport(xilnex_stub.handler),
        )
        return service

    return _make


@pytest.fixture
async def api(seeded_db, make_xilnex, monkeypatch):
    """
    In-process HTTP client on the FastAPI app, routes bound to the fake
    database. `api.xilnex` is the injected service (enabled by default).
    """
    import server
    from routes import customers, outlets

    monkeypatch.setattr(customers, "db", seeded_db)
    monkeypatch.setattr(outlets, "db", seeded_db)

    xilnex = make_xilnex(seeded_db)
    server.app.dependency_overrides[customers.get_xilnex_service] = lambda: xilnex

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=server.app),
        base_url="http://test"
    ) as http:
        http.xilnex = xilnex
        http.db = seeded_db
        yield http

    server.app.dependency_overrides.clear()
