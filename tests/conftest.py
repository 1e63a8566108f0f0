"""
PrismPath API - test configuration and fixtures
"""
import copy
import os
from types import SimpleNamespace

import pytest

# Tests always run against the in-memory store with no AI keys
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_KEY"] = ""
os.environ["MOCK_STORE_PATH"] = ""
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["GEMINI_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["TOGETHER_API_KEY"] = ""
os.environ["FRONTEND_URL"] = "http://localhost:5173"

from fastapi.testclient import TestClient  # noqa: E402

from prismpath.config import get_settings  # noqa: E402
from prismpath.dependencies import rate_limit  # noqa: E402
from prismpath.main import app  # noqa: E402
from prismpath.schemas.auth import UserProfile  # noqa: E402
from prismpath.services.identity import IdentityService, get_identity_service  # noqa: E402
from prismpath.services.mock_store import MockStore  # noqa: E402
from prismpath.services.student_service import (  # noqa: E402
    BackendAvailability,
    StudentService,
    get_student_service,
)

PARENT_UID = "parent-1"


# ----------------------------------------------------------------------
# Fake Supabase client
# ----------------------------------------------------------------------

class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.descending = False
        self.limit_n = None
        self.on_conflict = None

    def select(self, *columns):
        self.action = "select"
        return self

    def eq(self, column, value):
        self.filters.append(("eq", column, value))
        return self

    def contains(self, column, value):
        self.filters.append(("contains", column, value))
        return self

    def ilike(self, column, value):
        self.filters.append(("ilike", column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = column
        self.descending = desc
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def insert(self, record):
        self.action = "insert"
        self.payload = record
        return self

    def update(self, changes):
        self.action = "update"
        self.payload = changes
        return self

    def upsert(self, record, on_conflict="id"):
        self.action = "upsert"
        self.payload = record
        self.on_conflict = on_conflict
        return self

    def _matches(self, row):
        for op, column, value in self.filters:
            current = row.get(column)
            if op == "eq" and current != value:
                return False
            if op == "contains" and not all(v in (current or []) for v in value):
                return False
            if op == "ilike" and str(current or "").lower() != str(value).lower():
                return False
        return True

    def execute(self):
        self.db.calls.append((self.table_name, self.action, list(self.filters)))
        if self.db.fail:
            raise ConnectionError("remote backend unreachable")

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.action == "insert":
            rows.append(copy.deepcopy(self.payload))
            data = [self.payload]
        elif self.action == "update":
            data = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.payload))
                    data.append(row)
        elif self.action == "upsert":
            key = self.on_conflict
            existing = next((r for r in rows if r.get(key) == self.payload.get(key)), None)
            if existing is not None:
                existing.update(copy.deepcopy(self.payload))
                data = [existing]
            else:
                rows.append(copy.deepcopy(self.payload))
                data = [self.payload]
        else:
            data = [r for r in rows if self._matches(r)]
            if self.order_by:
                data.sort(key=lambda r: r.get(self.order_by) or "", reverse=self.descending)
            if self.limit_n:
                data = data[:self.limit_n]

        return SimpleNamespace(data=copy.deepcopy(data))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.fail = False

    def table(self, name):
        return FakeQuery(self, name)


# ----------------------------------------------------------------------
# Store / service fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def mock_store():
    store = MockStore()
    store.upsert_user({
        "uid": PARENT_UID,
        "role": "parent",
        "school_id": "home_school",
        "name": "Pat Parent",
        "email": "parent@demo.school",
        "is_active": True,
    })
    return store


@pytest.fixture
def service(mock_store):
    return StudentService(remote=None, mock=mock_store, availability=BackendAvailability(health_check=None))


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def identity(service):
    return IdentityService(service, get_settings())


@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limit.generate_limiter.reset()
    rate_limit.transition_limiter.reset()
    yield


@pytest.fixture
def client(service, identity):
    app.dependency_overrides[get_student_service] = lambda: service
    app.dependency_overrides[get_identity_service] = lambda: identity
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ----------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------

def profile_for(store, uid):
    return UserProfile(**store.get_user(uid))


@pytest.fixture
def admin(mock_store):
    return profile_for(mock_store, "admin-1")


@pytest.fixture
def teacher(mock_store):
    return profile_for(mock_store, "teacher-1")


@pytest.fixture
def sped(mock_store):
    return profile_for(mock_store, "sped-1")


@pytest.fixture
def parent(mock_store):
    return profile_for(mock_store, PARENT_UID)


def bearer(identity, uid):
    return {"Authorization": f"Bearer {identity.issue_local_token(uid)}"}


@pytest.fixture
def admin_headers(identity):
    return bearer(identity, "admin-1")


@pytest.fixture
def teacher_headers(identity):
    return bearer(identity, "teacher-1")


@pytest.fixture
def sped_headers(identity):
    return bearer(identity, "sped-1")


@pytest.fixture
def parent_headers(identity):
    return bearer(identity, PARENT_UID)
