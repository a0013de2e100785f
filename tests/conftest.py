"""Pytest configuration and fixtures."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key-test")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-key-test")
os.environ.setdefault("LLM_GATEWAY_API_KEY", "gateway-key-test")


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings for every test so env patches take effect."""
    from finplan.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx AsyncClient."""
    client = AsyncMock()
    client.request = AsyncMock()
    client.get = AsyncMock()
    client.aclose = AsyncMock()
    return client


def make_http_response(status_code=200, json_data=None, content=None, headers=None):
    """Build a MagicMock shaped like an httpx.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.headers = headers or {}
    if json_data is not None:
        response.json.return_value = json_data
        response.content = b"{}"
        response.text = "{}"
    else:
        response.content = content if content is not None else b""
        response.text = response.content.decode("latin-1") if response.content else ""
        response.json.side_effect = ValueError("no json")
    return response


@pytest.fixture
def http_response():
    return make_http_response


@pytest.fixture
def mock_gateway():
    """A GatewayClient stand-in whose ``generate`` is an AsyncMock."""
    gateway = MagicMock()
    gateway.generate = AsyncMock()
    gateway.close = AsyncMock()
    return gateway


@pytest.fixture
def plan_rows():
    """Plan item rows for the week of 2025-01-06 (Monday)."""
    return [
        {
            "id": "p1",
            "title": "Sprint planning",
            "start_at": "2025-01-06T09:00:00Z",
            "end_at": "2025-01-06T11:00:00Z",
            "status": "done",
            "tags": ["İş"],
        },
        {
            "id": "p2",
            "title": "Email",
            "start_at": "2025-01-06T13:00:00Z",
            "end_at": "2025-01-06T13:30:00Z",
            "status": "planned",
            "tags": [],
        },
        {
            "id": "p3",
            "title": "Gym",
            "start_at": "2025-01-07T18:00:00Z",
            "end_at": "2025-01-07T19:00:00Z",
            "status": "done",
            "tags": ["Spor"],
        },
    ]


class FakeQuery:
    """Records a chained table query and answers it from FakeBaaS."""

    def __init__(self, baas, table):
        self.baas = baas
        self.table = table
        self.calls = []

    def __getattr__(self, name):
        def chain(*args, **kwargs):
            self.calls.append((name, args))
            return self

        return chain

    def args(self, name):
        """Arguments of every call to ``name`` on this query."""
        return [args for call, args in self.calls if call == name]

    @property
    def kind(self):
        for call, _ in self.calls:
            if call in ("insert", "update", "upsert"):
                return call
        return "select"

    async def execute(self):
        self.baas.executed.append(self)
        return self.baas.respond(self)


class FakeBaaS:
    """BaaSClient stand-in with per-table canned results.

    Queued results are returned in order; exceptions are raised. With the
    queue empty, inserts echo the row with a generated id and selects
    return no rows.
    """

    def __init__(self):
        self.executed = []
        self.responses = {}

    def queue(self, table, *results):
        self.responses.setdefault(table, []).extend(results)

    def table(self, name):
        return FakeQuery(self, name)

    def queries(self, table, kind=None):
        return [q for q in self.executed if q.table == table and (kind is None or q.kind == kind)]

    def respond(self, query):
        pending = self.responses.get(query.table)
        if pending:
            result = pending.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        if query.kind == "insert":
            row = query.args("insert")[0][0]
            return {"id": f"{query.table}-{len(self.executed)}", **row}
        if query.args("maybe_single"):
            return None
        return []


@pytest.fixture
def fake_baas():
    return FakeBaaS()
