import threading
from contextlib import asynccontextmanager
from typing import List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from query_service.core.config import Settings
from query_service.core.database import create_db_engine, init_db
from query_service.core.engine import SqlQueryEngine
from query_service.core.schemas import QueryResult
from query_service.main import create_app

SECRET = "secret"

# Reserved statement that makes the slow test engine stall
DELAY_TRIGGER = "SLEEP"


def make_settings(**overrides) -> Settings:
    # Ignore any .env on the developer machine
    values = {"API_TOKEN": "", "DEV_MODE": False, "DATABASE_URL": "sqlite://"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class RecordingAuditSink:
    def __init__(self):
        self.records: List[str] = []

    def record(self, sql: str) -> None:
        self.records.append(sql)


class BrokenAuditSink:
    def record(self, sql: str) -> None:
        raise RuntimeError("audit backend is down")


class SlowEngine:
    """Real engine that stalls on the delay trigger until cancelled or 200ms pass."""

    def __init__(self, inner: SqlQueryEngine, delay: float = 0.2):
        self.inner = inner
        self.delay = delay

    def execute(self, sql, limit=0, offset=0, cancelled=None):
        if sql == DELAY_TRIGGER:
            (cancelled or threading.Event()).wait(self.delay)
            return QueryResult(columns=["slept"], rows=[[True]])
        return self.inner.execute(sql, limit, offset, cancelled)


class HangingEngine:
    """Never answers until the test releases it."""

    def __init__(self):
        self.release = threading.Event()
        self.started = threading.Event()
        self.saw_cancel = threading.Event()

    def execute(self, sql, limit=0, offset=0, cancelled=None):
        self.started.set()
        self.release.wait(5)
        if cancelled is not None and cancelled.is_set():
            self.saw_cancel.set()
        return QueryResult(columns=["late"], rows=[["stale"]])


@asynccontextmanager
async def client_for(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
def sql_engine() -> SqlQueryEngine:
    db_engine = create_db_engine("sqlite://")
    init_db(db_engine, seed=True)
    yield SqlQueryEngine(db_engine)
    db_engine.dispose()


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def hanging_engine():
    engine = HangingEngine()
    yield engine
    # Let the worker thread finish so the interpreter can exit
    engine.release.set()


# Dev mode client with the slow engine wired in
@pytest_asyncio.fixture(scope="function")
async def client(sql_engine, audit_sink):
    app = create_app(
        make_settings(DEV_MODE=True),
        engine=SlowEngine(sql_engine),
        audit=audit_sink,
    )
    async with client_for(app) as ac:
        yield ac


# Client with a shared secret and dev mode off
@pytest_asyncio.fixture(scope="function")
async def secured_client(sql_engine, audit_sink):
    app = create_app(make_settings(API_TOKEN=SECRET), engine=sql_engine, audit=audit_sink)
    async with client_for(app) as ac:
        yield ac


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {SECRET}"}


def build_app(engine=None, audit: Optional[object] = None, **settings):
    return create_app(make_settings(**settings), engine=engine, audit=audit)
