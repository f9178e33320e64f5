import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

# Also add the project root to handle absolute imports
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.exceptions import ErrorKind, StoreOperationError  # noqa: E402
from core.fetcher import Document, FetchFailure  # noqa: E402
from core.models.chart import ChartEntry  # noqa: E402
from core.models.health import ScheduleStatus  # noqa: E402
from core.models.run import LogRecord  # noqa: E402
from core.models.snapshot import SNAPSHOT_KEY  # noqa: E402
from core.sources.base import ChartSource, SourceMetadata  # noqa: E402
from core.store import ChartStore  # noqa: E402

COLLECTED_AT = datetime(2024, 5, 1, 15, 0, 0, tzinfo=timezone(timedelta(hours=9)))


# HTTP fakes shaped like aiohttp's session/response

class FakeContent:
    def __init__(self, body: bytes) -> None:
        self.body = body

    async def iter_chunked(self, size: int):
        for start in range(0, len(self.body), size):
            yield self.body[start:start + size]


class FakeResponse:
    def __init__(self, status: int = 200, body: bytes = b"", charset: Optional[str] = "utf-8") -> None:
        self.status = status
        self.charset = charset
        self.content = FakeContent(body)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeSession:
    """Maps URLs to responses or to exceptions raised on request."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None) -> None:
        self.routes = routes or {}
        self.requests: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url: str, headers: Optional[Dict[str, str]] = None):
        self.requests.append({"url": url, "headers": dict(headers or {})})
        outcome = self.routes.get(url, FakeResponse(status=404))
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def close(self) -> None:
        self.closed = True


class FakeFetcher:
    """Stands in for ChartFetcher: returns canned markup per URL."""

    def __init__(self, pages: Optional[Dict[str, Any]] = None) -> None:
        self.pages = pages or {}
        self.fetched: List[str] = []
        self.entered = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.entered = False

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None):
        self.fetched.append(url)
        page = self.pages.get(url)
        if page is None:
            return FetchFailure(url=url, reason=ErrorKind.HTTP_STATUS, status=404)
        if isinstance(page, FetchFailure):
            return page
        return Document(url=url, status=200, text=page)


# Sources

def make_entry(rank: int, title: str = "Song", artist: str = "Artist", source_id: str = "melon",
               chart_type: Optional[str] = None, collected_at: datetime = COLLECTED_AT) -> ChartEntry:
    return ChartEntry(
        rank=rank,
        title=title,
        artist=artist,
        source_id=source_id,
        collected_at=collected_at,
        chart_type=chart_type,
    )


class FakeSource(ChartSource):
    def __init__(self, source_id: str, entries: Optional[List[ChartEntry]] = None, delay: float = 0,
                 error: Optional[Exception] = None, outcomes: Optional[List[Any]] = None,
                 crash: Optional[Exception] = None) -> None:
        super().__init__()
        self.source_id = source_id
        self.entries = entries or []
        self.delay = delay
        self.error = error
        self.outcomes = list(outcomes or [])
        self.crash = crash
        self.calls = 0

    def get_metadata(self) -> SourceMetadata:
        return SourceMetadata(self.source_id, self.source_id.title(), f"https://{self.source_id}.example")

    async def crawl(self, fetcher):
        if self.crash is not None:
            raise self.crash
        return await super().crawl(fetcher)

    async def collect(self, fetcher) -> List[ChartEntry]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return list(outcome)
        if self.error is not None:
            raise self.error
        return list(self.entries)


class FakeRegistry:
    def __init__(self, sources: List[ChartSource]) -> None:
        self.sources = {source.source_id: source for source in sources}

    def get_sources(self, names=None, config=None) -> List[ChartSource]:
        if names is None:
            names = list(self.sources)
        return [self.sources[name] for name in names]

    def list_available_sources(self) -> List[str]:
        return list(self.sources)


# Stores

class FakeStore(ChartStore):
    """In-memory store with switchable failures."""

    def __init__(self) -> None:
        self.logs: List[LogRecord] = []
        self.snapshots: Dict[str, Dict[str, Any]] = {}
        self.schedule: Optional[ScheduleStatus] = None
        self.next_run: Optional[str] = None
        self.fail_appends_for: set = set()
        self.fail_upsert = False
        self.fail_reads = False

    def append_log(self, record: LogRecord) -> None:
        if record.source_id in self.fail_appends_for:
            raise StoreOperationError("insert", "crawler_logs", RuntimeError("insert rejected"))
        self.logs.append(record)

    def upsert_snapshot(self, snapshot, key: str = SNAPSHOT_KEY) -> None:
        if self.fail_upsert:
            raise StoreOperationError("upsert", "admin_settings", RuntimeError("upsert rejected"))
        self.snapshots[key] = snapshot.to_dict()

    def get_recent_logs(self, limit: int = 20) -> List[LogRecord]:
        if self.fail_reads:
            raise StoreOperationError("select", "crawler_logs", RuntimeError("connection refused"))
        ordered = sorted(self.logs, key=lambda log: log.created_at, reverse=True)
        return ordered[:limit]

    def get_schedule_status(self, job_name: str) -> Optional[ScheduleStatus]:
        if self.fail_reads:
            raise StoreOperationError("select", "cron_jobs", RuntimeError("connection refused"))
        return self.schedule

    def get_snapshot(self, key: str = SNAPSHOT_KEY) -> Optional[Dict[str, Any]]:
        return self.snapshots.get(key)

    def get_next_run(self) -> Optional[str]:
        return self.next_run


class FakeResult:
    def __init__(self, data: Any) -> None:
        self.data = data


class FakeQuery:
    """Chainable query builder recording into FakeSupabaseClient tables."""

    def __init__(self, client: "FakeSupabaseClient", table: str) -> None:
        self.client = client
        self.table = table
        self.operation = "select"
        self.payload: Optional[Dict[str, Any]] = None
        self.columns = "*"
        self.filters: List[tuple] = []
        self.order_by: Optional[tuple] = None
        self.row_limit: Optional[int] = None
        self.on_conflict: Optional[str] = None

    def insert(self, row: Dict[str, Any]) -> "FakeQuery":
        self.operation = "insert"
        self.payload = row
        return self

    def upsert(self, row: Dict[str, Any], on_conflict: Optional[str] = None) -> "FakeQuery":
        self.operation = "upsert"
        self.payload = row
        self.on_conflict = on_conflict
        return self

    def select(self, columns: str = "*") -> "FakeQuery":
        self.operation = "select"
        self.columns = columns
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.order_by = (column, desc)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.row_limit = count
        return self

    def execute(self) -> FakeResult:
        self.client.queries.append(self)
        if self.table in self.client.fail_tables:
            raise RuntimeError(f"{self.table} unavailable")

        rows = self.client.tables.setdefault(self.table, [])
        if self.operation == "insert":
            rows.append(dict(self.payload))
            return FakeResult([dict(self.payload)])

        if self.operation == "upsert":
            key = self.on_conflict
            rows[:] = [row for row in rows if row.get(key) != self.payload.get(key)]
            rows.append(dict(self.payload))
            return FakeResult([dict(self.payload)])

        selected = [row for row in rows if all(row.get(col) == value for col, value in self.filters)]
        if self.order_by:
            column, desc = self.order_by
            selected.sort(key=lambda row: row.get(column) or "", reverse=desc)
        if self.row_limit is not None:
            selected = selected[:self.row_limit]
        if self.columns != "*":
            names = [name.strip() for name in self.columns.split(",")]
            selected = [{name: row.get(name) for name in names} for row in selected]
        return FakeResult(selected)


class FakeRpc:
    def __init__(self, client: "FakeSupabaseClient", name: str) -> None:
        self.client = client
        self.name = name

    def execute(self) -> FakeResult:
        self.client.rpc_calls.append(self.name)
        if self.name in self.client.fail_rpcs:
            raise RuntimeError(f"rpc {self.name} failed")
        return FakeResult(self.client.rpc_results.get(self.name))


class FakeSupabaseClient:
    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.queries: List[FakeQuery] = []
        self.fail_tables: set = set()
        self.rpc_results: Dict[str, Any] = {}
        self.rpc_calls: List[str] = []
        self.fail_rpcs: set = set()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> FakeRpc:
        return FakeRpc(self, name)


# Notification

class FakeNotifier:
    def __init__(self, succeed: bool = True, explode: bool = False) -> None:
        self.succeed = succeed
        self.explode = explode
        self.alerts: List[Any] = []
        self.run_results: List[Any] = []

    def send_alert(self, alert) -> bool:
        if self.explode:
            raise RuntimeError("notifier down")
        self.alerts.append(alert)
        return self.succeed

    def send_run_result(self, result) -> bool:
        self.run_results.append(result)
        return self.succeed


@pytest.fixture
def collected_at() -> datetime:
    return COLLECTED_AT


@pytest.fixture
def entry_factory():
    return make_entry


@pytest.fixture
def fake_source_factory():
    def _factory(source_id: str, **kwargs) -> FakeSource:
        return FakeSource(source_id, **kwargs)

    return _factory


@pytest.fixture
def fake_registry_factory():
    def _factory(sources: List[ChartSource]) -> FakeRegistry:
        return FakeRegistry(sources)

    return _factory


@pytest.fixture
def fake_fetcher_factory():
    def _factory(pages: Optional[Dict[str, Any]] = None) -> FakeFetcher:
        return FakeFetcher(pages)

    return _factory


@pytest.fixture
def fake_session_factory():
    def _factory(routes: Optional[Dict[str, Any]] = None) -> FakeSession:
        return FakeSession(routes)

    return _factory


@pytest.fixture
def fake_response_factory():
    def _factory(status: int = 200, body: bytes = b"", charset: Optional[str] = "utf-8") -> FakeResponse:
        return FakeResponse(status, body, charset)

    return _factory


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fake_supabase_client() -> FakeSupabaseClient:
    return FakeSupabaseClient()


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()
