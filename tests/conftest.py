"""测试配置和 fixtures."""

from collections.abc import AsyncGenerator, Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from feedloom.core.tracing import Span, Tracer
from feedloom.fetcher.client import FeedFetcher
from feedloom.models.source import Source
from feedloom.models.user import Subscription, User

RSS_CONTENT_TYPE = "application/rss+xml; charset=utf-8"


class RecordingSpan(Span):
    """记录属性的测试 span."""

    def __init__(self, op: str, name: str) -> None:
        self.op = op
        self.name = name
        self.attributes: dict[str, Any] = {}
        self.status: tuple[bool, str] | None = None

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def set_status(self, ok: bool, message: str = "") -> None:
        self.status = (ok, message)


class RecordingTracer(Tracer):
    """把所有遥测调用记录下来，便于断言."""

    def __init__(self) -> None:
        self.spans: list[RecordingSpan] = []
        self.breadcrumbs: list[tuple[str, str]] = []
        self.exceptions: list[BaseException] = []
        self.counters: list[tuple[str, int, dict[str, str]]] = []
        self.gauges: dict[str, float] = {}

    @contextmanager
    def start_span(
        self, op: str, name: str, attributes: dict[str, Any] | None = None
    ) -> Iterator[Span]:
        span = RecordingSpan(op, name)
        span.attributes.update(attributes or {})
        self.spans.append(span)
        yield span

    def add_breadcrumb(
        self, category: str, message: str, data: dict[str, Any] | None = None
    ) -> None:
        self.breadcrumbs.append((category, message))

    def capture_exception(
        self,
        error: BaseException,
        level: str = "error",
        tags: dict[str, str] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.exceptions.append(error)

    def emit_counter(
        self, name: str, value: int = 1, tags: dict[str, str] | None = None
    ) -> None:
        self.counters.append((name, value, tags or {}))

    def emit_gauge(
        self, name: str, value: float, tags: dict[str, str] | None = None
    ) -> None:
        self.gauges[name] = value

    def counter_total(self, name: str) -> int:
        return sum(value for counter, value, _ in self.counters if counter == name)


@pytest.fixture
def tracer() -> RecordingTracer:
    """记录型 Tracer."""
    return RecordingTracer()


@pytest_asyncio.fixture
async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """创建测试用的内存数据库会话."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def make_source(
    async_session: AsyncSession,
) -> Callable[..., Any]:
    """创建订阅源，返回其 ID."""

    async def _make(
        url: str = "https://example.com/feed.xml",
        title: str = "Example Feed",
        last_fetched: datetime | None = None,
        **fields: Any,
    ) -> int:
        source = Source(url=url, title=title, last_fetched=last_fetched, **fields)
        async_session.add(source)
        await async_session.commit()
        await async_session.refresh(source)
        assert source.id is not None
        return source.id

    return _make


@pytest.fixture
def subscribe(
    async_session: AsyncSession,
) -> Callable[..., Any]:
    """为订阅源添加一个指定套餐的订阅者."""
    counter = {"n": 0}

    async def _subscribe(source_id: int, plan: str = "free") -> None:
        counter["n"] += 1
        user = User(
            name=f"user{counter['n']}",
            email=f"user{counter['n']}@example.com",
            plan=plan,
        )
        async_session.add(user)
        await async_session.commit()
        await async_session.refresh(user)
        async_session.add(Subscription(user_id=user.id, source_id=source_id))
        await async_session.commit()

    return _subscribe


@pytest.fixture
def feed_server() -> Callable[..., Any]:
    """
    构造基于 MockTransport 的 FeedFetcher.

    routes 把 URL 映射为 (状态码, 内容) 或 (状态码, 内容, Content-Type)。
    返回的 fetcher 上挂着 requests 列表，记录所有请求。
    """

    def _make(routes: dict[str, tuple]) -> FeedFetcher:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            route = routes.get(str(request.url))
            if route is None:
                return httpx.Response(404, text="not found")
            status, body, *rest = route
            content_type = rest[0] if rest else RSS_CONTENT_TYPE
            return httpx.Response(
                status, text=body, headers={"content-type": content_type}
            )

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        fetcher = FeedFetcher(client=client)
        fetcher.requests = requests  # type: ignore[attr-defined]
        return fetcher

    return _make
