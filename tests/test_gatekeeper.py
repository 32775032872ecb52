"""测试域名黑名单."""

from datetime import datetime
from unittest.mock import AsyncMock, patch

from sqlalchemy import text

from feedloom.core.gatekeeper import (
    DomainGatekeeper,
    extract_domain,
    get_blocked_domains,
    has_unrestricted_subscriber,
    is_domain_blocked,
    normalize_domain,
    registrable_domain,
)
from feedloom.core.ingest import fetch_all_feeds, fetch_single_feed
from feedloom.models.blocked_domain import BlockedDomain
from feedloom.models.source import Source
from feed_samples import rss_document, rss_item

BLOCKED_URL = "https://news.spam.co.uk/feed.xml"


async def block(session, *domains: str) -> None:
    for domain in domains:
        session.add(BlockedDomain(domain=domain, reason="spam"))
    await session.commit()


class TestDomainMatching:
    """测试域名匹配规则."""

    def test_extract_domain(self) -> None:
        """取主机名并转小写."""
        assert extract_domain("https://Blog.Example.com:8080/feed") == "blog.example.com"
        assert extract_domain("not a url") is None

    def test_normalize_entry(self) -> None:
        """黑名单条目去掉协议、路径与端口."""
        assert normalize_domain(" HTTPS://Spam.com/path ") == "spam.com"
        assert normalize_domain("*.Spam.com") == "*.spam.com"

    def test_registrable_domain(self) -> None:
        """按公共后缀列表计算可注册域名."""
        assert registrable_domain("a.b.example.co.uk") == "example.co.uk"
        assert registrable_domain("127.0.0.1") is None

    def test_exact_and_registrable_match(self) -> None:
        """普通条目匹配主机名或其可注册域名."""
        assert is_domain_blocked("news.spam.co.uk", ["spam.co.uk"])
        assert is_domain_blocked("feeds.example.com", ["feeds.example.com"])
        assert not is_domain_blocked("example.com", ["feeds.example.com"])
        assert not is_domain_blocked("notspam.co.uk", ["spam.co.uk"])

    def test_wildcard_match(self) -> None:
        """*.x 匹配 x 本身及其所有子域名."""
        blocked = ["*.spam.com"]
        assert is_domain_blocked("spam.com", blocked)
        assert is_domain_blocked("a.b.spam.com", blocked)
        assert not is_domain_blocked("myspam.com", blocked)


class TestGatekeeper:
    """测试拦截决策."""

    async def test_not_blocked(self, async_session, make_source) -> None:
        """未命中黑名单时不查询订阅者."""
        source_id = await make_source()
        gatekeeper = DomainGatekeeper(async_session, ["spam.com"])
        assert not await gatekeeper.should_skip("https://example.com/feed", source_id)

    async def test_blocked_without_unrestricted_subscriber(
        self, async_session, make_source, subscribe
    ) -> None:
        """只有普通套餐订阅者时跳过."""
        source_id = await make_source(url=BLOCKED_URL)
        await subscribe(source_id, "free")
        await subscribe(source_id, "pro")
        await block(async_session, "spam.co.uk")

        gatekeeper = DomainGatekeeper(async_session)
        assert await gatekeeper.should_skip(BLOCKED_URL, source_id)

    async def test_unrestricted_subscriber_bypasses_block(
        self, async_session, make_source, subscribe
    ) -> None:
        """存在无限制套餐订阅者时照常抓取."""
        source_id = await make_source(url=BLOCKED_URL)
        await subscribe(source_id, "free")
        await subscribe(source_id, "enterprise")

        assert await has_unrestricted_subscriber(async_session, source_id)
        gatekeeper = DomainGatekeeper(async_session, ["spam.co.uk"])
        assert not await gatekeeper.should_skip(BLOCKED_URL, source_id)

    async def test_missing_blocklist_table_fails_open(self, async_session) -> None:
        """黑名单表不存在时视为没有拦截."""
        await async_session.execute(text("DROP TABLE blocked_domains"))
        await async_session.commit()

        assert await get_blocked_domains(async_session) == []

    async def test_missing_subscription_table_fails_open(
        self, async_session, make_source
    ) -> None:
        """订阅表不存在时放行."""
        source_id = await make_source(url=BLOCKED_URL)
        await async_session.execute(text("DROP TABLE subscriptions"))
        await async_session.commit()

        gatekeeper = DomainGatekeeper(async_session, ["spam.co.uk"])
        assert not await gatekeeper.should_skip(BLOCKED_URL, source_id)


class TestBlockedFetch:
    """测试被拦截订阅源的抓取结果."""

    async def test_blocked_source_is_not_requested(
        self, async_session, make_source, subscribe, feed_server, tracer
    ) -> None:
        """被拦截时不发请求、不写文章，只刷新 last_fetched."""
        source_id = await make_source(url=BLOCKED_URL)
        await subscribe(source_id, "free")
        fetcher = feed_server({BLOCKED_URL: (200, rss_document([rss_item("a")]))})

        result = await fetch_single_feed(
            async_session,
            source_id,
            BLOCKED_URL,
            ["spam.co.uk"],
            fetcher=fetcher,
            tracer=tracer,
        )

        assert result.articles_added == 0
        assert result.articles_skipped == 0
        assert result.source_updated is False
        assert fetcher.requests == []
        source = await async_session.get(Source, source_id)
        await async_session.refresh(source)
        assert source.last_fetched is not None

    async def test_enterprise_source_is_fetched(
        self, async_session, make_source, subscribe, feed_server, tracer
    ) -> None:
        """有无限制套餐订阅者的被拦截源照常抓取."""
        source_id = await make_source(url=BLOCKED_URL)
        await subscribe(source_id, "enterprise")
        fetcher = feed_server({BLOCKED_URL: (200, rss_document([rss_item("a")]))})

        result = await fetch_single_feed(
            async_session,
            source_id,
            BLOCKED_URL,
            ["spam.co.uk"],
            fetcher=fetcher,
            tracer=tracer,
        )

        assert result.articles_added == 1
        assert len(fetcher.requests) == 1
        source = await async_session.get(Source, source_id)
        await async_session.refresh(source)
        assert isinstance(source.last_fetched, datetime)

    async def test_blocked_sources_do_not_starve_batch(
        self, async_session, make_source, subscribe, feed_server, tracer
    ) -> None:
        """被拦截的订阅源不会一直占满批次，正常订阅源最终会被抓取."""
        good_url = "https://good.example.com/feed.xml"
        for i in range(2):
            source_id = await make_source(url=f"https://n{i}.spam.co.uk/feed.xml")
            await subscribe(source_id, "free")
        good_id = await make_source(url=good_url)
        await block(async_session, "spam.co.uk")
        fetcher = feed_server({good_url: (200, rss_document([rss_item("a")]))})

        with patch("feedloom.core.ingest.asyncio.sleep", new=AsyncMock()):
            for _ in range(2):
                await fetch_all_feeds(
                    async_session, batch_size=2, fetcher=fetcher, tracer=tracer
                )

        assert [str(request.url) for request in fetcher.requests] == [good_url]
        source = await async_session.get(Source, good_id)
        await async_session.refresh(source)
        assert source.last_fetched is not None
