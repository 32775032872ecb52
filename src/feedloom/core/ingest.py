"""Feed 采集流程入口."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from feedloom.config import get_settings
from feedloom.core.gatekeeper import (
    DomainGatekeeper,
    extract_domain,
    get_blocked_domains,
)
from feedloom.core.metadata import mark_fetched, update_source_metadata
from feedloom.core.staleness import select_stale_batch
from feedloom.core.store import ArticleStore
from feedloom.core.tracing import Tracer, get_tracer
from feedloom.feed import FeedParseError, ParsedFeed, extract_feed_items, parse_feed
from feedloom.fetcher.client import FeedFetcher, FeedFetchError
from feedloom.models.database import utc_now

logger = logging.getLogger(__name__)


@dataclass
class FetchErrorRecord:
    """单个订阅源的失败记录."""

    source_id: int
    url: str
    error: str


@dataclass
class FetchResult:
    """批量采集结果."""

    success_count: int = 0
    error_count: int = 0
    processed_count: int = 0
    errors: list[FetchErrorRecord] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None


@dataclass
class FetchSingleResult:
    """单个订阅源采集结果."""

    articles_added: int = 0
    articles_skipped: int = 0
    source_updated: bool = False


# 最近一次批处理结果，供状态接口查询
_last_result: FetchResult | None = None
_running = False


def get_last_fetch_result() -> FetchResult | None:
    """获取最近一次批量采集结果."""
    return _last_result


def is_fetch_running() -> bool:
    """是否有批量采集正在运行."""
    return _running


async def fetch_single_feed(
    session: AsyncSession,
    source_id: int,
    feed_url: str,
    blocked_domains: list[str] | None = None,
    *,
    fetcher: FeedFetcher | None = None,
    tracer: Tracer | None = None,
    skip_og_image: bool = True,
) -> FetchSingleResult:
    """
    抓取单个订阅源并写入新文章.

    域名被拦截时不发起请求，只刷新 last_fetched 并返回空结果。

    Args:
        session: 数据库会话
        source_id: 订阅源 ID
        feed_url: Feed 地址
        blocked_domains: 预先读取的黑名单，批处理时由调用方传入

    Raises:
        FeedFetchError: 下载失败
        FeedParseError: 内容无法解析
    """
    tracer = tracer or get_tracer()
    domain = extract_domain(feed_url) or "unknown"

    with tracer.start_span(
        "feed.fetch",
        "Fetch RSS Feed",
        {"feed_url": feed_url, "source_id": source_id, "feed_domain": domain},
    ) as span:
        gatekeeper = DomainGatekeeper(session, blocked_domains)
        if await gatekeeper.should_skip(feed_url, source_id):
            span.set_attribute("domain_blocked", True)
            span.set_status(True, "Domain blocked")
            await mark_fetched(session, source_id)
            return FetchSingleResult()

        tracer.add_breadcrumb(
            "feed.fetch",
            f"Fetching feed from {feed_url}",
            {"feed_url": feed_url, "source_id": source_id},
        )

        owns_fetcher = fetcher is None
        fetcher = fetcher or FeedFetcher()
        try:
            feed = await _download_and_parse(
                fetcher, tracer, source_id, feed_url, domain
            )
            span.set_attribute("feed_format", feed.format)

            source_updated = await update_source_metadata(session, source_id, feed)
            span.set_attribute("source_updated", source_updated)

            store = ArticleStore(session, skip_og_image=skip_og_image, tracer=tracer)
            items = extract_feed_items(feed)
            stored = await store.store_articles(source_id, items, feed)
        except Exception:
            span.set_status(False, "Fetch failed")
            tracer.emit_counter(
                "rss.feed_fetched", 1, {"status": "error", "domain": domain}
            )
            raise
        finally:
            if owns_fetcher:
                await fetcher.close()

        span.set_attribute("articles_added", stored.added)
        span.set_attribute("articles_skipped", stored.skipped)
        span.set_status(True, "ok")

    tracer.emit_counter("rss.feed_fetched", 1, {"status": "success", "domain": domain})
    tracer.emit_counter(
        "rss.articles_discovered", stored.added, {"source_id": str(source_id)}
    )
    if stored.skipped > 0:
        tracer.emit_counter(
            "rss.articles_skipped", stored.skipped, {"source_id": str(source_id)}
        )

    return FetchSingleResult(
        articles_added=stored.added,
        articles_skipped=stored.skipped,
        source_updated=source_updated,
    )


async def _download_and_parse(
    fetcher: FeedFetcher,
    tracer: Tracer,
    source_id: int,
    feed_url: str,
    domain: str,
) -> ParsedFeed:
    try:
        content = await fetcher.fetch_text(feed_url)
    except FeedFetchError as e:
        tags = {"feed_domain": domain, "operation": "feed_fetch"}
        if e.status_code is not None:
            tags["http_status"] = str(e.status_code)
        tracer.capture_exception(
            e, tags=tags, extra={"feed_url": feed_url, "source_id": source_id}
        )
        raise

    try:
        feed = parse_feed(content)
    except FeedParseError as e:
        tracer.capture_exception(
            e,
            tags={"feed_domain": domain, "operation": "feed_parse"},
            extra={
                "feed_url": feed_url,
                "source_id": source_id,
                "content_sample": content[:500],
            },
        )
        raise

    logger.info(f"解析 {feed_url} 为 {feed.format} 格式")
    tracer.add_breadcrumb(
        "feed.fetch",
        f"Parsed feed as {feed.format}",
        {"feed_format": feed.format, "source_id": source_id},
    )
    return feed


async def fetch_all_feeds(
    session: AsyncSession,
    batch_size: int | None = None,
    staleness_threshold_minutes: int | None = None,
    *,
    fetcher: FeedFetcher | None = None,
    tracer: Tracer | None = None,
) -> FetchResult:
    """
    批量抓取陈旧的订阅源.

    订阅源按顺序逐个处理，单个源失败只记录错误，不会中断整个批次。
    只有挑选订阅源的查询失败时才会抛出异常。
    """
    global _last_result, _running

    settings = get_settings()
    tracer = tracer or get_tracer()
    batch_size = batch_size or settings.fetch_batch_size
    if staleness_threshold_minutes is None:
        staleness_threshold_minutes = settings.staleness_threshold_minutes

    started = time.perf_counter()
    batch = await select_stale_batch(session, staleness_threshold_minutes, batch_size)
    blocked_domains = await get_blocked_domains(session)

    logger.info(
        f"开始抓取 {len(batch.sources)} 个订阅源 "
        f"(陈旧 {batch.stale_sources}, 总计 {batch.total_sources}, "
        f"批大小 {batch_size}, 陈旧阈值 {staleness_threshold_minutes} 分钟)"
    )
    tracer.emit_gauge("rss.sources_total", batch.total_sources)
    tracer.emit_gauge("rss.sources_stale", batch.stale_sources)
    tracer.emit_gauge("rss.sources_in_batch", len(batch.sources))

    result = FetchResult(processed_count=len(batch.sources))
    _running = True
    owns_fetcher = fetcher is None
    fetcher = fetcher or FeedFetcher()
    try:
        for source_id, url in batch.sources:
            try:
                single = await fetch_single_feed(
                    session,
                    source_id,
                    url,
                    blocked_domains,
                    fetcher=fetcher,
                    tracer=tracer,
                )
            except Exception as e:
                await session.rollback()
                result.error_count += 1
                result.errors.append(
                    FetchErrorRecord(source_id=source_id, url=url, error=str(e))
                )
                logger.error(f"✗ 抓取失败 {url}: {e}")
                if len(batch.sources) > 1:
                    await asyncio.sleep(settings.delay_after_error_seconds)
                continue

            result.success_count += 1
            logger.info(
                f"✓ 抓取完成 {url}: 新增 {single.articles_added}, "
                f"跳过 {single.articles_skipped}"
            )
            if len(batch.sources) > 1:
                await asyncio.sleep(settings.delay_between_feeds_seconds)
    finally:
        _running = False
        if owns_fetcher:
            await fetcher.close()

    result.completed_at = utc_now()
    _last_result = result

    logger.info(
        f"批量抓取完成: 成功 {result.success_count}, 失败 {result.error_count}, "
        f"共 {result.processed_count} (总订阅源 {batch.total_sources})"
    )
    tracer.emit_counter(
        "rss.batch_completed",
        1,
        {
            "success_count": str(result.success_count),
            "error_count": str(result.error_count),
            "batch_size": str(result.processed_count),
            "total_sources": str(batch.total_sources),
        },
    )
    duration_ms = (time.perf_counter() - started) * 1000
    tracer.emit_gauge("rss.fetch_all_duration", duration_ms)
    return result
