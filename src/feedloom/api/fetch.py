"""Feed 采集 API."""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from feedloom.config import get_settings
from feedloom.core.ingest import (
    FetchResult,
    fetch_all_feeds,
    fetch_single_feed,
    get_last_fetch_result,
    is_fetch_running,
)
from feedloom.core.staleness import count_sources, count_stale_sources, stale_threshold
from feedloom.feed import FeedParseError, extract_feed_items
from feedloom.fetcher import FeedFetchError, fetch_and_parse_feed
from feedloom.models.article import Article
from feedloom.models.database import async_session_maker, get_session
from feedloom.models.source import Source

router = APIRouter(prefix="/api/fetch", tags=["fetch"])


def _result_to_dict(result: FetchResult) -> dict[str, Any]:
    return {
        "success_count": result.success_count,
        "error_count": result.error_count,
        "processed_count": result.processed_count,
        "errors": [
            {"source_id": e.source_id, "url": e.url, "error": e.error}
            for e in result.errors
        ],
        "started_at": result.started_at.isoformat(),
        "completed_at": (
            result.completed_at.isoformat() if result.completed_at else None
        ),
    }


@router.get("/stats")
async def get_fetch_stats(
    session: AsyncSession = Depends(get_session),
) -> dict:
    """获取采集状态统计."""
    settings = get_settings()
    threshold = stale_threshold(settings.staleness_threshold_minutes)
    articles = await session.execute(select(func.count()).select_from(Article))
    last = get_last_fetch_result()

    return {
        "sources_total": await count_sources(session),
        "sources_stale": await count_stale_sources(session, threshold),
        "articles_total": articles.scalar_one(),
        "running": is_fetch_running(),
        "last_result": _result_to_dict(last) if last else None,
    }


@router.post("/all")
async def trigger_fetch_all(
    batch_size: int | None = Query(default=None, ge=1),
    staleness_threshold_minutes: int | None = Query(default=None, ge=0),
    background_tasks: BackgroundTasks = BackgroundTasks(),
) -> dict:
    """触发一次批量采集（后台执行）."""
    if is_fetch_running():
        raise HTTPException(status_code=409, detail="已有采集任务在运行中")

    settings = get_settings()
    actual_batch_size = batch_size or settings.fetch_batch_size
    background_tasks.add_task(
        _run_fetch_all, actual_batch_size, staleness_threshold_minutes
    )

    return {
        "message": f"开始采集，最多 {actual_batch_size} 个订阅源",
        "batch_size": actual_batch_size,
    }


@router.post("/sources/{source_id}")
async def trigger_fetch_source(
    source_id: int,
    og_image: bool = False,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """立即采集单个订阅源."""
    source = await session.get(Source, source_id)
    if not source:
        raise HTTPException(status_code=404, detail="订阅源不存在")
    feed_url = source.url

    try:
        result = await fetch_single_feed(
            session, source_id, feed_url, skip_og_image=not og_image
        )
    except FeedFetchError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    except FeedParseError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return {
        "source_id": source_id,
        "articles_added": result.articles_added,
        "articles_skipped": result.articles_skipped,
        "source_updated": result.source_updated,
    }


@router.get("/preview")
async def preview_feed(url: str = Query(min_length=1), limit: int = 10) -> dict:
    """抓取并解析 Feed，不入库."""
    try:
        feed = await fetch_and_parse_feed(url)
    except FeedFetchError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    except FeedParseError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    items = extract_feed_items(feed)
    return {
        "format": feed.format,
        "title": feed.title,
        "item_count": len(items),
        "items": [
            {"title": item.title, "format": item.format} for item in items[:limit]
        ],
    }


async def _run_fetch_all(
    batch_size: int, staleness_threshold_minutes: int | None
) -> None:
    """后台执行批量采集."""
    async with async_session_maker()() as session:
        await fetch_all_feeds(
            session,
            batch_size=batch_size,
            staleness_threshold_minutes=staleness_threshold_minutes,
        )
